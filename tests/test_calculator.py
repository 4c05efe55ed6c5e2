from __future__ import annotations

from dataclasses import replace

import pytest

from toll_estimator.services.calculator import ALREADY_OWNED, compute_trip_cost, driving_time_hours
from toll_estimator.services.types import (
    CountryDistance,
    CountryRule,
    DistanceToll,
    SelectedSpecialToll,
    TripData,
    TripRoute,
    VignettePolicy,
    VignetteTier,
)


def _trip(
    distances: list[tuple[str, float]],
    *,
    duration_minutes: float = 300.0,
    **overrides,
) -> TripData:
    country_distances = tuple(CountryDistance(code, km) for code, km in distances)
    route = TripRoute(
        countries=tuple(code for code, _ in distances),
        country_distances=country_distances,
        distance_km=sum(km for _, km in distances),
        duration_minutes=duration_minutes,
    )
    return replace(TripData(), route=route, **overrides)


def test_italy_car_trip_pays_distance_toll_only() -> None:
    result = compute_trip_cost(_trip([("IT", 450.0)]))

    italy = result.country_costs[0]
    assert italy.toll_cost == 36.00
    assert italy.vignette_required is False
    assert italy.vignette_cost == 0
    assert result.total_cost == 36.00
    assert result.total_distance_km == 450
    assert result.currency == "EUR"


def test_van_and_truck_pay_van_rate() -> None:
    van = compute_trip_cost(_trip([("IT", 100.0)], vehicle_type="van"))
    truck = compute_trip_cost(_trip([("IT", 100.0)], vehicle_type="truck"))

    assert van.country_costs[0].toll_cost == 10.00
    assert truck.country_costs[0].toll_cost == 10.00


def test_vignette_country_uses_cheapest_covering_tier() -> None:
    result = compute_trip_cost(_trip([("SI", 120.0)], trip_duration_days=5))

    slovenia = result.country_costs[0]
    assert slovenia.vignette_required is True
    assert slovenia.vignette_cost == 16.00
    assert slovenia.vignette_option == "7 days"
    assert slovenia.toll_cost == 0
    assert result.total_cost == 16.00


def test_owned_vignette_is_free_and_labelled() -> None:
    result = compute_trip_cost(_trip([("AT", 200.0)], owned_vignettes=frozenset({"AT"})))

    austria = result.country_costs[0]
    assert austria.vignette_owned is True
    assert austria.vignette_cost == 0
    assert austria.vignette_option == ALREADY_OWNED == "Already owned"
    assert result.total_cost == 0


def test_special_tolls_are_attributed_to_their_country() -> None:
    tolls = (
        SelectedSpecialToll("at-tauern", "AT", "Tauern Tunnel (A10)", 14.00),
        SelectedSpecialToll("at-karawanken", "AT", "Karawanken Tunnel (A11)", 7.90),
        SelectedSpecialToll("fr-puymorens", "FR", "Puymorens Tunnel", 7.30),
    )

    result = compute_trip_cost(
        _trip([("AT", 190.0), ("SI", 80.0)], selected_special_tolls=tolls, trip_duration_days=3)
    )

    austria, slovenia = result.country_costs
    assert austria.special_tolls_cost == pytest.approx(21.90)
    assert [item.name for item in austria.special_tolls_selected] == [
        "Tauern Tunnel (A10)",
        "Karawanken Tunnel (A11)",
    ]
    assert slovenia.special_tolls_cost == 0
    # Puymorens belongs to France, which is not on the route.
    assert result.total_cost == pytest.approx(11.50 + 21.90 + 16.00)


def test_return_trip_doubles_tolls_but_not_vignettes() -> None:
    tolls = (SelectedSpecialToll("xx-bridge", "IT", "Test Bridge", 10.00),)
    one_way = _trip(
        [("IT", 500.0), ("SI", 100.0), ("SK", 100.0)],
        trip_duration_days=30,
        selected_special_tolls=tolls,
    )

    outbound = compute_trip_cost(one_way)
    round_trip = compute_trip_cost(replace(one_way, trip_type="return"))

    assert sum(cost.toll_cost for cost in outbound.country_costs) == 40.00
    assert sum(cost.vignette_cost for cost in outbound.country_costs) == 50.00
    assert outbound.total_cost == 100.00
    assert round_trip.total_cost == 150.00
    assert round_trip.total_distance_km == 1400
    # Stored per-country figures stay one-way.
    assert round_trip.country_costs == outbound.country_costs


def test_driving_time_is_rounded_to_minutes_before_doubling() -> None:
    assert driving_time_hours(125.6) == pytest.approx(2 + 6 / 60)

    one_way = _trip([("DE", 80.0)], duration_minutes=59.5)
    round_trip = compute_trip_cost(replace(one_way, trip_type="return"))

    assert compute_trip_cost(one_way).estimated_driving_time_hours == 1.0
    assert round_trip.estimated_driving_time_hours == 2.0


def test_unknown_countries_are_skipped() -> None:
    result = compute_trip_cost(_trip([("BA", 100.0), ("HR", 100.0)]))

    assert [cost.country_code for cost in result.country_costs] == ["HR"]
    assert result.total_cost == 5.00
    assert result.total_distance_km == 200


def test_missing_route_yields_empty_result() -> None:
    result = compute_trip_cost(TripData())

    assert result.country_costs == ()
    assert result.total_cost == 0
    assert result.total_distance_km == 0
    assert result.estimated_driving_time_hours == 0


def test_route_without_countries_is_treated_as_missing() -> None:
    trip = replace(
        TripData(),
        route=TripRoute(countries=(), country_distances=(), distance_km=300.0, duration_minutes=240.0),
    )

    result = compute_trip_cost(trip)

    assert result.total_distance_km == 0
    assert result.estimated_driving_time_hours == 0


def test_mixed_country_charges_distance_and_vignette(mocker) -> None:
    mixed = CountryRule(
        code="XM",
        name="Mixedland",
        flag="",
        toll_model="mixed",
        currency="EUR",
        distance_toll=DistanceToll(car=0.10, van=0.20, truck=0.30),
        vignette=VignettePolicy(required=True, tiers=(VignetteTier("1 year", 50.0, 365),)),
    )
    mocker.patch("toll_estimator.services.calculator.get_rule", return_value=mixed)

    result = compute_trip_cost(_trip([("XM", 100.0)]))

    cost = result.country_costs[0]
    assert cost.toll_cost == 10.00
    assert cost.vignette_cost == 50.00
    assert result.total_cost == 60.00


def test_computation_is_idempotent() -> None:
    trip = _trip(
        [("FR", 321.4), ("IT", 212.9), ("AT", 99.1)],
        trip_type="return",
        trip_duration_days=12,
        owned_vignettes=frozenset({"CH"}),
    )

    assert compute_trip_cost(trip) == compute_trip_cost(trip)


def test_total_adds_country_tolls_after_rounding_them(mocker) -> None:
    flat = CountryRule(
        code="XF",
        name="Flatland",
        flag="",
        toll_model="distance",
        currency="EUR",
        distance_toll=DistanceToll(car=1.0, van=1.0, truck=1.0),
    )
    mocker.patch(
        "toll_estimator.services.calculator.get_rule",
        side_effect=lambda code: replace(flat, code=code),
    )

    result = compute_trip_cost(_trip([("XA", 10.125), ("XB", 10.125)]))

    assert [cost.toll_cost for cost in result.country_costs] == [10.13, 10.13]
    # 20.25 if the unrounded amounts were summed.
    assert result.total_cost == 20.26
