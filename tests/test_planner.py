from __future__ import annotations

import pytest

from toll_estimator.exceptions import StaleRequestError
from toll_estimator.schemas import SpecialTollDetectRequest, TripCostRequest
from toll_estimator.services.fingerprint import FreshnessGate
from toll_estimator.services.geo import build_route_points
from toll_estimator.services.planner import TollPlannerService
from toll_estimator.services.resolver import ResolverPolicy
from toll_estimator.services.types import GeocodeResult, GeoPoint, RouteData, RouteLeg

PLACES = {
    "Milan": GeocodeResult(GeoPoint(45.4642, 9.1900), "IT", "Milano, Lombardia, Italia"),
    "Verona": GeocodeResult(GeoPoint(45.4384, 10.9916), "IT", "Verona, Veneto, Italia"),
    "Villach": GeocodeResult(GeoPoint(46.6103, 13.8558), "AT", "Villach, Kärnten, Österreich"),
    "Ljubljana": GeocodeResult(GeoPoint(46.0511, 14.5051), "SI", "Ljubljana, Slovenija"),
    "Nowhere": GeocodeResult(GeoPoint(0.0, 0.0), "", "Somewhere"),
    "Elsewhere": GeocodeResult(GeoPoint(0.0, 1.0), "", "Elsewhere"),
}

ROUTES = {
    ("Milan", "Verona"): ([(9.19, 45.46), (10.0, 45.45), (10.99, 45.44)], 150.0, 100.0),
    ("Villach", "Ljubljana"): ([(13.85, 46.61), (14.075, 46.4575), (14.51, 46.05)], 80.0, 60.0),
    ("Nowhere", "Elsewhere"): ([(0.0, 0.0), (0.5, 0.0), (1.0, 0.0)], 110.0, 90.0),
}


class StubGeocoder:
    def geocode(self, query: str) -> GeocodeResult:
        return PLACES[query]

    def reverse_country(self, latitude: float, longitude: float) -> str | None:
        if latitude == 0.0:
            return None
        if longitude < 12:
            return "IT"
        return "at" if longitude <= 14.075 else "si"


class StubOsrm:
    def route_through(self, stops) -> RouteData:
        names = {place.display_name: key for key, place in PLACES.items()}
        key = (names[stops[0].display_name], names[stops[-1].display_name])
        coordinates, distance_km, duration_minutes = ROUTES[key]
        return RouteData(
            points=build_route_points(coordinates),
            legs=[RouteLeg(stops[0].display_name, stops[-1].display_name, distance_km, duration_minutes)],
            distance_km=distance_km,
            duration_minutes=duration_minutes,
        )


class StubTunnelClient:
    def __init__(self, answer: frozenset[str] = frozenset(), on_detect=None):
        self.answer = answer
        self.on_detect = on_detect
        self.calls: list[tuple] = []

    def detect(self, origin, destination, waypoints=(), countries=()) -> frozenset[str]:
        self.calls.append((origin, destination, list(waypoints), tuple(countries)))
        if self.on_detect is not None:
            self.on_detect()
        return self.answer


def _planner(tunnel_client: StubTunnelClient | None = None, gate: FreshnessGate | None = None) -> TollPlannerService:
    return TollPlannerService(
        geocoding_client=StubGeocoder(),
        osrm_client=StubOsrm(),
        tunnel_client=tunnel_client or StubTunnelClient(),
        resolver_policy=ResolverPolicy(delay_seconds=0),
        freshness_gate=gate,
    )


def test_plan_single_country_distance_toll() -> None:
    response = _planner().plan(TripCostRequest(start_location="Milan", finish_location="Verona"))

    assert response.total_cost == 12.00
    assert response.total_distance_km == 150
    assert response.estimated_driving_time_hours == pytest.approx(100 / 60, abs=1e-4)
    assert [cost.country_code for cost in response.country_costs] == ["IT"]
    assert response.country_costs[0].estimated_distance_km == 150
    assert response.insufficient_route_data is False
    assert response.detection_source == "none"
    assert response.detected_special_toll_ids == []


def test_plan_return_trip_projects_doubled_country_figures() -> None:
    response = _planner().plan(
        TripCostRequest(start_location="Milan", finish_location="Verona", trip_type="return")
    )

    italy = response.country_costs[0]
    assert response.total_cost == 24.00
    assert response.total_distance_km == 300
    assert italy.toll_cost == 12.00
    assert italy.display_distance_km == 300
    assert italy.display_total_cost == 24.00


def test_plan_auto_selects_tolls_found_on_route_geometry() -> None:
    tunnel_client = StubTunnelClient()

    response = _planner(tunnel_client).plan(
        TripCostRequest(start_location="Villach", finish_location="Ljubljana")
    )

    austria, slovenia = response.country_costs
    assert (austria.country_code, slovenia.country_code) == ("AT", "SI")
    assert austria.vignette_cost == 11.50
    assert austria.special_tolls_cost == 7.90
    assert [item.name for item in austria.special_tolls_selected] == ["Karawanken Tunnel (A11)"]
    assert slovenia.vignette_cost == 16.00
    assert response.total_cost == pytest.approx(11.50 + 7.90 + 16.00)
    assert response.detection_source == "geometry"
    assert response.detected_special_toll_ids == ["at-karawanken"]
    assert tunnel_client.calls == [("Villach", "Ljubljana", [], ("AT", "SI"))]


def test_plan_prefers_model_answer_over_geometry() -> None:
    response = _planner(StubTunnelClient(frozenset({"at-tauern"}))).plan(
        TripCostRequest(start_location="Villach", finish_location="Ljubljana")
    )

    assert response.detection_source == "ai"
    assert response.detected_special_toll_ids == ["at-tauern"]
    assert response.country_costs[0].special_tolls_cost == 14.00


def test_plan_respects_explicit_selection() -> None:
    response = _planner().plan(
        TripCostRequest(
            start_location="Villach",
            finish_location="Ljubljana",
            selected_special_tolls=[],
            owned_vignettes=["si"],
        )
    )

    austria, slovenia = response.country_costs
    assert austria.special_tolls_cost == 0
    assert slovenia.vignette_owned is True
    assert slovenia.vignette_option == "Already owned"
    assert response.total_cost == 11.50
    assert response.detected_special_toll_ids == ["at-karawanken"]


def test_plan_trip_dates_drive_vignette_choice() -> None:
    response = _planner().plan(
        TripCostRequest(
            start_location="Villach",
            finish_location="Ljubljana",
            start_date="2026-07-01",
            end_date="2026-07-20",
            selected_special_tolls=[],
        )
    )

    austria, slovenia = response.country_costs
    assert austria.vignette_option == "2 months"
    assert slovenia.vignette_option == "1 month"


def test_plan_without_resolvable_countries_reports_insufficient_data() -> None:
    response = _planner().plan(TripCostRequest(start_location="Nowhere", finish_location="Elsewhere"))

    assert response.country_costs == []
    assert response.insufficient_route_data is True
    assert response.total_cost == 0
    assert response.total_distance_km == 0


def test_detect_special_tolls_returns_selection_and_fingerprint() -> None:
    response = _planner().detect_special_tolls(
        SpecialTollDetectRequest(start_location="Villach", finish_location="Ljubljana", session_id="tab-1")
    )

    assert response.countries == ["AT", "SI"]
    assert response.detection_source == "geometry"
    assert [toll.id for toll in response.selected_special_tolls] == ["at-karawanken"]
    assert len(response.fingerprint) == 64


def test_detect_special_tolls_drops_superseded_result() -> None:
    gate = FreshnessGate()
    tunnel_client = StubTunnelClient(on_detect=lambda: gate.begin("tab-1", "newer-route"))

    with pytest.raises(StaleRequestError):
        _planner(tunnel_client, gate).detect_special_tolls(
            SpecialTollDetectRequest(start_location="Villach", finish_location="Ljubljana", session_id="tab-1")
        )
