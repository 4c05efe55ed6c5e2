from __future__ import annotations

import math

from toll_estimator.services.country_rules import get_rule
from toll_estimator.services.rounding import round_half_up
from toll_estimator.services.types import (
    CalculationResult,
    CountryCost,
    CountryRule,
    TollLineItem,
    TripData,
    VehicleType,
)
from toll_estimator.services.vignettes import select_vignette

ALREADY_OWNED = "Already owned"
RESULT_CURRENCY = "EUR"


def compute_trip_cost(trip: TripData) -> CalculationResult:
    route = trip.route if trip.route is not None and trip.route.countries else None
    country_distances = route.country_distances if route else ()
    total_distance = route.distance_km if route else 0.0
    duration_minutes = route.duration_minutes if route else 0.0

    estimated_driving_time = driving_time_hours(duration_minutes)

    country_costs: list[CountryCost] = []
    total_cost = 0.0
    for entry in country_distances:
        rule = get_rule(entry.country_code)
        if rule is None:
            continue
        cost = _country_cost(rule, entry.distance_km, trip)
        country_costs.append(cost)
        total_cost += cost.one_way_total

    if trip.trip_type == "return":
        # Vignettes stay valid for the way back; tolls are paid again.
        total_cost += sum(cost.toll_cost for cost in country_costs)
        total_cost += sum(cost.special_tolls_cost for cost in country_costs)
        total_distance *= 2
        estimated_driving_time *= 2

    return CalculationResult(
        total_cost=round_half_up(total_cost, 2),
        country_costs=tuple(country_costs),
        total_distance_km=int(round_half_up(total_distance)),
        estimated_driving_time_hours=estimated_driving_time,
        currency=RESULT_CURRENCY,
    )


def driving_time_hours(duration_minutes: float) -> float:
    hours = math.floor(duration_minutes / 60)
    minutes = round_half_up(duration_minutes % 60)
    return hours + minutes / 60


def price_per_km(rule: CountryRule, vehicle_type: VehicleType) -> float:
    if rule.distance_toll is None:
        return 0.0
    # No truck tariffs are modelled yet; anything bigger than a car pays the van rate.
    return rule.distance_toll.car if vehicle_type == "car" else rule.distance_toll.van


def _country_cost(rule: CountryRule, distance_km: float, trip: TripData) -> CountryCost:
    toll_cost = 0.0
    if rule.toll_model in ("distance", "mixed") and rule.distance_toll is not None:
        toll_cost = round_half_up(distance_km * price_per_km(rule, trip.vehicle_type), 2)

    vignette_required = rule.requires_vignette
    vignette_owned = False
    vignette_cost = 0.0
    vignette_option = ""
    if vignette_required:
        vignette_owned = rule.code in trip.owned_vignettes
        if vignette_owned:
            vignette_option = ALREADY_OWNED
        else:
            tier = select_vignette(rule.vignette.tiers, trip.trip_duration_days)
            vignette_cost = tier.price
            vignette_option = tier.label

    tolls = [toll for toll in trip.selected_special_tolls if toll.country_code == rule.code]
    special_tolls_cost = sum((toll.price for toll in tolls), 0.0)

    return CountryCost(
        country_code=rule.code,
        country_name=rule.name,
        flag=rule.flag,
        toll_cost=toll_cost,
        vignette_cost=vignette_cost,
        special_tolls_cost=special_tolls_cost,
        special_tolls_selected=tuple(TollLineItem(name=toll.name, price=toll.price) for toll in tolls),
        vignette_required=vignette_required,
        vignette_owned=vignette_owned,
        vignette_option=vignette_option,
        estimated_distance_km=int(round_half_up(distance_km)),
        notes=rule.notes,
    )
