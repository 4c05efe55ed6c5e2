from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, datetime

from toll_estimator.schemas import (
    AddressUpdate,
    AxlesUpdate,
    DateUpdate,
    FuelTypeUpdate,
    OwnedVignettesUpdate,
    SelectedSpecialTollPayload,
    SpecialTollsUpdate,
    SpecialTollToggleUpdate,
    TripState,
    TripTypeUpdate,
    TripUpdate,
    VehicleTypeUpdate,
    WaypointsUpdate,
)
from toll_estimator.services.country_rules import get_special_toll
from toll_estimator.services.special_tolls import toggle_special_toll
from toll_estimator.services.types import SelectedSpecialToll, TripData

SECONDS_PER_DAY = 24 * 60 * 60


def trip_duration_days(start_date: str, end_date: str) -> int:
    """Whole days between two ISO dates (or datetimes), rounded up, at least one."""
    start = datetime.fromisoformat(start_date)
    end = datetime.fromisoformat(end_date)
    seconds = abs((end - start).total_seconds())
    return max(1, math.ceil(seconds / SECONDS_PER_DAY))


def apply_trip_update(trip: TripData, update: TripUpdate) -> TripData:
    """Return a copy of ``trip`` with one field changed.

    Route inputs invalidate any resolved route; date changes re-derive the
    trip duration once both dates are known.
    """
    if isinstance(update, VehicleTypeUpdate):
        return replace(trip, vehicle_type=update.value)
    if isinstance(update, AxlesUpdate):
        return replace(trip, axles=update.value)
    if isinstance(update, FuelTypeUpdate):
        return replace(trip, fuel_type=update.value)
    if isinstance(update, AddressUpdate):
        return replace(trip, **{update.field: update.value}, route=None)
    if isinstance(update, WaypointsUpdate):
        return replace(trip, waypoint_addresses=tuple(update.value), route=None)
    if isinstance(update, TripTypeUpdate):
        return replace(trip, trip_type=update.value)
    if isinstance(update, DateUpdate):
        updated = replace(trip, **{update.field: update.value.isoformat()})
        if updated.start_date and updated.end_date:
            days = trip_duration_days(updated.start_date, updated.end_date)
            updated = replace(updated, trip_duration_days=days)
        return updated
    if isinstance(update, OwnedVignettesUpdate):
        return replace(trip, owned_vignettes=frozenset(code.upper() for code in update.value))
    if isinstance(update, SpecialTollsUpdate):
        return replace(
            trip,
            selected_special_tolls=tuple(
                SelectedSpecialToll(
                    id=toll.id,
                    country_code=toll.country_code.upper(),
                    name=toll.name,
                    price=toll.price,
                )
                for toll in update.value
            ),
        )
    if isinstance(update, SpecialTollToggleUpdate):
        country_code = update.value.country_code.upper()
        toll = get_special_toll(country_code, update.value.toll_id)
        return replace(
            trip,
            selected_special_tolls=toggle_special_toll(
                trip.selected_special_tolls, country_code, toll
            ),
        )
    raise TypeError(f"Unsupported trip update: {update!r}")


def trip_from_state(state: TripState) -> TripData:
    return TripData(
        vehicle_type=state.vehicle_type,
        axles=state.axles,
        fuel_type=state.fuel_type,
        start_address=state.start_address,
        end_address=state.end_address,
        waypoint_addresses=tuple(state.waypoint_addresses),
        trip_type=state.trip_type,
        start_date=state.start_date.isoformat() if state.start_date else "",
        end_date=state.end_date.isoformat() if state.end_date else "",
        trip_duration_days=state.trip_duration_days,
        owned_vignettes=frozenset(code.upper() for code in state.owned_vignettes),
        selected_special_tolls=tuple(
            SelectedSpecialToll(
                id=toll.id,
                country_code=toll.country_code.upper(),
                name=toll.name,
                price=toll.price,
            )
            for toll in state.selected_special_tolls
        ),
    )


def trip_to_state(trip: TripData) -> TripState:
    return TripState(
        vehicle_type=trip.vehicle_type,
        axles=trip.axles,
        fuel_type=trip.fuel_type,
        start_address=trip.start_address,
        end_address=trip.end_address,
        waypoint_addresses=list(trip.waypoint_addresses),
        trip_type=trip.trip_type,
        start_date=date.fromisoformat(trip.start_date) if trip.start_date else None,
        end_date=date.fromisoformat(trip.end_date) if trip.end_date else None,
        trip_duration_days=trip.trip_duration_days,
        owned_vignettes=sorted(trip.owned_vignettes),
        selected_special_tolls=[
            SelectedSpecialTollPayload(
                id=toll.id, country_code=toll.country_code, name=toll.name, price=toll.price
            )
            for toll in trip.selected_special_tolls
        ],
    )
