from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from toll_estimator.services.country_rules import iter_special_tolls
from toll_estimator.services.geo import haversine_km
from toll_estimator.services.types import RoutePoint, SelectedSpecialToll, SpecialToll

logger = logging.getLogger(__name__)

DETECTION_RADIUS_KM = 8.0
MAX_POINT_CHECKS = 500


def is_toll_on_route(
    toll: SpecialToll,
    points: Sequence[RoutePoint],
    radius_km: float = DETECTION_RADIUS_KM,
) -> bool:
    stride = max(1, len(points) // MAX_POINT_CHECKS)
    for point in points[::stride]:
        if haversine_km(toll.latitude, toll.longitude, point.latitude, point.longitude) <= radius_km:
            return True
    return False


def detect_tolls_on_route(
    points: Sequence[RoutePoint],
    radius_km: float = DETECTION_RADIUS_KM,
) -> frozenset[str]:
    if not points:
        return frozenset()

    detected = frozenset(
        toll.id for _, toll in iter_special_tolls() if is_toll_on_route(toll, points, radius_km)
    )
    logger.info("Geometric detection matched %d special tolls", len(detected))
    return detected


def choose_detection(ai_ids: Iterable[str], geometric_ids: Iterable[str]) -> frozenset[str]:
    """AI detection wins whenever it found something."""
    ai_ids = frozenset(ai_ids)
    return ai_ids if ai_ids else frozenset(geometric_ids)


def select_detected_tolls(
    detected_ids: Iterable[str],
    route_countries: Sequence[str] = (),
) -> list[SelectedSpecialToll]:
    """Turn detected ids into selections, one per physical structure.

    A border tunnel is listed once per adjoining country under different ids.
    When several detected entries share name and coordinates, only one is
    kept, attributed to the earliest route country that lists it (or the
    first listing when none of them is on the route).
    """
    detected_ids = frozenset(detected_ids)
    grouped: dict[tuple[str, float, float], list[SelectedSpecialToll]] = {}
    for rule, toll in iter_special_tolls():
        if toll.id not in detected_ids:
            continue
        key = (toll.name, toll.latitude, toll.longitude)
        grouped.setdefault(key, []).append(
            SelectedSpecialToll(id=toll.id, country_code=rule.code, name=toll.name, price=toll.price)
        )

    order = {code: index for index, code in enumerate(route_countries)}
    selected: list[SelectedSpecialToll] = []
    for candidates in grouped.values():
        on_route = [toll for toll in candidates if toll.country_code in order]
        if on_route:
            selected.append(min(on_route, key=lambda toll: order[toll.country_code]))
        else:
            selected.append(candidates[0])
    return selected


def toggle_special_toll(
    selected: Sequence[SelectedSpecialToll],
    country_code: str,
    toll: SpecialToll,
) -> tuple[SelectedSpecialToll, ...]:
    if any(item.id == toll.id for item in selected):
        return tuple(item for item in selected if item.id != toll.id)
    return (
        *selected,
        SelectedSpecialToll(id=toll.id, country_code=country_code, name=toll.name, price=toll.price),
    )
