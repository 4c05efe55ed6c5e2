from __future__ import annotations

import math

from toll_estimator.services.types import RoutePoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1_rad = math.radians(lat1)
    lon1_rad = math.radians(lon1)
    lat2_rad = math.radians(lat2)
    lon2_rad = math.radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2.0) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def build_route_points(coordinates: list[tuple[float, float]]) -> list[RoutePoint]:
    """Attach cumulative great-circle distance to GeoJSON ``(lon, lat)`` pairs."""
    points: list[RoutePoint] = []
    cumulative = 0.0
    for index, (lon, lat) in enumerate(coordinates):
        if index:
            prev_lon, prev_lat = coordinates[index - 1]
            cumulative += haversine_km(prev_lat, prev_lon, lat, lon)
        points.append(RoutePoint(latitude=lat, longitude=lon, distance_km=cumulative))
    return points
