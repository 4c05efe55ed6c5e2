from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from toll_estimator.exceptions import (
    ExternalServiceError,
    NoRouteFoundError,
    RouteAccessDeniedError,
)
from toll_estimator.services.geo import build_route_points
from toll_estimator.services.types import GeocodeResult, RouteData, RouteLeg

logger = logging.getLogger(__name__)

METERS_PER_KM = 1000.0
SECONDS_PER_MINUTE = 60.0


class OsrmClient:
    def __init__(self) -> None:
        self.base_url = settings.OSRM_BASE_URL.rstrip("/")
        self.timeout = settings.OSRM_TIMEOUT_SECONDS
        self.retry_count = settings.OSRM_RETRY_COUNT

    def route_through(self, stops: Sequence[GeocodeResult]) -> RouteData:
        if len(stops) < 2:
            raise NoRouteFoundError("At least two route waypoints are required")

        cache_key = self._cache_key(stops)
        cached = cache.get(cache_key)
        if cached:
            return self._build_route(cached, stops)

        coordinates = ";".join(
            f"{stop.point.longitude:.6f},{stop.point.latitude:.6f}" for stop in stops
        )
        endpoint = f"{self.base_url}/route/v1/driving/{coordinates}"
        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "false",
            "annotations": "false",
            "alternatives": "false",
        }

        for attempt in range(self.retry_count + 1):
            try:
                response = httpx.get(endpoint, params=params, timeout=self.timeout)
                if response.status_code in (401, 403):
                    raise RouteAccessDeniedError("Routing service denied the request")
                # OSRM reports unroutable input as 400 with a JSON body.
                if response.status_code != 400:
                    response.raise_for_status()
                route = self._extract_route(response.json())
                cache.set(cache_key, route, timeout=settings.ROUTE_CACHE_TTL_SECONDS)
                return self._build_route(route, stops)
            except ValueError as exc:
                raise ExternalServiceError("OSRM returned an unreadable response") from exc
            except httpx.HTTPError as exc:
                if attempt >= self.retry_count:
                    raise ExternalServiceError("OSRM request failed") from exc
                logger.debug("OSRM attempt %d failed: %s", attempt + 1, exc)
                time.sleep(0.3 * (attempt + 1))

        raise ExternalServiceError("OSRM request failed")

    @staticmethod
    def _cache_key(stops: Sequence[GeocodeResult]) -> str:
        encoded = "|".join(
            f"{stop.point.latitude:.5f}:{stop.point.longitude:.5f}" for stop in stops
        ).encode()
        digest = hashlib.sha256(encoded).hexdigest()
        return f"route:{digest}"

    @staticmethod
    def _extract_route(payload: Any) -> dict[str, Any]:
        if not isinstance(payload, dict) or payload.get("code") != "Ok":
            code = payload.get("code") if isinstance(payload, dict) else None
            raise NoRouteFoundError(f"Could not compute route ({code or 'unknown'})")

        routes = payload.get("routes") or []
        if not routes:
            raise NoRouteFoundError("Could not compute route")

        first = routes[0]
        coordinates = [tuple(coord) for coord in first.get("geometry", {}).get("coordinates", [])]
        if len(coordinates) < 2:
            raise NoRouteFoundError("Route geometry unavailable")

        return {
            "coordinates": coordinates,
            "distance_m": float(first.get("distance", 0.0)),
            "duration_s": float(first.get("duration", 0.0)),
            "legs": [
                {
                    "distance_m": float(leg.get("distance", 0.0)),
                    "duration_s": float(leg.get("duration", 0.0)),
                }
                for leg in first.get("legs", [])
            ],
        }

    @staticmethod
    def _build_route(route: dict[str, Any], stops: Sequence[GeocodeResult]) -> RouteData:
        legs = [
            RouteLeg(
                start_address=stops[index].display_name,
                end_address=stops[index + 1].display_name,
                distance_km=leg["distance_m"] / METERS_PER_KM,
                duration_minutes=leg["duration_s"] / SECONDS_PER_MINUTE,
            )
            for index, leg in enumerate(route["legs"][: len(stops) - 1])
        ]
        return RouteData(
            points=build_route_points([tuple(coord) for coord in route["coordinates"]]),
            legs=legs,
            distance_km=route["distance_m"] / METERS_PER_KM,
            duration_minutes=route["duration_s"] / SECONDS_PER_MINUTE,
        )
