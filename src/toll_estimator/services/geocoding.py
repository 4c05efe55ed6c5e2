from __future__ import annotations

import hashlib
import logging
import time
from typing import Any

import httpx
from django.conf import settings
from django.core.cache import cache

from toll_estimator.exceptions import (
    ExternalServiceError,
    InvalidLocationError,
    RouteAccessDeniedError,
)
from toll_estimator.services.singleflight import SingleFlight
from toll_estimator.services.types import GeocodeResult, GeoPoint

logger = logging.getLogger(__name__)

# Nominatim zoom level 3 resolves a point to country granularity.
COUNTRY_ZOOM = 3
_UNRESOLVED = ""


class GeocodingClient:
    def __init__(self) -> None:
        self.base_url = settings.GEOCODING_BASE_URL.rstrip("/")
        self.timeout = settings.GEOCODING_TIMEOUT_SECONDS
        self.retry_count = settings.GEOCODING_RETRY_COUNT
        self.user_agent = settings.GEOCODING_USER_AGENT
        self.language = settings.GEOCODING_LANGUAGE
        self._reverse_flight: SingleFlight[str | None] = SingleFlight()

    def geocode(self, query: str) -> GeocodeResult:
        cache_key = self._cache_key("geocode", query.lower())
        cached = cache.get(cache_key)
        if cached:
            return GeocodeResult(
                point=GeoPoint(latitude=cached["latitude"], longitude=cached["longitude"]),
                country_code=cached["country_code"],
                display_name=cached["display_name"],
            )

        payload = self._get(
            "search",
            {"q": query, "format": "jsonv2", "limit": 1, "addressdetails": 1},
        )
        result = self._parse_search(payload)
        cache.set(
            cache_key,
            {
                "latitude": result.point.latitude,
                "longitude": result.point.longitude,
                "country_code": result.country_code,
                "display_name": result.display_name,
            },
            timeout=settings.GEOCODE_CACHE_TTL_SECONDS,
        )
        return result

    def reverse_country(self, latitude: float, longitude: float) -> str | None:
        cache_key = self._cache_key("reverse", f"{latitude:.3f}:{longitude:.3f}")
        cached = cache.get(cache_key)
        if cached is not None:
            return cached or None

        def load() -> str | None:
            payload = self._get(
                "reverse",
                {
                    "lat": f"{latitude:.6f}",
                    "lon": f"{longitude:.6f}",
                    "format": "jsonv2",
                    "zoom": COUNTRY_ZOOM,
                    "addressdetails": 1,
                },
            )
            code = self._parse_country(payload)
            cache.set(
                cache_key,
                code or _UNRESOLVED,
                timeout=settings.GEOCODE_CACHE_TTL_SECONDS,
            )
            return code

        return self._reverse_flight.do(cache_key, load)

    def _get(self, endpoint: str, params: dict[str, Any]) -> Any:
        for attempt in range(self.retry_count + 1):
            try:
                response = httpx.get(
                    f"{self.base_url}/{endpoint}",
                    params=params,
                    timeout=self.timeout,
                    headers={
                        "Accept": "application/json",
                        "Accept-Language": self.language,
                        "User-Agent": self.user_agent,
                    },
                )
                if response.status_code in (401, 403):
                    raise RouteAccessDeniedError("Geocoding service denied the request")
                response.raise_for_status()
                return response.json()
            except ValueError as exc:
                raise ExternalServiceError("Geocoding service returned an unreadable response") from exc
            except httpx.HTTPError as exc:
                if attempt >= self.retry_count:
                    raise ExternalServiceError("Geocoding request failed") from exc
                logger.debug("Geocoding attempt %d failed: %s", attempt + 1, exc)
                time.sleep(0.3 * (attempt + 1))

        raise ExternalServiceError("Geocoding request failed")

    @staticmethod
    def _cache_key(kind: str, value: str) -> str:
        digest = hashlib.sha256(value.encode()).hexdigest()
        return f"{kind}:{digest}"

    @staticmethod
    def _parse_search(payload: Any) -> GeocodeResult:
        if not isinstance(payload, list) or not payload:
            raise InvalidLocationError("Location could not be resolved")

        first = payload[0]
        try:
            latitude = float(first["lat"])
            longitude = float(first["lon"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidLocationError("Invalid geocoding response") from exc

        country_code = str(first.get("address", {}).get("country_code", "")).upper()
        return GeocodeResult(
            point=GeoPoint(latitude=latitude, longitude=longitude),
            country_code=country_code,
            display_name=str(first.get("display_name", "")),
        )

    @staticmethod
    def _parse_country(payload: Any) -> str | None:
        if not isinstance(payload, dict) or "error" in payload:
            return None
        code = str(payload.get("address", {}).get("country_code", "")).strip()
        return code.upper() or None
