from __future__ import annotations

import hashlib
from collections.abc import Sequence

from django.conf import settings
from django.core.cache import cache

from toll_estimator.exceptions import StaleRequestError


def route_fingerprint(
    origin: str,
    destination: str,
    waypoints: Sequence[str] = (),
    countries: Sequence[str] = (),
) -> str:
    encoded = "|".join(
        [
            origin.strip().lower(),
            destination.strip().lower(),
            ";".join(waypoint.strip().lower() for waypoint in waypoints if waypoint.strip()),
            ",".join(code.upper() for code in countries),
        ]
    ).encode()
    return hashlib.sha256(encoded).hexdigest()


class FreshnessGate:
    """Remember the latest route fingerprint per session.

    A caller registers its fingerprint before starting slow work and checks
    it again before publishing; if a newer request for the same session came
    in meanwhile, the older result is dropped. Entries live in the Django
    cache and expire after ``ttl_seconds``; a session whose entry expired has
    no newer request on record and is not blocked.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.FINGERPRINT_TTL_SECONDS
        )

    def begin(self, session_id: str, fingerprint: str) -> None:
        cache.set(self._cache_key(session_id), fingerprint, timeout=self.ttl_seconds)

    def is_current(self, session_id: str, fingerprint: str) -> bool:
        latest = cache.get(self._cache_key(session_id))
        return latest is None or latest == fingerprint

    def ensure_current(self, session_id: str, fingerprint: str) -> None:
        if not self.is_current(session_id, fingerprint):
            raise StaleRequestError("Route inputs changed while detection was running")

    @staticmethod
    def _cache_key(session_id: str) -> str:
        digest = hashlib.sha256(session_id.encode()).hexdigest()
        return f"fingerprint:{digest}"
