from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from toll_estimator.exceptions import TollEstimatorError
from toll_estimator.services.types import RoutePoint

logger = logging.getLogger(__name__)


class CountryResolver(Protocol):
    def reverse_country(self, latitude: float, longitude: float) -> str | None:
        """Return the ISO2 code of the country containing the point, if known."""


@dataclass(slots=True, frozen=True)
class ResolverPolicy:
    """Throughput knobs for point-to-country lookups.

    ``max_workers=1`` issues calls sequentially with ``delay_seconds`` between
    them. Larger values fan out over a bounded thread pool; each worker still
    waits ``delay_seconds`` after its own call.
    """

    max_workers: int = 1
    delay_seconds: float = 0.1
    sleep: Callable[[float], None] = time.sleep


def resolve_countries(
    points: Sequence[RoutePoint],
    resolver: CountryResolver,
    policy: ResolverPolicy | None = None,
) -> list[str | None]:
    """Resolve each point to a country code, keeping input order.

    Individual failures of any kind are logged and reported as ``None`` so a
    single bad lookup never aborts segmentation.
    """
    policy = policy or ResolverPolicy()

    def resolve_one(point: RoutePoint) -> str | None:
        try:
            code = resolver.reverse_country(point.latitude, point.longitude)
        except TollEstimatorError as exc:
            logger.warning("Country lookup failed at %.1f km: %s", point.distance_km, exc)
            code = None
        except Exception:
            logger.exception("Unexpected country lookup error at %.1f km", point.distance_km)
            code = None
        if policy.delay_seconds:
            policy.sleep(policy.delay_seconds)
        return code.upper() if code else None

    if policy.max_workers <= 1 or len(points) <= 1:
        return [resolve_one(point) for point in points]

    with ThreadPoolExecutor(max_workers=policy.max_workers) as executor:
        # Executor.map yields in submission order, not completion order.
        return list(executor.map(resolve_one, points))
