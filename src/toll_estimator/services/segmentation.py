"""Attribute route distance to countries.

The primary strategy samples the route polyline, resolves each sample to a
country and places borders halfway between consecutive samples that disagree.
When nothing resolves, the leg addresses returned by the routing service are
parsed for a country name and the distance is split evenly.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from collections.abc import Sequence

from toll_estimator.services.country_rules import COUNTRY_NAME_TO_CODE, is_supported
from toll_estimator.services.resolver import CountryResolver, ResolverPolicy, resolve_countries
from toll_estimator.services.rounding import round_half_up
from toll_estimator.services.types import (
    CountryDistance,
    CountrySample,
    CountrySegment,
    RouteLeg,
    RoutePoint,
)

logger = logging.getLogger(__name__)

MIN_SAMPLES = 15
MAX_SAMPLES = 50
KM_PER_SAMPLE = 10


def sample_count(total_distance_km: float) -> int:
    return min(MAX_SAMPLES, max(MIN_SAMPLES, int(total_distance_km // KM_PER_SAMPLE)))


def sample_indices(points: Sequence[RoutePoint], total_distance_km: float) -> list[int]:
    """Pick point indices closest to evenly spaced distance offsets.

    Returned indices are unique and increasing even when the polyline is
    much denser in some places than in others.
    """
    if not points:
        return []

    cumulative = [point.distance_km for point in points]
    path_distance = cumulative[-1] or total_distance_km
    num_samples = sample_count(total_distance_km)

    indices: list[int] = []
    for i in range(num_samples):
        target = path_distance * i / (num_samples - 1)
        position = bisect_left(cumulative, target)
        if position >= len(cumulative):
            closest = len(cumulative) - 1
        elif position == 0:
            closest = 0
        elif target - cumulative[position - 1] <= cumulative[position] - target:
            closest = position - 1
        else:
            closest = position
        # First point carrying this distance wins when the polyline repeats a vertex.
        closest = bisect_left(cumulative, cumulative[closest])
        if not indices or indices[-1] != closest:
            indices.append(closest)
    return indices


def collect_samples(
    points: Sequence[RoutePoint],
    indices: Sequence[int],
    resolver: CountryResolver,
    policy: ResolverPolicy | None = None,
) -> list[CountrySample]:
    sampled_points = [points[index] for index in indices]
    codes = resolve_countries(sampled_points, resolver, policy)

    samples: list[CountrySample] = []
    for point, code in zip(sampled_points, codes):
        if code is None:
            continue
        if not is_supported(code):
            logger.info("Point at %.1f km resolved to unsupported country %s", point.distance_km, code)
            continue
        samples.append(CountrySample(country_code=code, distance_km=point.distance_km))

    logger.info("Resolved %d of %d sampled points", len(samples), len(sampled_points))
    return samples


def build_segments(
    samples: Sequence[CountrySample], total_distance_km: float
) -> list[CountrySegment]:
    if not samples:
        return []

    segments: list[CountrySegment] = []
    current = samples[0].country_code
    start_km = 0.0
    for previous, sample in zip(samples, samples[1:]):
        if sample.country_code == current:
            continue
        border_km = (previous.distance_km + sample.distance_km) / 2
        logger.debug("Border at ~%.1f km: %s -> %s", border_km, current, sample.country_code)
        segments.append(CountrySegment(country_code=current, start_km=start_km, end_km=border_km))
        current = sample.country_code
        start_km = border_km

    segments.append(
        CountrySegment(country_code=current, start_km=start_km, end_km=total_distance_km)
    )
    return segments


def aggregate_segments(segments: Sequence[CountrySegment]) -> list[CountryDistance]:
    totals: dict[str, float] = {}
    for segment in segments:
        totals[segment.country_code] = totals.get(segment.country_code, 0.0) + segment.length_km

    # dict preserves first-appearance order, so A -> B -> A yields [A, B].
    return [
        CountryDistance(country_code=code, distance_km=round_half_up(distance, 1))
        for code, distance in totals.items()
    ]


def segment_route(
    points: Sequence[RoutePoint],
    total_distance_km: float,
    resolver: CountryResolver,
    policy: ResolverPolicy | None = None,
) -> list[CountryDistance]:
    indices = sample_indices(points, total_distance_km)
    if not indices:
        return []

    logger.info("Sampling %d points along %.1f km route", len(indices), total_distance_km)
    samples = collect_samples(points, indices, resolver, policy)
    return aggregate_segments(build_segments(samples, total_distance_km))


def extract_country_from_address(address: str) -> str | None:
    parts = [part.strip() for part in address.split(",")]
    for part in reversed(parts):
        candidate = "".join(char for char in part if not char.isdigit()).strip().lower()
        if not candidate:
            continue
        for name, code in COUNTRY_NAME_TO_CODE.items():
            if name.lower() in candidate:
                return code
    return None


def fallback_country_distances(
    legs: Sequence[RouteLeg], total_distance_km: float
) -> list[CountryDistance]:
    """Split distance evenly across countries named in the leg addresses."""
    countries: list[str] = []
    for leg in legs:
        for address in (leg.start_address, leg.end_address):
            if not address:
                continue
            code = extract_country_from_address(address)
            if code and is_supported(code) and code not in countries:
                countries.append(code)

    logger.info("Address fallback found countries: %s", countries)
    if not countries:
        return []

    share = round_half_up(total_distance_km / len(countries), 1)
    return [CountryDistance(country_code=code, distance_km=share) for code in countries]


def attribute_route(
    points: Sequence[RoutePoint],
    legs: Sequence[RouteLeg],
    total_distance_km: float,
    resolver: CountryResolver,
    policy: ResolverPolicy | None = None,
) -> list[CountryDistance]:
    """Sampled segmentation, degrading to the leg-address split when it yields nothing."""
    distances = segment_route(points, total_distance_km, resolver, policy)
    if distances:
        return distances

    logger.warning("Sampled country detection returned nothing, using address fallback")
    return fallback_country_distances(legs, total_distance_km)
