from __future__ import annotations

from collections.abc import Sequence

from toll_estimator.services.types import VignetteTier


def select_vignette(tiers: Sequence[VignetteTier], trip_duration_days: int) -> VignetteTier:
    """Return the cheapest tier covering the trip, or the last tier when none does."""
    assert tiers, "vignette countries must declare at least one tier"

    covering = [tier for tier in tiers if tier.duration_days >= trip_duration_days]
    if not covering:
        return tiers[-1]

    # min() keeps declaration order among equally priced tiers.
    return min(covering, key=lambda tier: tier.price)
