from __future__ import annotations

import math


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positive amounts, unlike ``round``."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor
