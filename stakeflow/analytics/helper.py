"""
Numeric helpers shared by the analytics modules.

Every ratio in the statistics payload goes through ``safe_ratio`` so that a
zero denominator yields the documented default instead of NaN or infinity.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional


def safe_ratio(numerator: float, denominator: float, default: Optional[float] = 0.0) -> Optional[float]:
    """numerator / denominator, or ``default`` when the result would not be finite."""
    if denominator == 0:
        return default
    result = numerator / denominator
    if not math.isfinite(result):
        return default
    return result


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round halves away from zero, independent of float binary representation quirks."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_half_up_int(value: float) -> int:
    return int(round_half_up(value, 0))


def pace_min_per_km(moving_time_seconds: float, distance_meters: float) -> float:
    """Distance-weighted pace, 0 when there is no distance."""
    return safe_ratio(moving_time_seconds / 60, distance_meters / 1000)
