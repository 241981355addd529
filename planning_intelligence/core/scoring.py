from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3), unlike ``round``."""
    return int(math.floor(value + 0.5))


def round_tenths(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))
