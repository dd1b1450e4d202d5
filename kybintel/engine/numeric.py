"""Small numeric helpers shared by the engine components."""

import math
from typing import Iterable


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from -inf (2.5 -> 3, 3.5 -> 4).

    Python's round() is banker's rounding; scores must not flip between
    bands depending on the parity of the integer part.
    """
    return int(math.floor(value + 0.5))


def safe_mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty input."""
    items = list(values)
    if not items:
        return 0.0
    return sum(items) / len(items)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
