# observador_app/core/utils.py

import math
from typing import Iterable

from observador_app.config.constants import (
    NODE_SCORE_FLOOR,
    NODE_SCORE_CEILING,
    PERCENT_RANGE,
)


def clamp_score(raw: float) -> float:
    """
    Clamp a normalized score into [0.1, 1.0] before it becomes a node attribute.
    """
    return min(NODE_SCORE_CEILING, max(NODE_SCORE_FLOOR, raw))


def clamp01(x: float) -> float:
    """Clamp a float to the 0.0–1.0 range."""
    return max(0.0, min(1.0, x))


def clamp_percent(x: float) -> float:
    lo, hi = PERCENT_RANGE
    return max(lo, min(hi, x))


def average(values: Iterable[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def round_half_up(x: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(x + 0.5))


def to_percent(score: float) -> int:
    return round_half_up(score * 100)
