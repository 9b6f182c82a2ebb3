from __future__ import annotations

import math
from typing import Any


FACTOR_MIN = 0.8
FACTOR_MAX = 1.2
SCORE_CEILING = 1.2


def num(value: Any, default: float = 0.0) -> float:
    """Coerce a loosely typed value to a finite float, else return ``default``."""
    if value is None:
        return default
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(result):
        return default
    return result


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def pct01(value: Any) -> float:
    # Missing achievement counts as fully met.
    return clamp(num(value, 100.0) / 100.0, 0.0, SCORE_CEILING)


def clamp_factor(value: Any, default: float = 1.0) -> float:
    return clamp(num(value, default), FACTOR_MIN, FACTOR_MAX)
