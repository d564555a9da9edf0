"""Min-max normalization of canonical metrics onto [0, 1].

Direction per metric comes from METRIC_DIRECTIONS (anything not listed is
higher-is-better). Bands are never degenerate, so plain division is safe.
"""

from __future__ import annotations

from supplyscore.models.common import MetricDirection
from supplyscore.scoring.bands import Band
from supplyscore.scoring.metrics import METRIC_DIRECTIONS

# wage_ratio rewards parity: the band is widened to at least [0.6, 1.2].
WAGE_RATIO_LOWER = 0.6
WAGE_RATIO_UPPER = 1.2


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def direction_for(metric: str) -> MetricDirection:
    return METRIC_DIRECTIONS.get(metric, MetricDirection.HIGHER_IS_BETTER)


def normalize_lower_is_better(value: float, band: Band) -> float:
    x = clamp(value, band.min, band.max)
    return (band.max - x) / band.width


def normalize_higher_is_better(value: float, band: Band) -> float:
    x = clamp(value, band.min, band.max)
    return (x - band.min) / band.width


def normalize_wage_ratio(value: float, band: Band) -> float:
    """Asymmetric curve around parity.

    Ratios at or above 1.0 saturate at 1; below 1.0 the score falls
    linearly to 0 at the (widened) lower bound.
    """
    upper = max(band.max, WAGE_RATIO_UPPER)
    lower = min(band.min, WAGE_RATIO_LOWER)
    x = clamp(value, lower, upper)
    if x >= 1.0:
        return min(1.0, (x - 1.0) / (upper - 1.0) + 1.0)
    return (x - lower) / (1.0 - lower)


_NORMALIZERS = {
    MetricDirection.LOWER_IS_BETTER: normalize_lower_is_better,
    MetricDirection.HIGHER_IS_BETTER: normalize_higher_is_better,
    MetricDirection.WAGE_RATIO: normalize_wage_ratio,
}


def normalize(metric: str, value: float | None, band: Band) -> float | None:
    """Normalize a raw (or imputed) value into [0, 1]; None passes through."""
    if value is None:
        return None
    result = _NORMALIZERS[direction_for(metric)](value, band)
    return clamp(result, 0.0, 1.0)
