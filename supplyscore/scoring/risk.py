"""Risk penalty calculation.

Formula (enabled, at least one indicator present):
    risk_raw    = weighted mean of available indicators (weights renormalized)
    risk_excess = max(0, risk_raw - threshold)
    raw_penalty = lambda * risk_excess * 100
    penalty     = clamp(raw_penalty, 0, 100)
    risk_factor = penalty / 100

Disabled -> penalty None and a legacy factor (mean of available indicators,
or default_risk_factor when none). Enabled with no indicators -> 0.0.
"""

from __future__ import annotations

from collections.abc import Mapping

from supplyscore.models.common import RiskIndicator, RiskLevel
from supplyscore.scoring.config import ScoringSettings
from supplyscore.scoring.metrics import to_number
from supplyscore.scoring.models import RiskAssessment

# Upper bounds (exclusive) for each level; anything above is CRITICAL.
_RISK_LEVEL_THRESHOLDS: list[tuple[float, RiskLevel]] = [
    (0.2, RiskLevel.LOW),
    (0.4, RiskLevel.MEDIUM),
    (0.6, RiskLevel.HIGH),
]


def risk_level(factor: float) -> RiskLevel:
    for upper, level in _RISK_LEVEL_THRESHOLDS:
        if factor < upper:
            return level
    return RiskLevel.CRITICAL


def normalize_indicator(value: object) -> float | None:
    """Indicator on [0, 1]; values above 1 are read as percentages."""
    number = to_number(value)
    if number is None:
        return None
    if number > 1:
        number = number / 100
    return max(0.0, min(1.0, number))


def legacy_risk_factor(
    indicators: Mapping[RiskIndicator, float | None],
    default: float,
) -> float:
    available = [v for v in indicators.values() if v is not None]
    if not available:
        return default
    return max(0.0, min(1.0, sum(available) / len(available)))


def compute_risk_penalty(
    risks: Mapping[RiskIndicator, object],
    settings: ScoringSettings,
) -> RiskAssessment:
    """Compute the risk penalty and backward-compatible risk factor."""
    indicators = {
        indicator: normalize_indicator(risks.get(indicator))
        for indicator in RiskIndicator
    }

    if not settings.risk_penalty_enabled:
        factor = legacy_risk_factor(indicators, settings.default_risk_factor)
        return RiskAssessment(
            enabled=False,
            factor=factor,
            penalty=None,
            level=risk_level(factor),
            indicators=indicators,
        )

    available = {k: v for k, v in indicators.items() if v is not None}
    if not available:
        return RiskAssessment(
            enabled=True,
            factor=0.0,
            penalty=0.0,
            raw_penalty=0.0,
            level=risk_level(0.0),
            indicators=indicators,
        )

    configured = settings.risk_weights
    total_weight = sum(configured[k] for k in available)
    if total_weight > 0:
        weights = {k: configured[k] / total_weight for k in available}
    else:
        weights = {k: 1.0 / len(available) for k in available}

    risk_raw = sum(weights[k] * v for k, v in available.items())
    excess = max(0.0, risk_raw - settings.risk_threshold)
    raw_penalty = settings.risk_lambda * excess * 100
    penalty = max(0.0, min(100.0, raw_penalty))
    factor = penalty / 100

    return RiskAssessment(
        enabled=True,
        factor=factor,
        penalty=penalty,
        raw_penalty=raw_penalty,
        risk_raw=risk_raw,
        level=risk_level(factor),
        indicators=indicators,
        weights=weights,
    )
