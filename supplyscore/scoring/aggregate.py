"""Pillar aggregation, composite score, completeness and final-score policy.

Missing normalized values contribute 0 to a pillar; weights are never
renormalized at this level.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from supplyscore.models.common import FinalScorePolicy, Pillar
from supplyscore.scoring.config import ScoringSettings
from supplyscore.scoring.metrics import ANTI_CORRUPTION, TOTAL_METRIC_SLOTS
from supplyscore.scoring.models import NormalizedMetric, PillarScores, RiskAssessment


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def anti_corruption_score(flag: bool | None) -> float:
    return 1.0 if flag else 0.0


def compute_pillar_scores(
    normalized: Mapping[str, NormalizedMetric],
    anti_corruption: bool | None,
    settings: ScoringSettings,
) -> PillarScores:
    """Weighted sum of normalized metrics per pillar, scaled to 0-100."""
    scores: dict[str, float] = {}
    for pillar, weights in settings.metric_weights.items():
        total = 0.0
        for metric, weight in weights.items():
            if metric == ANTI_CORRUPTION:
                value = anti_corruption_score(anti_corruption)
            else:
                entry = normalized.get(metric)
                value = entry.normalized if entry and entry.normalized is not None else 0.0
            total += value * weight
        scores[pillar.value] = _clamp_score(total * 100)
    return PillarScores(**scores)


def compute_composite(pillars: PillarScores, settings: ScoringSettings) -> float:
    composite = sum(
        pillars.get(pillar) * weight
        for pillar, weight in settings.pillar_weights.items()
    )
    return _clamp_score(composite)


def completeness_ratio(
    normalized: Mapping[str, NormalizedMetric],
    anti_corruption: bool | None,
) -> float:
    """Observed (non-imputed) slots over all 12 metric slots."""
    observed = sum(1 for entry in normalized.values() if entry.raw is not None)
    if anti_corruption is not None:
        observed += 1
    return observed / TOTAL_METRIC_SLOTS


@dataclass(frozen=True)
class FinalScore:
    value: float
    disclosure_capped: bool = False


def combine_final_score(
    composite: float,
    risk: RiskAssessment,
    completeness: float,
    settings: ScoringSettings,
) -> FinalScore:
    """Apply exactly one risk adjustment, then the optional disclosure cap.

    ADDITIVE subtracts the penalty (nothing when the penalty is disabled);
    MULTIPLICATIVE scales by (1 - risk_factor). Under ADDITIVE with the
    penalty disabled, the legacy risk factor and level are reported only.
    """
    if settings.final_score_policy == FinalScorePolicy.MULTIPLICATIVE:
        final = composite * (1 - risk.factor)
    else:
        final = composite - (risk.penalty or 0.0)
    final = _clamp_score(final)

    capped = False
    if (
        settings.disclosure_cap_enabled
        and completeness < settings.disclosure_cap_threshold
        and final > settings.disclosure_cap_score
    ):
        final = settings.disclosure_cap_score
        capped = True
    return FinalScore(value=final, disclosure_capped=capped)
