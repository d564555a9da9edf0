"""Scoring result models.

ScoreResult is the compact per-supplier output; ScoreBreakdown carries the
full audit detail (normalized metrics, weights, risk assessment) and
CalculationTrace re-expresses a breakdown as ordered steps for
transparency tooling.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field

from supplyscore.models.common import (
    FinalScorePolicy,
    Pillar,
    RiskIndicator,
    RiskLevel,
    ScoreValue,
    SupplyScoreBase,
    UnitInterval,
    UTCTimestamp,
    utc_now,
)


class NormalizedMetric(SupplyScoreBase):
    """One metric after imputation and normalization."""

    metric: str
    raw: float | None = None
    value: float | None = None
    normalized: UnitInterval | None = None
    imputed: bool = False
    band_min: float
    band_max: float


class PillarScores(SupplyScoreBase):
    """Environmental, social and governance scores on the 0-100 scale."""

    environmental: ScoreValue
    social: ScoreValue
    governance: ScoreValue

    def get(self, pillar: Pillar) -> float:
        return getattr(self, pillar.value)


class RiskAssessment(SupplyScoreBase):
    """Outcome of the risk-penalty calculation.

    ``penalty`` is None when the penalty feature is disabled and 0.0 when it
    is enabled but no indicators were present. ``raw_penalty`` is the
    unclamped value and may exceed 100.
    """

    enabled: bool
    factor: UnitInterval
    penalty: ScoreValue | None = None
    raw_penalty: float | None = None
    risk_raw: float | None = None
    level: RiskLevel
    indicators: dict[RiskIndicator, float | None] = Field(default_factory=dict)
    weights: dict[RiskIndicator, float] = Field(default_factory=dict)


class ScoreResult(SupplyScoreBase):
    """Compact scoring output for one supplier (all values unrounded)."""

    environmental_score: ScoreValue
    social_score: ScoreValue
    governance_score: ScoreValue
    composite_score: ScoreValue
    completeness_ratio: UnitInterval
    risk_factor: UnitInterval
    risk_penalty: ScoreValue | None = None
    risk_level: RiskLevel
    final_score: ScoreValue = Field(
        validation_alias=AliasChoices("final_score", "ethical_score"),
    )

    @property
    def ethical_score(self) -> float:
        return self.final_score


class ScoreBreakdown(SupplyScoreBase):
    """Full audit detail behind a ScoreResult."""

    industry: str
    normalized_metrics: dict[str, NormalizedMetric]
    anti_corruption: bool | None = None
    pillar_scores: PillarScores
    pillar_weights: dict[Pillar, float]
    metric_weights: dict[Pillar, dict[str, float]]
    composite_score: ScoreValue
    risk: RiskAssessment
    completeness_ratio: UnitInterval
    final_score: ScoreValue
    use_industry_bands: bool
    final_score_policy: FinalScorePolicy
    disclosure_capped: bool = False

    @property
    def ethical_score(self) -> float:
        return self.final_score

    def to_result(self) -> ScoreResult:
        return ScoreResult(
            environmental_score=self.pillar_scores.environmental,
            social_score=self.pillar_scores.social,
            governance_score=self.pillar_scores.governance,
            composite_score=self.composite_score,
            completeness_ratio=self.completeness_ratio,
            risk_factor=self.risk.factor,
            risk_penalty=self.risk.penalty,
            risk_level=self.risk.level,
            final_score=self.final_score,
        )


class TraceStep(SupplyScoreBase):
    """One stage of the raw -> normalized -> weighted -> composite trace."""

    name: str
    description: str
    values: dict[str, float | bool | None]


class CalculationTrace(SupplyScoreBase):
    """Ordered calculation steps for one supplier."""

    supplier_id: str | None = None
    supplier_name: str | None = None
    timestamp: UTCTimestamp = Field(default_factory=utc_now)
    steps: list[TraceStep]
    final_score: ScoreValue
    pillar_scores: PillarScores
