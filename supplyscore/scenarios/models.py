"""Scenario parameters and results.

Parameters are validated pydantic models (camelCase aliases accepted);
results are immutable dataclasses carrying their own baseline comparison.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from pydantic import Field, field_validator

from supplyscore.models.common import SupplyScoreBase
from supplyscore.scenarios.ranking import Ranking, ScoringFailure
from supplyscore.scenarios.statistics import DisparityStats, RankShiftStats
from supplyscore.scoring.metrics import METRIC_KEYS

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ScenarioType(StrEnum):
    """S1 utility, S2 sensitivity, S3 missingness, S4 ablation."""

    S1 = "s1"
    S2 = "s2"
    S3 = "s3"
    S4 = "s4"


class MarginMode(StrEnum):
    ABSOLUTE = "absolute"
    RELATIVE_TO_MAX = "relative_to_max"


class SensitivityTarget(StrEnum):
    FINAL_SCORE = "final_score"
    ENVIRONMENTAL_WEIGHT = "environmental_weight"


class UtilityOrder(StrEnum):
    """How S1 orders the kept suppliers."""

    FINAL_SCORE = "final_score"
    EMISSION_INTENSITY = "emission_intensity"


class ImputationMethod(StrEnum):
    INDUSTRY_MEAN = "industry_mean"
    KNN = "knn"


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


class UtilityParams(SupplyScoreBase):
    """S1: keep suppliers whose final score clears a margin threshold.

    ABSOLUTE treats ``margin_min`` as a score; RELATIVE_TO_MAX treats it as
    a percentage of the best baseline final score.

    The kept set is ranked by final score, or with ``order`` set to
    EMISSION_INTENSITY, by ascending emission intensity
    (missing last, higher final score first on ties).
    """

    margin_min: float = Field(default=10.0, ge=0.0, le=100.0, alias="marginMin")
    margin_mode: MarginMode = Field(default=MarginMode.ABSOLUTE, alias="marginMode")
    order: UtilityOrder = UtilityOrder.FINAL_SCORE


class SensitivityParams(SupplyScoreBase):
    """S2: perturb final scores (or the environmental weight) by a fraction."""

    perturbation: float = Field(default=0.10, gt=-1.0)
    target: SensitivityTarget = SensitivityTarget.FINAL_SCORE


class MissingnessParams(SupplyScoreBase):
    """S3: null out metrics at random, impute, rescore."""

    missing_pct: float = Field(default=5.0, ge=0.0, le=100.0, alias="missingPct")
    imputation: ImputationMethod = ImputationMethod.INDUSTRY_MEAN
    k: int = Field(default=5, ge=1)
    seed: int = 42
    metrics: tuple[str, ...] = METRIC_KEYS

    @field_validator("metrics")
    @classmethod
    def _known_metrics(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [m for m in v if m not in METRIC_KEYS]
        if unknown:
            msg = f"Unknown candidate metrics: {unknown}"
            raise ValueError(msg)
        if not v:
            msg = "At least one candidate metric is required"
            raise ValueError(msg)
        return v


class AblationParams(SupplyScoreBase):
    """S4: rescore with the industry-band toggle flipped (None) or set."""

    use_industry_bands: bool | None = Field(default=None, alias="useIndustryBands")


ScenarioParams = UtilityParams | SensitivityParams | MissingnessParams | AblationParams


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UtilityResult:
    run_id: UUID
    scenario: ScenarioType
    baseline: list[Ranking]
    ranking: list[Ranking]
    threshold: float
    excluded_ids: list[str]
    baseline_total: float
    constrained_total: float
    delta_objective_pct: float
    baseline_mean_emission_intensity: float | None
    constrained_mean_emission_intensity: float | None
    failures: list[ScoringFailure]


@dataclass(frozen=True)
class SensitivityResult:
    run_id: UUID
    scenario: ScenarioType
    baseline: list[Ranking]
    ranking: list[Ranking]
    perturbation: float
    target: SensitivityTarget
    kendall_tau: float
    rank_shifts: RankShiftStats
    failures: list[ScoringFailure]


@dataclass(frozen=True)
class MissingnessResult:
    run_id: UUID
    scenario: ScenarioType
    baseline: list[Ranking]
    ranking: list[Ranking]
    missing_pct: float
    imputation: ImputationMethod
    seed: int
    nulled_cells: int
    top3_preservation: float
    mae: float
    failures: list[ScoringFailure]


@dataclass(frozen=True)
class AblationResult:
    run_id: UUID
    scenario: ScenarioType
    baseline: list[Ranking]
    ranking: list[Ranking]
    use_industry_bands: bool
    kendall_tau: float
    disparity: DisparityStats
    baseline_disparity: DisparityStats
    failures: list[ScoringFailure]


ScenarioResult = UtilityResult | SensitivityResult | MissingnessResult | AblationResult
