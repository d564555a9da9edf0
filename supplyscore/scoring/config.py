"""Scoring configuration.

Provides the weights, band toggle, risk-penalty parameters and final-score
policy for the scoring pipeline. Every field accepts its snake_case name or
the camelCase key used by stored settings documents (``riskLambda``,
``environmentalWeight``, ...).

Out-of-range values fail validation. Weight groups that do not sum to 1 are
accepted and logged, since several callers deliberately run unnormalized
weight sets.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import Field, model_validator

from supplyscore.models.common import (
    FinalScorePolicy,
    Pillar,
    RiskIndicator,
    SupplyScoreBase,
)

logger = logging.getLogger(__name__)

_WEIGHT_SUM_TOLERANCE = 1e-3


class ScoringSettings(SupplyScoreBase):
    """Configuration for supplier scoring.

    Holds per-pillar metric weights, the E/S/G composite weights, the
    industry-band toggle, risk-penalty parameters, the final-score policy,
    and the optional completeness-based disclosure cap.
    """

    model_config = {"frozen": True}

    # --- Normalization ---
    use_industry_bands: bool = Field(default=True, alias="useIndustryBands")

    # --- Composite (E/S/G) weights ---
    environmental_weight: float = Field(default=0.4, ge=0.0, le=1.0, alias="environmentalWeight")
    social_weight: float = Field(default=0.3, ge=0.0, le=1.0, alias="socialWeight")
    governance_weight: float = Field(default=0.3, ge=0.0, le=1.0, alias="governanceWeight")

    # --- Environmental metric weights ---
    emission_intensity_weight: float = Field(default=0.4, ge=0.0, le=1.0, alias="emissionIntensityWeight")
    renewable_share_weight: float = Field(default=0.2, ge=0.0, le=1.0, alias="renewableShareWeight")
    water_intensity_weight: float = Field(default=0.2, ge=0.0, le=1.0, alias="waterIntensityWeight")
    waste_intensity_weight: float = Field(default=0.2, ge=0.0, le=1.0, alias="wasteIntensityWeight")

    # --- Social metric weights ---
    injury_rate_weight: float = Field(default=0.3, ge=0.0, le=1.0, alias="injuryRateWeight")
    training_hours_weight: float = Field(default=0.2, ge=0.0, le=1.0, alias="trainingHoursWeight")
    wage_ratio_weight: float = Field(default=0.2, ge=0.0, le=1.0, alias="wageRatioWeight")
    diversity_weight: float = Field(default=0.3, ge=0.0, le=1.0, alias="diversityWeight")

    # --- Governance metric weights ---
    board_diversity_weight: float = Field(default=0.25, ge=0.0, le=1.0, alias="boardDiversityWeight")
    board_independence_weight: float = Field(default=0.25, ge=0.0, le=1.0, alias="boardIndependenceWeight")
    anti_corruption_weight: float = Field(default=0.2, ge=0.0, le=1.0, alias="antiCorruptionWeight")
    transparency_weight: float = Field(default=0.3, ge=0.0, le=1.0, alias="transparencyWeight")

    # --- Risk penalty ---
    risk_penalty_enabled: bool = Field(default=True, alias="riskPenaltyEnabled")
    default_risk_factor: float = Field(default=0.15, ge=0.0, le=1.0, alias="defaultRiskFactor")
    risk_weight_geopolitical: float = Field(default=0.33, ge=0.0, le=1.0, alias="riskWeightGeopolitical")
    risk_weight_climate: float = Field(default=0.33, ge=0.0, le=1.0, alias="riskWeightClimate")
    risk_weight_labor: float = Field(default=0.34, ge=0.0, le=1.0, alias="riskWeightLabor")
    risk_threshold: float = Field(default=0.3, ge=0.0, le=1.0, alias="riskThreshold")
    risk_lambda: float = Field(default=1.0, gt=0.0, alias="riskLambda")

    # --- Final score ---
    final_score_policy: FinalScorePolicy = Field(
        default=FinalScorePolicy.ADDITIVE, alias="finalScorePolicy"
    )
    disclosure_cap_enabled: bool = Field(default=False, alias="disclosureCapEnabled")
    disclosure_cap_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0, alias="disclosureCapThreshold"
    )
    disclosure_cap_score: float = Field(
        default=50.0, ge=0.0, le=100.0, alias="disclosureCapScore"
    )

    @model_validator(mode="after")
    def _warn_on_weight_sums(self) -> "ScoringSettings":
        groups: dict[str, Mapping[object, float]] = {
            "composite": self.pillar_weights,
            "risk": self.risk_weights,
        }
        for pillar, weights in self.metric_weights.items():
            groups[pillar.value] = weights
        for group, weights in groups.items():
            total = sum(weights.values())
            if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
                logger.warning(
                    "%s weights sum to %.4f, not 1.0; scores are not renormalized",
                    group,
                    total,
                )
        return self

    # ---------------------------------------------------------------
    # Grouped views
    # ---------------------------------------------------------------

    @property
    def pillar_weights(self) -> dict[Pillar, float]:
        return {
            Pillar.ENVIRONMENTAL: self.environmental_weight,
            Pillar.SOCIAL: self.social_weight,
            Pillar.GOVERNANCE: self.governance_weight,
        }

    @property
    def metric_weights(self) -> dict[Pillar, dict[str, float]]:
        """Metric weights per pillar, keyed by canonical metric name."""
        return {
            Pillar.ENVIRONMENTAL: {
                "emission_intensity": self.emission_intensity_weight,
                "renewable_pct": self.renewable_share_weight,
                "water_intensity": self.water_intensity_weight,
                "waste_intensity": self.waste_intensity_weight,
            },
            Pillar.SOCIAL: {
                "injury_rate": self.injury_rate_weight,
                "training_hours": self.training_hours_weight,
                "wage_ratio": self.wage_ratio_weight,
                "diversity_pct": self.diversity_weight,
            },
            Pillar.GOVERNANCE: {
                "board_diversity": self.board_diversity_weight,
                "board_independence": self.board_independence_weight,
                "anti_corruption": self.anti_corruption_weight,
                "transparency_score": self.transparency_weight,
            },
        }

    @property
    def risk_weights(self) -> dict[RiskIndicator, float]:
        return {
            RiskIndicator.GEOPOLITICAL: self.risk_weight_geopolitical,
            RiskIndicator.CLIMATE: self.risk_weight_climate,
            RiskIndicator.LABOR: self.risk_weight_labor,
        }

    def with_overrides(self, **updates: object) -> ScoringSettings:
        """Return a validated copy with some fields replaced.

        Keys may be field names or their camelCase aliases.
        """
        by_alias = {
            info.alias: name
            for name, info in type(self).model_fields.items()
            if info.alias
        }
        data = self.model_dump()
        for key, value in updates.items():
            data[by_alias.get(key, key)] = value
        return type(self).model_validate(data)

    def with_pillar_weights(self, weights: Mapping[Pillar, float]) -> ScoringSettings:
        return self.with_overrides(
            environmental_weight=weights[Pillar.ENVIRONMENTAL],
            social_weight=weights[Pillar.SOCIAL],
            governance_weight=weights[Pillar.GOVERNANCE],
        )
