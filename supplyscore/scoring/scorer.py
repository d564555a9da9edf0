"""Supplier scoring pipeline.

derive -> impute -> normalize -> pillars -> composite -> risk -> final.

Scoring is a pure function of (record, settings, band context); the band
context is read-only and may be shared across threads.
"""

from __future__ import annotations

from collections.abc import Mapping

from supplyscore.scoring.aggregate import (
    combine_final_score,
    completeness_ratio,
    compute_composite,
    compute_pillar_scores,
)
from supplyscore.scoring.bands import BandContext
from supplyscore.scoring.config import ScoringSettings
from supplyscore.scoring.metrics import METRIC_KEYS, DerivedMetrics, derive_metrics
from supplyscore.scoring.models import (
    CalculationTrace,
    NormalizedMetric,
    ScoreBreakdown,
    ScoreResult,
    TraceStep,
)
from supplyscore.scoring.normalize import normalize
from supplyscore.scoring.risk import compute_risk_penalty


class SupplierScorer:
    """Scores suppliers against one band context with one settings object."""

    def __init__(
        self,
        bands: BandContext | None = None,
        settings: ScoringSettings | None = None,
    ) -> None:
        self._bands = bands or BandContext.default()
        self._settings = settings or ScoringSettings()

    @property
    def bands(self) -> BandContext:
        return self._bands

    @property
    def settings(self) -> ScoringSettings:
        return self._settings

    # ---------------------------------------------------------------
    # Normalization (with explicit imputation)
    # ---------------------------------------------------------------

    def normalize_metrics(self, derived: DerivedMetrics) -> dict[str, NormalizedMetric]:
        """Impute missing values with the band average, then normalize.

        Imputation happens exactly once per metric, here.
        """
        use_industry = self._settings.use_industry_bands
        result: dict[str, NormalizedMetric] = {}
        for metric in METRIC_KEYS:
            raw = derived.values.get(metric)
            value = raw
            imputed = False
            if value is None:
                value = self._bands.get_average(metric, derived.industry, use_industry)
                imputed = True
            band = self._bands.get_band(metric, derived.industry, use_industry)
            result[metric] = NormalizedMetric(
                metric=metric,
                raw=raw,
                value=value,
                normalized=normalize(metric, value, band),
                imputed=imputed,
                band_min=band.min,
                band_max=band.max,
            )
        return result

    # ---------------------------------------------------------------
    # Scoring
    # ---------------------------------------------------------------

    def score_derived(self, derived: DerivedMetrics) -> ScoreBreakdown:
        settings = self._settings
        normalized = self.normalize_metrics(derived)
        pillars = compute_pillar_scores(normalized, derived.anti_corruption, settings)
        composite = compute_composite(pillars, settings)
        completeness = completeness_ratio(normalized, derived.anti_corruption)
        risk = compute_risk_penalty(derived.risks, settings)
        final = combine_final_score(composite, risk, completeness, settings)

        return ScoreBreakdown(
            industry=derived.industry,
            normalized_metrics=normalized,
            anti_corruption=derived.anti_corruption,
            pillar_scores=pillars,
            pillar_weights=settings.pillar_weights,
            metric_weights=settings.metric_weights,
            composite_score=composite,
            risk=risk,
            completeness_ratio=completeness,
            final_score=final.value,
            use_industry_bands=settings.use_industry_bands,
            final_score_policy=settings.final_score_policy,
            disclosure_capped=final.disclosure_capped,
        )

    def score_with_breakdown(self, record: Mapping[str, object]) -> ScoreBreakdown:
        return self.score_derived(derive_metrics(record))

    def score(self, record: Mapping[str, object]) -> ScoreResult:
        return self.score_with_breakdown(record).to_result()


# ---------------------------------------------------------------------------
# Module-level API
# ---------------------------------------------------------------------------


def score_supplier(
    record: Mapping[str, object],
    settings: ScoringSettings | None = None,
    bands: BandContext | None = None,
) -> ScoreResult:
    """Score one raw supplier record."""
    return SupplierScorer(bands, settings).score(record)


def score_supplier_with_breakdown(
    record: Mapping[str, object],
    settings: ScoringSettings | None = None,
    bands: BandContext | None = None,
) -> ScoreBreakdown:
    """Score one raw supplier record and return the full audit breakdown."""
    return SupplierScorer(bands, settings).score_with_breakdown(record)


def build_calculation_trace(
    breakdown: ScoreBreakdown,
    supplier_id: str | None = None,
    supplier_name: str | None = None,
) -> CalculationTrace:
    """Express a breakdown as raw -> normalized -> weighted -> composite steps."""
    metrics = breakdown.normalized_metrics
    raw_values: dict[str, float | bool | None] = {k: m.raw for k, m in metrics.items()}
    raw_values["anti_corruption"] = breakdown.anti_corruption
    pillars = breakdown.pillar_scores

    steps = [
        TraceStep(
            name="raw",
            description="Raw metric values from supplier data",
            values=raw_values,
        ),
        TraceStep(
            name="normalized",
            description="Band-normalized values (0-1 scale)",
            values={k: m.normalized for k, m in metrics.items()},
        ),
        TraceStep(
            name="weighted",
            description="Weighted aggregation into pillar scores",
            values={
                "environmental": pillars.environmental,
                "social": pillars.social,
                "governance": pillars.governance,
            },
        ),
        TraceStep(
            name="composite",
            description="Composite score with risk adjustment applied",
            values={
                "composite_score": breakdown.composite_score,
                "risk_penalty": breakdown.risk.penalty,
                "risk_factor": breakdown.risk.factor,
                "final_score": breakdown.final_score,
            },
        ),
    ]
    return CalculationTrace(
        supplier_id=supplier_id,
        supplier_name=supplier_name,
        steps=steps,
        final_score=breakdown.final_score,
        pillar_scores=pillars,
    )
