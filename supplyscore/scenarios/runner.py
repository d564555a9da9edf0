"""Scenario runner: S1-S4 counterfactual transforms over a shared baseline.

S1 Utility      -- keep suppliers whose final score clears a margin.
S2 Sensitivity  -- perturb final scores (or the environmental weight).
S3 Missingness  -- null metrics at random (seeded), impute, rescore.
S4 Ablation     -- flip the industry-band toggle, rescore.

Each scenario is stateless: it reads the baseline, never mutates it, and
returns a result carrying its own comparison statistics and the list of
suppliers that failed to score. Per-supplier loops are independent and
could be parallelized; ranking is a single stable reduction at the end.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import numpy as np

from supplyscore.models.common import Pillar, new_uuid7
from supplyscore.scenarios.missingness import (
    impute_industry_mean,
    impute_knn,
    inject_missingness,
)
from supplyscore.scenarios.models import (
    AblationParams,
    AblationResult,
    ImputationMethod,
    MarginMode,
    MissingnessParams,
    MissingnessResult,
    ScenarioParams,
    ScenarioResult,
    ScenarioType,
    SensitivityParams,
    SensitivityResult,
    SensitivityTarget,
    UtilityOrder,
    UtilityParams,
    UtilityResult,
)
from supplyscore.scenarios.ranking import (
    BatchScores,
    Ranking,
    ScoredSupplier,
    derive_batch,
    identify_records,
    rank_in_order,
    rank_scores,
    score_derived_batch,
    top_ids,
)
from supplyscore.scenarios.statistics import (
    calculate_disparity,
    calculate_rank_shifts,
    kendall_tau,
    mean_absolute_error,
    top_k_preservation,
)
from supplyscore.scoring.bands import BandContext
from supplyscore.scoring.config import ScoringSettings
from supplyscore.scoring.scorer import SupplierScorer

logger = logging.getLogger(__name__)

TOP_K = 3

_PARAMS_FOR: dict[ScenarioType, type] = {
    ScenarioType.S1: UtilityParams,
    ScenarioType.S2: SensitivityParams,
    ScenarioType.S3: MissingnessParams,
    ScenarioType.S4: AblationParams,
}


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def renormalize_weights(weights: Mapping[Pillar, float]) -> dict[Pillar, float]:
    """Scale E/S/G weights to sum to 1 (equal thirds when all are zero)."""
    total = sum(weights.values())
    if total <= 0:
        return {pillar: 1 / len(weights) for pillar in weights}
    return {pillar: w / total for pillar, w in weights.items()}


def _mean_or_none(values: list[float]) -> float | None:
    return float(np.mean(values)) if values else None


def _by_emission_intensity(items: Sequence[ScoredSupplier]) -> list[ScoredSupplier]:
    def key(s: ScoredSupplier) -> tuple[bool, float, float]:
        intensity = s.derived.values.get("emission_intensity")
        return (intensity is None, intensity or 0.0, -s.final_score)

    return sorted(items, key=key)


class ScenarioRunner:
    """Runs S1-S4 against one band context, baseline settings and supplier set."""

    def __init__(
        self,
        bands: BandContext,
        settings: ScoringSettings,
        records: Sequence[Mapping[str, object]],
    ) -> None:
        self._bands = bands
        self._settings = settings
        self._suppliers = identify_records(records)

        derived, read_failures = derive_batch(self._suppliers)
        self._derived = derived
        self._read_failures = read_failures
        baseline = score_derived_batch(derived, SupplierScorer(bands, settings))
        self._baseline = BatchScores(
            scored=baseline.scored,
            failures=read_failures + baseline.failures,
        )
        self._baseline_ranking = rank_scores(self._baseline.scored)
        logger.info(
            "Scenario baseline: %d scored, %d failed",
            len(self._baseline.scored),
            len(self._baseline.failures),
        )

    # ---------------------------------------------------------------
    # Baseline
    # ---------------------------------------------------------------

    @property
    def settings(self) -> ScoringSettings:
        return self._settings

    @property
    def baseline_scores(self) -> list[ScoredSupplier]:
        return list(self._baseline.scored)

    def baseline(self) -> list[Ranking]:
        return list(self._baseline_ranking)

    def _rescore(self, settings: ScoringSettings) -> BatchScores:
        batch = score_derived_batch(self._derived, SupplierScorer(self._bands, settings))
        return BatchScores(scored=batch.scored, failures=self._read_failures + batch.failures)

    # ---------------------------------------------------------------
    # S1: Utility
    # ---------------------------------------------------------------

    def run_s1(self, params: UtilityParams | None = None) -> UtilityResult:
        """Filter to suppliers with final score >= threshold."""
        params = params or UtilityParams()
        scored = self._baseline.scored

        threshold = params.margin_min
        if params.margin_mode == MarginMode.RELATIVE_TO_MAX:
            best = max((s.final_score for s in scored), default=0.0)
            threshold = best * params.margin_min / 100

        kept = [s for s in scored if s.final_score >= threshold]
        excluded = [s.id for s in scored if s.final_score < threshold]

        baseline_total = sum(s.final_score for s in scored)
        kept_total = sum(s.final_score for s in kept)
        if baseline_total > 0:
            delta_pct = (kept_total - baseline_total) / baseline_total * 100
        else:
            delta_pct = 0.0

        def mean_intensity(items: list[ScoredSupplier]) -> float | None:
            return _mean_or_none([
                s.derived.values["emission_intensity"]
                for s in items
                if s.derived.values.get("emission_intensity") is not None
            ])

        if params.order == UtilityOrder.EMISSION_INTENSITY:
            ranking = rank_in_order(_by_emission_intensity(kept))
        else:
            ranking = rank_scores(kept)

        logger.info(
            "S1: threshold %.2f kept %d of %d suppliers",
            threshold, len(kept), len(scored),
        )
        return UtilityResult(
            run_id=new_uuid7(),
            scenario=ScenarioType.S1,
            baseline=self.baseline(),
            ranking=ranking,
            threshold=threshold,
            excluded_ids=excluded,
            baseline_total=baseline_total,
            constrained_total=kept_total,
            delta_objective_pct=delta_pct,
            baseline_mean_emission_intensity=mean_intensity(scored),
            constrained_mean_emission_intensity=mean_intensity(kept),
            failures=list(self._baseline.failures),
        )

    # ---------------------------------------------------------------
    # S2: Sensitivity
    # ---------------------------------------------------------------

    def run_s2(self, params: SensitivityParams | None = None) -> SensitivityResult:
        """Perturb and re-rank; compare against the baseline ranking."""
        params = params or SensitivityParams()
        factor = 1 + params.perturbation

        if params.target == SensitivityTarget.ENVIRONMENTAL_WEIGHT:
            weights = dict(self._settings.pillar_weights)
            weights[Pillar.ENVIRONMENTAL] *= factor
            settings = self._settings.with_pillar_weights(renormalize_weights(weights))
            batch = self._rescore(settings)
            ranking = rank_scores(batch.scored)
            failures = batch.failures
        else:
            ranking = rank_scores(
                self._baseline.scored,
                score_of=lambda s: clamp_score(s.final_score * factor),
            )
            failures = list(self._baseline.failures)

        baseline = self.baseline()
        tau = kendall_tau(baseline, ranking)
        shifts = calculate_rank_shifts(baseline, ranking)
        logger.info(
            "S2: perturbation %+.2f on %s, tau %.4f, mean shift %.2f",
            params.perturbation, params.target.value, tau, shifts.mean_shift,
        )
        return SensitivityResult(
            run_id=new_uuid7(),
            scenario=ScenarioType.S2,
            baseline=baseline,
            ranking=ranking,
            perturbation=params.perturbation,
            target=params.target,
            kendall_tau=tau,
            rank_shifts=shifts,
            failures=failures,
        )

    # ---------------------------------------------------------------
    # S3: Missingness
    # ---------------------------------------------------------------

    def run_s3(self, params: MissingnessParams | None = None) -> MissingnessResult:
        """Seeded MCAR missingness, imputation, rescoring."""
        params = params or MissingnessParams()
        rng = np.random.default_rng(params.seed)
        metrics = list(params.metrics)

        suppliers = [s for s, _ in self._derived]
        vectors = [d for _, d in self._derived]
        damaged, masks = inject_missingness(vectors, metrics, params.missing_pct, rng)
        nulled = sum(len(m) for m in masks)

        if params.imputation == ImputationMethod.KNN:
            repaired = impute_knn(damaged, masks, metrics, params.k)
        else:
            repaired = impute_industry_mean(damaged, masks, metrics)

        batch = score_derived_batch(
            list(zip(suppliers, repaired)),
            SupplierScorer(self._bands, self._settings),
        )
        ranking = rank_scores(batch.scored)
        baseline = self.baseline()

        preservation = top_k_preservation(top_ids(baseline, TOP_K), top_ids(ranking, TOP_K))
        base_scores = {r.id: r.score for r in baseline}
        paired = [(base_scores[r.id], r.score) for r in ranking if r.id in base_scores]
        mae = mean_absolute_error([a for a, _ in paired], [b for _, b in paired])

        logger.info(
            "S3: %.1f%% missing (%s, seed %d) nulled %d cells, top-%d kept %.1f%%, MAE %.4f",
            params.missing_pct, params.imputation.value, params.seed,
            nulled, TOP_K, preservation, mae,
        )
        return MissingnessResult(
            run_id=new_uuid7(),
            scenario=ScenarioType.S3,
            baseline=baseline,
            ranking=ranking,
            missing_pct=params.missing_pct,
            imputation=params.imputation,
            seed=params.seed,
            nulled_cells=nulled,
            top3_preservation=preservation,
            mae=mae,
            failures=self._read_failures + batch.failures,
        )

    # ---------------------------------------------------------------
    # S4: Ablation
    # ---------------------------------------------------------------

    def run_s4(self, params: AblationParams | None = None) -> AblationResult:
        """Rescore with the industry-band toggle flipped (or set explicitly)."""
        params = params or AblationParams()
        use_industry = params.use_industry_bands
        if use_industry is None:
            use_industry = not self._settings.use_industry_bands

        batch = self._rescore(self._settings.with_overrides(use_industry_bands=use_industry))
        ranking = rank_scores(batch.scored)
        baseline = self.baseline()
        tau = kendall_tau(baseline, ranking)
        disparity = calculate_disparity(ranking)

        logger.info(
            "S4: industry bands %s, tau %.4f, D %.4f",
            "on" if use_industry else "off", tau, disparity.d,
        )
        return AblationResult(
            run_id=new_uuid7(),
            scenario=ScenarioType.S4,
            baseline=baseline,
            ranking=ranking,
            use_industry_bands=use_industry,
            kendall_tau=tau,
            disparity=disparity,
            baseline_disparity=calculate_disparity(baseline),
            failures=batch.failures,
        )

    # ---------------------------------------------------------------
    # Dispatch
    # ---------------------------------------------------------------

    def run_scenario(
        self,
        scenario: ScenarioType | str,
        params: ScenarioParams | Mapping[str, object] | None = None,
    ) -> ScenarioResult:
        """Run one scenario by type; params may be a model or a plain mapping.

        Raises:
            ValueError: If the scenario type is unknown or params are of the
                wrong type for it.
        """
        try:
            scenario = ScenarioType(str(scenario).lower())
        except ValueError as exc:
            msg = f"Unknown scenario type: {scenario!r}"
            raise ValueError(msg) from exc

        params_type = _PARAMS_FOR[scenario]
        if params is None:
            params = params_type()
        elif isinstance(params, Mapping):
            params = params_type.model_validate(params)
        elif not isinstance(params, params_type):
            msg = f"{scenario.value} expects {params_type.__name__}, got {type(params).__name__}"
            raise ValueError(msg)

        if scenario == ScenarioType.S1:
            return self.run_s1(params)
        if scenario == ScenarioType.S2:
            return self.run_s2(params)
        if scenario == ScenarioType.S3:
            return self.run_s3(params)
        return self.run_s4(params)
