"""Scoring service facade.

Binds one band context and one ScoringSettings so callers (CLI, web
handlers, notebooks) do not pass them on every call. Holds no mutable
state beyond those two values, so an instance may be shared.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from supplyscore.config.settings import Settings
from supplyscore.scenarios.models import ScenarioParams, ScenarioResult, ScenarioType
from supplyscore.scenarios.ranking import (
    BatchScores,
    Ranking,
    identify_records,
    rank_scores,
    score_batch,
)
from supplyscore.scenarios.runner import ScenarioRunner
from supplyscore.scoring.bands import BandContext, DatasetMeta, load_band_context
from supplyscore.scoring.config import ScoringSettings
from supplyscore.scoring.models import CalculationTrace, ScoreBreakdown, ScoreResult
from supplyscore.scoring.scorer import SupplierScorer, build_calculation_trace


class ScoringService:
    """Scores suppliers and runs scenarios against a fixed band context."""

    def __init__(
        self,
        bands: BandContext | None = None,
        settings: ScoringSettings | None = None,
    ) -> None:
        self._bands = bands or BandContext.default()
        self._settings = settings or ScoringSettings()
        self._scorer = SupplierScorer(self._bands, self._settings)

    @classmethod
    def from_app_settings(
        cls,
        app_settings: Settings,
        scoring_settings: ScoringSettings | None = None,
    ) -> ScoringService:
        """Load the band context from the configured dataset/bands paths."""
        bands = load_band_context(app_settings.DATASET_PATH, app_settings.BANDS_PATH)
        return cls(bands=bands, settings=scoring_settings)

    @property
    def bands(self) -> BandContext:
        return self._bands

    @property
    def settings(self) -> ScoringSettings:
        return self._settings

    @property
    def dataset_meta(self) -> DatasetMeta:
        return self._bands.meta

    def with_settings(self, settings: ScoringSettings) -> ScoringService:
        return ScoringService(bands=self._bands, settings=settings)

    # ---------------------------------------------------------------
    # Single supplier
    # ---------------------------------------------------------------

    def score(self, record: Mapping[str, object]) -> ScoreResult:
        return self._scorer.score(record)

    def breakdown(self, record: Mapping[str, object]) -> ScoreBreakdown:
        return self._scorer.score_with_breakdown(record)

    def trace(self, record: Mapping[str, object]) -> CalculationTrace:
        supplier = identify_records([record])[0]
        return build_calculation_trace(
            self.breakdown(record),
            supplier_id=supplier.id,
            supplier_name=supplier.name or None,
        )

    # ---------------------------------------------------------------
    # Batches and scenarios
    # ---------------------------------------------------------------

    def score_many(self, records: Sequence[Mapping[str, object]]) -> BatchScores:
        return score_batch(identify_records(records), self._scorer)

    def rank(self, records: Sequence[Mapping[str, object]]) -> list[Ranking]:
        return rank_scores(self.score_many(records).scored)

    def scenario_runner(self, records: Sequence[Mapping[str, object]]) -> ScenarioRunner:
        return ScenarioRunner(self._bands, self._settings, records)

    def run_scenario(
        self,
        records: Sequence[Mapping[str, object]],
        scenario: ScenarioType | str,
        params: ScenarioParams | Mapping[str, object] | None = None,
    ) -> ScenarioResult:
        return self.scenario_runner(records).run_scenario(scenario, params)
