"""Tests for ScenarioRunner (S1-S4 and dispatch).

Suppliers differ only in renewable share, so against unit bands their
final scores are 60, 58, 56, 54, 52 in input order.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from supplyscore.models.common import Pillar
from supplyscore.scenarios.models import (
    AblationParams,
    AblationResult,
    ImputationMethod,
    MarginMode,
    MissingnessParams,
    MissingnessResult,
    ScenarioType,
    SensitivityParams,
    SensitivityTarget,
    UtilityOrder,
    UtilityParams,
    UtilityResult,
)
from supplyscore.scenarios.runner import ScenarioRunner, clamp_score, renormalize_weights
from supplyscore.scoring.bands import BandContext
from supplyscore.scoring.config import ScoringSettings

RecordFactory = Callable[..., dict[str, object]]


@pytest.fixture
def records(make_record: RecordFactory) -> list[dict[str, object]]:
    return [
        make_record(id=sid, name=sid.upper(), renewable_pct=share)
        for sid, share in (("a", 1.0), ("b", 0.75), ("c", 0.5), ("d", 0.25), ("e", 0.0))
    ]


@pytest.fixture
def runner(unit_bands: BandContext, records: list[dict[str, object]]) -> ScenarioRunner:
    return ScenarioRunner(unit_bands, ScoringSettings(), records)


# ===================================================================
# Helpers and baseline
# ===================================================================


class TestHelpers:
    def test_clamp_score(self) -> None:
        assert clamp_score(120.0) == 100.0
        assert clamp_score(-3.0) == 0.0
        assert clamp_score(88.0) == 88.0

    def test_renormalize_weights(self) -> None:
        weights = renormalize_weights({
            Pillar.ENVIRONMENTAL: 0.44, Pillar.SOCIAL: 0.3, Pillar.GOVERNANCE: 0.3,
        })
        assert sum(weights.values()) == pytest.approx(1.0)
        assert weights[Pillar.ENVIRONMENTAL] == pytest.approx(0.44 / 1.04)

    def test_renormalize_all_zero(self) -> None:
        weights = renormalize_weights({p: 0.0 for p in Pillar})
        assert all(w == pytest.approx(1 / 3) for w in weights.values())


class TestBaseline:
    def test_baseline_ranking(self, runner: ScenarioRunner) -> None:
        baseline = runner.baseline()
        assert [r.id for r in baseline] == ["a", "b", "c", "d", "e"]
        assert [r.score for r in baseline] == pytest.approx([60.0, 58.0, 56.0, 54.0, 52.0])

    def test_baseline_is_a_copy(self, runner: ScenarioRunner) -> None:
        runner.baseline().clear()
        assert len(runner.baseline()) == 5


# ===================================================================
# S1 Utility
# ===================================================================


class TestUtility:
    def test_absolute_margin(self, runner: ScenarioRunner) -> None:
        result = runner.run_s1(UtilityParams(margin_min=55.0))
        assert isinstance(result, UtilityResult)
        assert result.scenario == ScenarioType.S1
        assert result.threshold == 55.0
        assert [r.id for r in result.ranking] == ["a", "b", "c"]
        assert [r.rank for r in result.ranking] == [1, 2, 3]
        assert result.excluded_ids == ["d", "e"]
        assert result.baseline_total == pytest.approx(280.0)
        assert result.constrained_total == pytest.approx(174.0)
        assert result.delta_objective_pct == pytest.approx(-106 / 280 * 100)
        assert result.baseline_mean_emission_intensity == pytest.approx(0.5)
        assert result.constrained_mean_emission_intensity == pytest.approx(0.5)

    def test_threshold_is_inclusive(self, runner: ScenarioRunner) -> None:
        c_score = runner.baseline()[2].score
        result = runner.run_s1(UtilityParams(margin_min=c_score))
        assert "c" not in result.excluded_ids
        assert result.excluded_ids == ["d", "e"]

    def test_relative_to_max(self, runner: ScenarioRunner) -> None:
        result = runner.run_s1(UtilityParams(margin_min=95.0, margin_mode=MarginMode.RELATIVE_TO_MAX))
        assert result.threshold == pytest.approx(57.0)
        assert [r.id for r in result.ranking] == ["a", "b"]

    def test_nothing_kept(self, runner: ScenarioRunner) -> None:
        result = runner.run_s1(UtilityParams(margin_min=100.0))
        assert result.ranking == []
        assert result.delta_objective_pct == pytest.approx(-100.0)
        assert result.constrained_mean_emission_intensity is None

    def test_empty_supplier_set(self, unit_bands: BandContext) -> None:
        result = ScenarioRunner(unit_bands, ScoringSettings(), []).run_s1()
        assert result.delta_objective_pct == 0.0
        assert result.baseline == []

    def test_emission_intensity_order(self, unit_bands: BandContext, make_record: RecordFactory) -> None:
        records = [
            make_record(id="x", emissions=90.0, renewable_pct=1.0),
            make_record(id="w", revenue=0.0),
            make_record(id="y", emissions=10.0, renewable_pct=0.0),
            make_record(id="z", emissions=10.0, renewable_pct=0.5),
        ]
        runner = ScenarioRunner(unit_bands, ScoringSettings(), records)
        result = runner.run_s1(UtilityParams(margin_min=0.0, order=UtilityOrder.EMISSION_INTENSITY))
        assert [r.id for r in result.ranking] == ["z", "y", "x", "w"]
        assert [r.rank for r in result.ranking] == [1, 2, 3, 4]
        scores = {r.id: r.score for r in runner.baseline()}
        assert [r.score for r in result.ranking] == [scores[i] for i in ("z", "y", "x", "w")]

    def test_default_order_is_final_score(self, runner: ScenarioRunner) -> None:
        params = UtilityParams.model_validate({"marginMin": 0.0})
        assert params.order == UtilityOrder.FINAL_SCORE
        result = runner.run_s1(params)
        assert [r.id for r in result.ranking] == ["a", "b", "c", "d", "e"]


# ===================================================================
# S2 Sensitivity
# ===================================================================


class TestSensitivity:
    def test_uniform_perturbation_keeps_order(self, runner: ScenarioRunner) -> None:
        result = runner.run_s2(SensitivityParams(perturbation=0.10))
        assert result.kendall_tau == 1.0
        assert result.rank_shifts.mean_shift == 0.0
        assert result.ranking[0].score == pytest.approx(66.0)

    def test_scores_clamped(self, runner: ScenarioRunner) -> None:
        result = runner.run_s2(SensitivityParams(perturbation=0.8))
        assert max(r.score for r in result.ranking) == 100.0
        assert [r.id for r in result.ranking[:3]] == ["a", "b", "c"]

    def test_negative_perturbation(self, runner: ScenarioRunner) -> None:
        result = runner.run_s2(SensitivityParams(perturbation=-0.5))
        assert result.ranking[-1].score == pytest.approx(26.0)

    def test_environmental_weight(self, runner: ScenarioRunner) -> None:
        result = runner.run_s2(
            SensitivityParams(perturbation=0.10, target=SensitivityTarget.ENVIRONMENTAL_WEIGHT)
        )
        scores = {r.id: r.score for r in result.ranking}
        # E=50, S=G=60 under weights 0.44/0.3/0.3 renormalized by 1.04
        assert scores["c"] == pytest.approx((0.44 * 50 + 0.6 * 60) / 1.04)
        assert scores["a"] == pytest.approx(60.0)
        assert -1.0 <= result.kendall_tau <= 1.0

    def test_baseline_untouched(self, runner: ScenarioRunner) -> None:
        before = runner.baseline()
        runner.run_s2(SensitivityParams(perturbation=0.5))
        assert runner.baseline() == before

    def test_perturbation_bound(self) -> None:
        with pytest.raises(ValueError):
            SensitivityParams(perturbation=-1.0)


# ===================================================================
# S3 Missingness
# ===================================================================


class TestMissingness:
    def test_zero_missing_matches_baseline(self, runner: ScenarioRunner) -> None:
        result = runner.run_s3(MissingnessParams(missing_pct=0.0))
        assert isinstance(result, MissingnessResult)
        assert result.nulled_cells == 0
        assert result.mae == 0.0
        assert result.top3_preservation == 100.0

    def test_duplicate_ids_kept_distinct(self, unit_bands: BandContext, make_record: RecordFactory) -> None:
        records = [
            make_record(id="dup", renewable_pct=1.0),
            make_record(id="dup", renewable_pct=0.0),
        ]
        runner = ScenarioRunner(unit_bands, ScoringSettings(), records)
        result = runner.run_s3(MissingnessParams(missing_pct=0.0))
        assert [r.id for r in result.baseline] == ["dup", "dup#2"]
        assert result.nulled_cells == 0
        assert result.mae == 0.0
        assert result.top3_preservation == 100.0

    def test_seeded_reproducible(self, runner: ScenarioRunner) -> None:
        params = MissingnessParams(missing_pct=30.0, seed=7)
        first = runner.run_s3(params)
        second = runner.run_s3(params)
        assert first.nulled_cells == second.nulled_cells
        assert first.mae == second.mae
        assert [r.id for r in first.ranking] == [r.id for r in second.ranking]
        assert first.run_id != second.run_id

    def test_full_missingness(self, runner: ScenarioRunner) -> None:
        result = runner.run_s3(MissingnessParams(missing_pct=100.0))
        # 11 observed metrics per supplier
        assert result.nulled_cells == 55
        assert result.mae >= 0.0
        assert len(result.ranking) == 5

    def test_knn(self, runner: ScenarioRunner) -> None:
        result = runner.run_s3(
            MissingnessParams(missing_pct=40.0, imputation=ImputationMethod.KNN, k=2)
        )
        assert result.imputation == ImputationMethod.KNN
        assert 0.0 <= result.top3_preservation <= 100.0
        assert result.failures == []

    def test_unknown_metric_rejected(self) -> None:
        with pytest.raises(ValueError):
            MissingnessParams(metrics=("emissions",))


# ===================================================================
# S4 Ablation
# ===================================================================


class TestAblation:
    @pytest.fixture
    def mixed_runner(self, industry_bands: BandContext, make_record: RecordFactory) -> ScenarioRunner:
        records = [
            make_record(id="t1", industry="Technology", renewable_pct=70.0, transparency_score=85.0),
            make_record(id="t2", industry="Technology", renewable_pct=45.0, transparency_score=65.0),
            make_record(id="a1", industry="Agriculture", renewable_pct=50.0, transparency_score=75.0),
            make_record(id="a2", industry="Agriculture", renewable_pct=10.0, transparency_score=45.0),
        ]
        return ScenarioRunner(industry_bands, ScoringSettings(), records)

    def test_toggle_flips(self, mixed_runner: ScenarioRunner) -> None:
        result = mixed_runner.run_s4()
        assert isinstance(result, AblationResult)
        assert result.use_industry_bands is False
        assert {r.id for r in result.ranking} == {"t1", "t2", "a1", "a2"}
        assert set(result.disparity.group_means) == {"Technology", "Agriculture"}
        assert -1.0 <= result.kendall_tau <= 1.0

    def test_scores_change_with_bands(self, mixed_runner: ScenarioRunner) -> None:
        baseline = {r.id: r.score for r in mixed_runner.baseline()}
        ablated = {r.id: r.score for r in mixed_runner.run_s4().ranking}
        assert baseline["a1"] != pytest.approx(ablated["a1"])

    def test_explicit_same_setting_is_identity(self, mixed_runner: ScenarioRunner) -> None:
        result = mixed_runner.run_s4(AblationParams(use_industry_bands=True))
        assert result.kendall_tau == 1.0
        assert result.disparity == result.baseline_disparity


# ===================================================================
# Dispatch
# ===================================================================


class TestRunScenario:
    def test_string_and_mapping(self, runner: ScenarioRunner) -> None:
        result = runner.run_scenario("S1", {"marginMin": 55})
        assert isinstance(result, UtilityResult)
        assert result.excluded_ids == ["d", "e"]

    def test_enum_and_model(self, runner: ScenarioRunner) -> None:
        result = runner.run_scenario(ScenarioType.S3, MissingnessParams(missing_pct=0.0))
        assert result.mae == 0.0

    def test_default_params(self, runner: ScenarioRunner) -> None:
        result = runner.run_scenario("s4")
        assert isinstance(result, AblationResult)

    def test_unknown_type(self, runner: ScenarioRunner) -> None:
        with pytest.raises(ValueError, match="Unknown scenario type"):
            runner.run_scenario("s9")

    def test_wrong_params_type(self, runner: ScenarioRunner) -> None:
        with pytest.raises(ValueError, match="expects UtilityParams"):
            runner.run_scenario("s1", SensitivityParams())
