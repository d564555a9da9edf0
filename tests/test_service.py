"""Tests for the ScoringService facade."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from supplyscore.config.settings import Settings
from supplyscore.models.common import BandSource
from supplyscore.scenarios.models import ScenarioType, UtilityResult
from supplyscore.scoring.bands import BandContext
from supplyscore.scoring.config import ScoringSettings
from supplyscore.service import ScoringService

RecordFactory = Callable[..., dict[str, object]]

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


@pytest.fixture
def service(unit_bands: BandContext) -> ScoringService:
    return ScoringService(bands=unit_bands)


class TestConstruction:
    def test_defaults(self) -> None:
        svc = ScoringService()
        assert svc.dataset_meta.source == BandSource.DEFAULT
        assert svc.settings == ScoringSettings()

    def test_from_app_settings_with_dataset(self) -> None:
        app = Settings(
            DATASET_PATH=str(DATA_DIR / "sample_esg_dataset.csv"),
            BANDS_PATH=str(DATA_DIR / "missing_bands.json"),
        )
        svc = ScoringService.from_app_settings(app)
        assert svc.dataset_meta.source == BandSource.DATASET
        assert set(svc.bands.industries) == {"Manufacturing", "Agriculture", "Technology"}

    def test_from_app_settings_prefers_bands(self, tmp_path: Path) -> None:
        bands_path = tmp_path / "bands.json"
        bands_path.write_text(
            json.dumps({"version": "v2", "bands": {"Retail": {"injury_rate": {"min": 0, "max": 5}}}}),
            encoding="utf-8",
        )
        app = Settings(
            DATASET_PATH=str(DATA_DIR / "sample_esg_dataset.csv"),
            BANDS_PATH=str(bands_path),
        )
        svc = ScoringService.from_app_settings(app, ScoringSettings(risk_lambda=2.0))
        assert svc.dataset_meta.source == BandSource.BANDS
        assert svc.bands.industries == ["Retail"]
        assert svc.settings.risk_lambda == 2.0

    def test_with_settings_shares_bands(self, service: ScoringService) -> None:
        other = service.with_settings(ScoringSettings(use_industry_bands=False))
        assert other.bands is service.bands
        assert other.settings.use_industry_bands is False
        assert service.settings.use_industry_bands is True


class TestScoring:
    def test_score_and_breakdown_agree(self, service: ScoringService, make_record: RecordFactory) -> None:
        record = make_record()
        assert service.breakdown(record).to_result() == service.score(record)
        assert service.score(record).final_score == pytest.approx(56.0)

    def test_trace_identity(self, service: ScoringService, make_record: RecordFactory) -> None:
        trace = service.trace(make_record())
        assert trace.supplier_id == "s-1"
        assert trace.supplier_name == "Supplier One"

    def test_trace_without_name(self, service: ScoringService) -> None:
        trace = service.trace({"industry": "Technology"})
        assert trace.supplier_id == "supplier-1"
        assert trace.supplier_name is None

    def test_rank(self, service: ScoringService, make_record: RecordFactory) -> None:
        rankings = service.rank([
            make_record(id="low", renewable_pct=0.0),
            make_record(id="high", renewable_pct=1.0),
        ])
        assert [r.id for r in rankings] == ["high", "low"]

    def test_score_many_reports_failures(self, service: ScoringService, make_record: RecordFactory) -> None:
        batch = service.score_many([make_record(id="a"), make_record(id="b")])
        assert len(batch.scored) == 2
        assert batch.failures == []


class TestScenarios:
    def test_run_scenario(self, service: ScoringService, make_record: RecordFactory) -> None:
        records = [make_record(id="a", renewable_pct=1.0), make_record(id="b", renewable_pct=0.0)]
        result = service.run_scenario(records, ScenarioType.S1, {"margin_min": 55.0})
        assert isinstance(result, UtilityResult)
        assert result.excluded_ids == ["b"]

    def test_sample_suppliers(self) -> None:
        app = Settings(
            DATASET_PATH=str(DATA_DIR / "sample_esg_dataset.csv"),
            BANDS_PATH=str(DATA_DIR / "missing_bands.json"),
        )
        with (DATA_DIR / "sample_suppliers.json").open(encoding="utf-8") as f:
            suppliers = json.load(f)["suppliers"]
        svc = ScoringService.from_app_settings(app)
        for scenario in ScenarioType:
            result = svc.run_scenario(suppliers, scenario)
            assert result.failures == []
            assert len(result.baseline) == 6
