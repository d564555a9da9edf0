"""Shared pytest fixtures for the supplyscore test suite.

Provides:
- unit_bands: every metric on [0, 1] with average 0.5
- industry_bands: two industries with distinct bands plus global envelopes
- reference_rows: small raw reference dataset across three industries
- best_record / worst_record: records that normalize to all-1 / all-0
- make_record: factory for a complete raw supplier record
"""

from collections.abc import Callable

import pytest

from supplyscore.scoring.bands import Band, BandContext
from supplyscore.scoring.config import ScoringSettings


@pytest.fixture
def unit_bands() -> BandContext:
    return BandContext.default()


@pytest.fixture
def industry_bands() -> BandContext:
    """Technology bands are narrow; Agriculture bands are wide."""
    tech = {
        "emission_intensity": Band(0.0, 10.0, 5.0),
        "renewable_pct": Band(40.0, 80.0, 60.0),
        "transparency_score": Band(60.0, 90.0, 75.0),
    }
    agri = {
        "emission_intensity": Band(10.0, 50.0, 30.0),
        "renewable_pct": Band(0.0, 60.0, 30.0),
        "transparency_score": Band(40.0, 80.0, 60.0),
    }
    return BandContext(
        industry_bands={"Technology": tech, "Agriculture": agri},
        global_bands={
            "emission_intensity": Band(0.0, 50.0),
            "renewable_pct": Band(0.0, 80.0),
            "transparency_score": Band(40.0, 90.0),
        },
        industry_averages={
            "Technology": {k: b.avg for k, b in tech.items()},
            "Agriculture": {k: b.avg for k, b in agri.items()},
        },
        global_averages={
            "emission_intensity": 17.5,
            "renewable_pct": 45.0,
            "transparency_score": 67.5,
        },
    )


@pytest.fixture
def default_settings() -> ScoringSettings:
    return ScoringSettings()


@pytest.fixture
def no_penalty_settings() -> ScoringSettings:
    return ScoringSettings(risk_penalty_enabled=False, default_risk_factor=0.0)


@pytest.fixture
def make_record() -> Callable[..., dict[str, object]]:
    """Factory: a complete record on the [0, 1] scale, overridable per field."""

    def _make(**overrides: object) -> dict[str, object]:
        record: dict[str, object] = {
            "id": "s-1",
            "name": "Supplier One",
            "industry": "Technology",
            "revenue": 100.0,
            "emissions": 50.0,
            "water_use": 50.0,
            "waste": 50.0,
            "renewable_pct": 0.5,
            "injury_rate": 0.5,
            "training_hours": 0.5,
            "wage_ratio": 1.0,
            "diversity_pct": 0.5,
            "board_diversity": 0.5,
            "board_independence": 0.5,
            "transparency_score": 0.5,
            "anti_corruption": True,
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def best_record(make_record: Callable[..., dict[str, object]]) -> dict[str, object]:
    """Normalizes to 1.0 on every metric against unit bands."""
    return make_record(
        emissions=0.0,
        water_use=0.0,
        waste=0.0,
        renewable_pct=1.0,
        injury_rate=0.0,
        training_hours=1.0,
        wage_ratio=1.2,
        diversity_pct=1.0,
        board_diversity=1.0,
        board_independence=1.0,
        transparency_score=1.0,
        anti_corruption=True,
    )


@pytest.fixture
def worst_record(make_record: Callable[..., dict[str, object]]) -> dict[str, object]:
    """Normalizes to 0.0 on every metric against unit bands."""
    return make_record(
        emissions=100.0,
        water_use=100.0,
        waste=100.0,
        renewable_pct=0.0,
        injury_rate=1.0,
        training_hours=0.0,
        wage_ratio=0.0,
        diversity_pct=0.0,
        board_diversity=0.0,
        board_independence=0.0,
        transparency_score=0.0,
        anti_corruption=False,
    )


@pytest.fixture
def reference_rows() -> list[dict[str, object]]:
    """Raw reference dataset rows (three industries, four per industry)."""
    rows = []
    specs = [
        ("Manufacturing", [(120, 5400, 22, 0.92), (85, 3100, 35, 1.05), (210, 11200, 12, 0.81), (64, 1900, 48, 1.12)]),
        ("Agriculture", [(40, 900, 40, 0.88), (95, 2600, 18, 0.74), (58, 1100, 55, 1.01), (33, 700, 62, 1.08)]),
        ("Technology", [(300, 1500, 71, 1.21), (180, 1200, 64, 1.15), (260, 2900, 38, 0.97), (140, 800, 82, 1.18)]),
    ]
    n = 0
    for industry, values in specs:
        for revenue, emissions, renewable, wage in values:
            n += 1
            rows.append({
                "id": f"ref-{n:02d}",
                "industry": industry,
                "revenue": revenue,
                "emissions": emissions,
                "renewable_pct": renewable,
                "wage_ratio": wage,
                "transparency_score": 50 + n,
            })
    return rows
