"""Metric derivation: raw supplier record -> canonical metric vector.

Raw records arrive with optional fields under several naming conventions.
This module resolves the alias chains, computes revenue intensities, and
returns an immutable DerivedMetrics value. It never raises on bad input:
anything that is not a finite number is treated as absent.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from supplyscore.models.common import MetricDirection, Pillar, RiskIndicator

# ---------------------------------------------------------------------------
# Canonical metrics
# ---------------------------------------------------------------------------

METRIC_KEYS: tuple[str, ...] = (
    "emission_intensity",
    "renewable_pct",
    "water_intensity",
    "waste_intensity",
    "injury_rate",
    "training_hours",
    "wage_ratio",
    "diversity_pct",
    "board_diversity",
    "board_independence",
    "transparency_score",
)

ANTI_CORRUPTION = "anti_corruption"

# 11 numeric metrics + the anti-corruption flag.
TOTAL_METRIC_SLOTS = len(METRIC_KEYS) + 1

METRIC_DIRECTIONS: dict[str, MetricDirection] = {
    "emission_intensity": MetricDirection.LOWER_IS_BETTER,
    "water_intensity": MetricDirection.LOWER_IS_BETTER,
    "waste_intensity": MetricDirection.LOWER_IS_BETTER,
    "injury_rate": MetricDirection.LOWER_IS_BETTER,
    "wage_ratio": MetricDirection.WAGE_RATIO,
}

PILLAR_METRICS: dict[Pillar, tuple[str, ...]] = {
    Pillar.ENVIRONMENTAL: (
        "emission_intensity",
        "renewable_pct",
        "water_intensity",
        "waste_intensity",
    ),
    Pillar.SOCIAL: (
        "injury_rate",
        "training_hours",
        "wage_ratio",
        "diversity_pct",
    ),
    Pillar.GOVERNANCE: (
        "board_diversity",
        "board_independence",
        ANTI_CORRUPTION,
        "transparency_score",
    ),
}

# ---------------------------------------------------------------------------
# Alias chains (most specific name first)
# ---------------------------------------------------------------------------

EMISSIONS_ALIASES = (
    "emissions_tco2e",
    "co2_tons",
    "co2_emissions",
    "total_emissions",
    "emissions",
)
WATER_ALIASES = ("water_usage", "water_use")
WASTE_ALIASES = ("waste_generated", "waste")
REVENUE_ALIASES = ("revenue",)

DIRECT_METRIC_ALIASES: dict[str, tuple[str, ...]] = {
    "renewable_pct": ("renewable_energy_percent", "renewable_pct"),
    "injury_rate": ("injury_rate",),
    "training_hours": ("training_hours",),
    "wage_ratio": ("living_wage_ratio", "wage_ratio"),
    "diversity_pct": (
        "gender_diversity_percent",
        "diversity_inclusion_score",
        "diversity_pct",
    ),
    "board_diversity": ("board_diversity",),
    "board_independence": ("board_independence",),
    "transparency_score": ("transparency_score",),
}

ANTI_CORRUPTION_ALIASES = ("anti_corruption_policy", "anti_corruption")

RISK_ALIASES: dict[RiskIndicator, tuple[str, ...]] = {
    RiskIndicator.GEOPOLITICAL: ("geopolitical_risk", "geo_risk", "geo"),
    RiskIndicator.CLIMATE: ("climate_risk", "climate"),
    RiskIndicator.LABOR: ("labor_dispute_risk", "labor_risk", "labor"),
}

UNKNOWN_INDUSTRY = "Unknown"


@dataclass(frozen=True)
class DerivedMetrics:
    """Canonical metric vector for one supplier.

    ``values`` holds every key of METRIC_KEYS (None when absent).
    ``risks`` holds the raw-scale risk indicators (None when absent).
    """

    industry: str
    values: dict[str, float | None]
    anti_corruption: bool | None = None
    risks: dict[RiskIndicator, float | None] = field(default_factory=dict)

    def with_values(self, updates: Mapping[str, float | None]) -> DerivedMetrics:
        """Return a copy with some metric values replaced."""
        merged = dict(self.values)
        merged.update(updates)
        return DerivedMetrics(
            industry=self.industry,
            values=merged,
            anti_corruption=self.anti_corruption,
            risks=dict(self.risks),
        )


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def to_number(value: object) -> float | None:
    """Coerce a raw field to a finite float, or None.

    Booleans are not numbers here; numeric strings are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def first_number(record: Mapping[str, object], aliases: tuple[str, ...]) -> float | None:
    """Return the first alias that resolves to a valid number."""
    for alias in aliases:
        number = to_number(record.get(alias))
        if number is not None:
            return number
    return None


def to_flag(value: object) -> bool | None:
    """Coerce the anti-corruption field: bool kept, numeric 1 -> True."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    number = to_number(value)
    if number is None:
        return None
    return number == 1


def safe_intensity(quantity: float | None, revenue: float | None) -> float | None:
    """quantity / revenue, or None when either is missing or revenue <= 0."""
    if quantity is None or revenue is None or revenue <= 0:
        return None
    return quantity / revenue


# ---------------------------------------------------------------------------
# Derivation
# ---------------------------------------------------------------------------


def derive_metrics(record: Mapping[str, object]) -> DerivedMetrics:
    """Map a raw supplier record onto the canonical metric vector."""
    revenue = first_number(record, REVENUE_ALIASES)

    values: dict[str, float | None] = {
        "emission_intensity": safe_intensity(
            first_number(record, EMISSIONS_ALIASES), revenue
        ),
        "water_intensity": safe_intensity(first_number(record, WATER_ALIASES), revenue),
        "waste_intensity": safe_intensity(first_number(record, WASTE_ALIASES), revenue),
    }
    for metric, aliases in DIRECT_METRIC_ALIASES.items():
        values[metric] = first_number(record, aliases)

    anti_corruption: bool | None = None
    for alias in ANTI_CORRUPTION_ALIASES:
        anti_corruption = to_flag(record.get(alias))
        if anti_corruption is not None:
            break

    risks = {
        indicator: first_number(record, aliases)
        for indicator, aliases in RISK_ALIASES.items()
    }

    industry = record.get("industry")
    if not isinstance(industry, str) or not industry.strip():
        industry = UNKNOWN_INDUSTRY

    return DerivedMetrics(
        industry=industry,
        values={key: values[key] for key in METRIC_KEYS},
        anti_corruption=anti_corruption,
        risks=risks,
    )
