"""Shared types, enums, and base models used across supplyscore domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]
UnitInterval = Annotated[float, Field(ge=0.0, le=1.0)]
ScoreValue = Annotated[float, Field(ge=0.0, le=100.0)]


# --- Shared enums ---


class Pillar(StrEnum):
    """ESG pillars aggregated into the composite score."""

    ENVIRONMENTAL = "environmental"
    SOCIAL = "social"
    GOVERNANCE = "governance"


class MetricDirection(StrEnum):
    """How a raw metric value maps onto the [0, 1] normalized scale."""

    LOWER_IS_BETTER = "lower_is_better"
    HIGHER_IS_BETTER = "higher_is_better"
    WAGE_RATIO = "wage_ratio"


class RiskIndicator(StrEnum):
    """External risk indicators feeding the risk penalty."""

    GEOPOLITICAL = "geopolitical"
    CLIMATE = "climate"
    LABOR = "labor"


class RiskLevel(StrEnum):
    """Risk level buckets derived from the 0-1 risk factor."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FinalScorePolicy(StrEnum):
    """How the risk adjustment is applied to the composite score."""

    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"


class BandSource(StrEnum):
    """Where a band context's statistics came from."""

    DEFAULT = "default"
    DATASET = "dataset"
    BANDS = "bands"


# --- Base model ---


class SupplyScoreBase(BaseModel):
    """Base model with common configuration for all supplyscore Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "protected_namespaces": (),
    }
