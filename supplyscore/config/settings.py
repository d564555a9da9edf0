"""supplyscore application settings loaded from environment variables."""

from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    """Deployment environment."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application-wide settings loaded from environment variables / .env file.

    Paths to the reference data live here so the band context can be built
    once at startup. Scoring weights are NOT settings; see ScoringSettings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Reference data ---
    DATASET_PATH: str = Field(
        default="data/sample_esg_dataset.csv",
        description="Row-level reference dataset used to derive industry bands.",
    )
    BANDS_PATH: str = Field(
        default="data/bands_v1.json",
        description="Precomputed bands document; takes precedence over the dataset.",
    )

    # --- Scenarios ---
    SCENARIO_SEED: int = Field(
        default=42,
        description="Default seed for randomized scenario transforms (S3).",
    )

    # --- Logging ---
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application log level.",
    )

    # --- Environment ---
    ENVIRONMENT: Environment = Field(
        default=Environment.DEV,
        description="Deployment environment (dev/staging/prod).",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == Environment.PROD


def get_settings() -> Settings:
    """Factory function for application settings."""
    return Settings()
