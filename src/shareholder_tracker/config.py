"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
Shareholder Tracker application, loading and validating environment
variables at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        alias="DATABASE_URL",
        description="PostgreSQL or SQLite connection string",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://", "sqlite://", "sqlite+aiosqlite://")):
            raise ValueError("DATABASE_URL must be a PostgreSQL or SQLite connection string")
        return v


class AnalyticsSettings(BaseSettings):
    """Heuristic thresholds for the position analytics.

    All of these are modelling choices with reference defaults; they are
    passed to the analytics components explicitly.
    """

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_", extra="ignore")

    lookback_days: int = Field(
        default=30,
        alias="ANALYTICS_LOOKBACK_DAYS",
        ge=0,
        le=3650,
        description="Days before the period start fetched to establish previous positions",
    )
    volatility_threshold: float = Field(
        default=10_000.0,
        alias="ANALYTICS_VOLATILITY_THRESHOLD",
        ge=0.0,
        description="Delta standard deviation (share units) above which a mixed trader is high volatility",
    )
    correlation_threshold: float = Field(
        default=0.2,
        alias="ANALYTICS_CORRELATION_THRESHOLD",
        ge=0.0,
        le=1.0,
        description="Default minimum date-overlap correlation for reported pairs",
    )
    coordination_min_participants: int = Field(
        default=3,
        alias="ANALYTICS_COORDINATION_MIN_PARTICIPANTS",
        ge=2,
        le=1000,
        description="Distinct holders acting on one date to report coordinated activity",
    )
    significant_move_percent: float = Field(
        default=10.0,
        alias="ANALYTICS_SIGNIFICANT_MOVE_PERCENT",
        ge=0.0,
        description="Single-period percent change marking an entry/exit point",
    )
    smart_peak_multiplier: float = Field(
        default=1.5,
        alias="ANALYTICS_SMART_PEAK_MULTIPLIER",
        ge=1.0,
        description="Peak-to-initial ownership ratio required for smart_trader",
    )
    smart_exit_ratio: float = Field(
        default=0.5,
        alias="ANALYTICS_SMART_EXIT_RATIO",
        ge=0.0,
        le=1.0,
        description="Final-to-peak ownership ratio below which an exit counts as near the peak",
    )
    directional_min_events: int = Field(
        default=3,
        alias="ANALYTICS_DIRECTIONAL_MIN_EVENTS",
        ge=0,
        description="One-sided event count to exceed for accumulator/distributor",
    )
    dump_reduction_ratio: float = Field(
        default=0.8,
        alias="ANALYTICS_DUMP_REDUCTION_RATIO",
        ge=0.0,
        le=1.0,
        description="Share of an accumulation sold off to flag accumulate_then_dump",
    )
    smart_money_min_score: int = Field(
        default=70,
        alias="ANALYTICS_SMART_MONEY_MIN_SCORE",
        ge=0,
        le=100,
        description="Minimum timing score counted as smart money",
    )
    max_workers: int = Field(
        default=1,
        alias="ANALYTICS_MAX_WORKERS",
        ge=1,
        le=64,
        description="Worker threads for per-holder computation (1 = inline)",
    )
    top_holders_limit: int = Field(
        default=10,
        alias="ANALYTICS_TOP_HOLDERS_LIMIT",
        ge=1,
        le=1000,
        description="Holders listed in ownership trends",
    )


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from shareholder_tracker.config import get_settings

        settings = get_settings()
        print(settings.database.url)
        print(settings.analytics.lookback_days)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    database: DatabaseSettings = Field(
        default_factory=lambda: DatabaseSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    analytics: AnalyticsSettings = Field(
        default_factory=lambda: AnalyticsSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "database_url": self._redact_url(self.database.url),
            "analytics": {
                "lookback_days": str(self.analytics.lookback_days),
                "volatility_threshold": str(self.analytics.volatility_threshold),
                "correlation_threshold": str(self.analytics.correlation_threshold),
                "coordination_min_participants": str(self.analytics.coordination_min_participants),
                "significant_move_percent": str(self.analytics.significant_move_percent),
                "max_workers": str(self.analytics.max_workers),
            },
            "log_level": self.log_level,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
            or have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
