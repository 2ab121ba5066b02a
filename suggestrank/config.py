"""Environment-driven settings and logging setup."""

from __future__ import annotations

import logging
from typing import Literal

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)


class AnalyticsSettings(BaseSettings):
    """Retention and bounded-log limits for the analytics store."""

    retention_days: int = Field(default=90, ge=1, le=3650)
    max_events: int = Field(default=10000, ge=1)
    max_command_results: int = Field(default=1000, ge=1)
    max_context_accuracies: int = Field(default=500, ge=1)
    max_performance_metrics: int = Field(default=1000, ge=1)
    session_timeout_ms: int = Field(default=3600000, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="SUGGESTRANK_ANALYTICS_",
        env_file=".env",
        extra="ignore",
    )


class RankingSettings(BaseSettings):
    """Initial factor weights for the ranking engine."""

    frequency_weight: float = Field(default=0.3, ge=0.0)
    recency_weight: float = Field(default=0.3, ge=0.0)
    category_weight: float = Field(default=0.2, ge=0.0)
    context_weight: float = Field(default=0.1, ge=0.0)
    analytics_weight: float = Field(default=0.1, ge=0.0)

    model_config = SettingsConfigDict(
        env_prefix="SUGGESTRANK_RANKING_",
        env_file=".env",
        extra="ignore",
    )


class LoggingSettings(BaseSettings):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    format: Literal["json", "console"] = Field(default="console")

    model_config = SettingsConfigDict(
        env_prefix="SUGGESTRANK_LOG_",
        env_file=".env",
        extra="ignore",
    )


class SuggestRankSettings(BaseSettings):
    """Aggregate settings for the whole package."""

    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    ranking: RankingSettings = Field(default_factory=RankingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @staticmethod
    def load() -> SuggestRankSettings:
        """Load settings from the environment."""
        settings = SuggestRankSettings()
        logger.debug(
            "settings_loaded",
            retention_days=settings.analytics.retention_days,
            max_events=settings.analytics.max_events,
            log_level=settings.logging.level,
        )
        return settings


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog processors and level filtering."""
    settings = settings or LoggingSettings()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.format == "json":
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.level, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
