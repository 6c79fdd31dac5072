"""Configuration for structured logging."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseSettings):
    """Configuration for structured logging."""

    model_config = SettingsConfigDict(env_prefix="BQ_ACCESS_LOG_", extra="ignore")

    level: str = "INFO"
    format: Literal["json", "console"] = "json"
    enable_correlation: bool = True
    enable_tracing_integration: bool = True
    timestamp_format: str = "iso"
    processors: list[str] = Field(
        default_factory=lambda: [
            "structlog.contextvars.merge_contextvars",
            "structlog.processors.add_log_level",
            "structlog.processors.StackInfoRenderer",
            "structlog.processors.format_exc_info",
        ]
    )


def get_logging_config() -> LoggingConfig:
    """Load logging configuration from ``BQ_ACCESS_LOG_*`` variables."""
    return LoggingConfig()
