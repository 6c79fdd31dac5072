"""Structured logging setup shared by the access libraries."""

from .config import LoggingConfig, get_logging_config
from .logging import (
    add_correlation_context,
    add_trace_context,
    configure_structured_logging,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "LoggingConfig",
    "get_logging_config",
    "add_correlation_context",
    "add_trace_context",
    "configure_structured_logging",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
]
