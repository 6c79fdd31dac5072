"""Structured logging with correlation and tracing integration."""

import contextvars
import importlib
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace

from .config import LoggingConfig

# Module-level ContextVar for correlation IDs
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def resolve_processor(dotted_path: str) -> Any:
    """
    Resolve a processor from its dotted import path.

    Classes (e.g. ``structlog.processors.StackInfoRenderer``) are instantiated
    with no arguments; functions are used as-is.
    """
    module_name, _, attribute = dotted_path.rpartition(".")
    if not module_name:
        raise ValueError(f"Processor path must be fully qualified: {dotted_path}")

    processor = getattr(importlib.import_module(module_name), attribute)
    if isinstance(processor, type):
        return processor()
    return processor


def configure_structured_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog with OpenTelemetry trace and correlation context."""
    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper())

    # Configure standard library logging
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors: list[Any] = [resolve_processor(name) for name in config.processors]
    processors.append(structlog.processors.TimeStamper(fmt=config.timestamp_format))

    if config.enable_tracing_integration:
        processors.append(add_trace_context)

    if config.enable_correlation:
        processors.append(add_correlation_context)

    if config.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def add_trace_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add OpenTelemetry trace context to log entries."""
    span = trace.get_current_span()

    if span and span.is_recording():
        span_context = span.get_span_context()
        event_dict.update(
            {
                "trace_id": format(span_context.trace_id, "032x"),
                "span_id": format(span_context.span_id, "016x"),
            }
        )

    return event_dict


def add_correlation_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add the current correlation ID unless the event already carries one."""
    if "correlation_id" not in event_dict:
        correlation_id = correlation_id_var.get()
        if correlation_id:
            event_dict["correlation_id"] = correlation_id

    return event_dict


def set_correlation_id(correlation_id: str | None) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get the current correlation ID."""
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[None]:
    """Tag every log event emitted inside the block with ``correlation_id``."""
    token = set_correlation_id(correlation_id)
    try:
        yield
    finally:
        correlation_id_var.reset(token)
