"""Structured logging configuration.

Every log line carries ``service=filedb_engine``. While a plan runs, the plan
id and acting role are bound through structlog's contextvars so that the
per-operation lines emitted by the store can be correlated with their plan.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from filedb_engine.infrastructure.config import ObservabilityConfig


def add_engine_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag entries with the emitting service."""
    event_dict.setdefault("service", "filedb_engine")
    return event_dict


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> None:
    """
    Set up structured logging with structlog.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_engine_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_logging_from_config(config: ObservabilityConfig) -> None:
    """Configure logging from the observability section of the config."""
    setup_logging(level=config.log_level, log_format=config.log_format)


def bind_plan_context(plan_id: str, actor: str | None) -> None:
    """Attach plan correlation fields to every log line on this context."""
    structlog.contextvars.bind_contextvars(plan_id=plan_id, actor=actor or "-")


def clear_plan_context() -> None:
    """Drop the plan correlation fields bound by ``bind_plan_context``."""
    structlog.contextvars.unbind_contextvars("plan_id", "actor")


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a bound logger instance.

    Args:
        name: Logger name (module name typically)
        **initial_context: Initial context to bind to the logger

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
