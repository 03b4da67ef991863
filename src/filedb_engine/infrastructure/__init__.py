"""Infrastructure layer - cross-cutting concerns."""

from filedb_engine.infrastructure.config import Config, get_config
from filedb_engine.infrastructure.logging import get_logger, setup_logging
from filedb_engine.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from filedb_engine.infrastructure.tracing import get_tracer, setup_tracing, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
