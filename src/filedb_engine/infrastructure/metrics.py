"""Prometheus metrics for the document engine."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all document engine metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Operation metrics
        self.operations_total = Counter(
            "filedb_operations_total",
            "Total number of operations executed",
            ["operation_type", "status"],  # status: success, skipped, error
            registry=self._registry,
        )

        self.operation_latency_seconds = Histogram(
            "filedb_operation_latency_seconds",
            "Operation latency in seconds",
            ["category"],  # DDL, DML, DQL, DCL
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
            registry=self._registry,
        )

        # Plan metrics
        self.plans_total = Counter(
            "filedb_plans_total",
            "Total number of plans executed",
            ["outcome"],  # clean, partial
            registry=self._registry,
        )

        # Document metrics
        self.document_revision = Gauge(
            "filedb_document_revision",
            "Current document revision",
            registry=self._registry,
        )

        self.document_tables = Gauge(
            "filedb_document_tables",
            "Number of tables in the document",
            registry=self._registry,
        )

        self.document_persists_total = Counter(
            "filedb_document_persists_total",
            "Total number of document writes",
            registry=self._registry,
        )

        self.info = Info(
            "filedb_engine",
            "Document engine information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from filedb_engine import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
