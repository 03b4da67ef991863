"""OpenTelemetry tracing configuration.

Spans opened by the engine:
    plan.run            one per PlanRunner.run call
    operation.execute   one per executed operation
    document.persist    one per write to storage
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from filedb_engine import __version__
from filedb_engine.infrastructure.config import ObservabilityConfig


_tracer: trace.Tracer | None = None


def setup_tracing(config: ObservabilityConfig, console_export: bool = False) -> trace.Tracer:
    """
    Set up OpenTelemetry tracing.

    Args:
        config: Observability settings (service name, OTLP endpoint)
        console_export: Whether to also export to console (for debugging)

    Returns:
        Configured tracer instance
    """
    global _tracer

    resource = Resource.create(
        {
            "service.name": config.otel_service_name,
            "service.version": __version__,
        }
    )
    provider = TracerProvider(resource=resource)

    if config.otel_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=config.otel_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(config.otel_service_name)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance (no-op until setup_tracing runs)."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("filedb_engine")
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Context manager for creating a trace span.

    Attribute values of None are dropped; OpenTelemetry rejects them.

    Args:
        name: Name of the span
        attributes: Optional attributes to add to the span

    Yields:
        The created span
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        yield span
