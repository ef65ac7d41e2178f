"""OpenTelemetry tracing support for the S3 website reconciler."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Tracer

from .constants import CONTROLLER
from .utils.context import get_run_id

logger = logging.getLogger(__name__)

# Global tracer instance
_tracer: Tracer | None = None
_provider: TracerProvider | None = None


def initialize_tracing(service_name: str = CONTROLLER) -> None:
    """Initialize OpenTelemetry tracing.

    Tracing is opt-in for a command line tool, a collector is rarely
    listening next to a CI runner.

    Environment Variables:
        OTEL_TRACES_ENABLED: Enable tracing (default: false)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint URL (default: http://localhost:4317)
        OTEL_SERVICE_NAME: Service name (default: s3-website-reconciler)
    """
    global _tracer, _provider

    if os.getenv("OTEL_TRACES_ENABLED", "false").lower() != "true":
        return

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    try:
        service_name = os.getenv("OTEL_SERVICE_NAME", service_name)
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")

        resource = Resource.create({
            "service.name": service_name,
            "service.version": os.getenv("OTEL_SERVICE_VERSION", "unknown"),
        })

        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)

        _provider = provider
        _tracer = trace.get_tracer(service_name)
    except Exception as e:
        # Tracing initialization failures should not break a deployment
        logger.warning(f"Failed to initialize tracing: {e}")


def shutdown_tracing() -> None:
    """Flush pending spans before the process exits."""
    global _tracer, _provider
    if _provider is not None:
        _provider.shutdown()
    _provider = None
    _tracer = None


def get_tracer() -> Tracer | None:
    """Get the global tracer instance, None when tracing is disabled."""
    return _tracer


@contextmanager
def trace_span(
    name: str,
    kind: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span | None]:
    """Context manager for creating a trace span.

    Args:
        name: Name of the span
        kind: Resource kind (e.g., "Bucket", "BucketPolicy")
        attributes: Additional span attributes

    Yields:
        Span object or None if tracing is disabled
    """
    tracer = get_tracer()
    if tracer is None:
        yield None
        return

    attrs = dict(attributes or {})
    if kind:
        attrs["resource.kind"] = kind
    current_run = get_run_id()
    if current_run:
        attrs["run.id"] = current_run

    with tracer.start_as_current_span(name, attributes=attrs) as span:
        yield span
