"""OpenTelemetry tracing for gateway calls and association operations."""

import logging
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from eipctl import __version__
from eipctl.config import settings

logger = logging.getLogger(__name__)

_tracer: Optional[trace.Tracer] = None


def setup_telemetry() -> None:
    """Install an SDK tracer provider built from the ``OTEL_*`` settings.

    Without this call spans go to whatever provider the host process has
    installed, which by default records nothing.
    """
    global _tracer

    provider = TracerProvider(
        resource=Resource(
            attributes={
                SERVICE_NAME: settings.OTEL_SERVICE_NAME,
                SERVICE_VERSION: __version__,
                "environment": settings.ENVIRONMENT,
            }
        ),
        sampler=TraceIdRatioBased(settings.OTEL_TRACE_SAMPLE_RATE),
    )
    if settings.OTEL_EXPORT_CONSOLE:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer("eipctl", __version__)

    logger.info(
        "Tracing enabled",
        extra={
            "service_name": settings.OTEL_SERVICE_NAME,
            "sample_rate": settings.OTEL_TRACE_SAMPLE_RATE,
            "export_console": settings.OTEL_EXPORT_CONSOLE,
        },
    )


def get_tracer() -> trace.Tracer:
    """Tracer shared by every eipctl module."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("eipctl", __version__)
    return _tracer


def add_span_attributes(**attributes: Any) -> None:
    """Set attributes on the active span, skipping None values."""
    span = trace.get_current_span()
    if not span.is_recording():
        return
    span.set_attributes({k: v for k, v in attributes.items() if v is not None})


def add_span_event(name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes or {})
