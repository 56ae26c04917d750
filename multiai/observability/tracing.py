"""
MultiAI - OpenTelemetry Tracing

One span per send and one child span per provider attempt.

Usage:
    from multiai.observability.tracing import setup_tracing, trace_provider_attempt

    setup_tracing(service_name="multiai")

    with trace_provider_attempt("gemini", "gemini-1.5-flash", attempt=1) as span:
        reply = await adapter.complete(...)
"""

import os
from contextlib import contextmanager
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import SpanKind, Status, StatusCode

TRACER_NAME = "multiai"


class TracingManager:
    """Owns the tracer provider for the process."""

    def __init__(
        self,
        service_name: str = "multiai",
        service_version: str = "1.0.0",
        console_export: bool = False,
    ):
        resource = Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
            "deployment.environment": os.getenv("MODE", "prod"),
        })

        self.provider = TracerProvider(resource=resource)

        if console_export:
            self.provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self.provider)
        self.tracer = self.provider.get_tracer(TRACER_NAME, service_version)

    def shutdown(self):
        self.provider.shutdown()


_tracing_instance: Optional[TracingManager] = None


def setup_tracing(
    service_name: str = "multiai",
    service_version: str = "1.0.0",
    console_export: bool = False,
) -> TracingManager:
    """
    Setup tracing. Call once at application startup.

    OTEL_CONSOLE_EXPORT=true enables span output on stdout.
    """
    global _tracing_instance

    if _tracing_instance is not None:
        return _tracing_instance

    if os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        console_export = True

    _tracing_instance = TracingManager(
        service_name=service_name,
        service_version=service_version,
        console_export=console_export,
    )
    return _tracing_instance


def get_tracer() -> trace.Tracer:
    """
    Get the tracer.

    Without setup_tracing() this is the global (no-op by default) tracer.
    """
    if _tracing_instance is not None:
        return _tracing_instance.tracer
    return trace.get_tracer(TRACER_NAME)


def current_trace_id() -> str:
    """Hex trace id of the active span, or empty string."""
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return ""
    return format(ctx.trace_id, "032x")


@contextmanager
def trace_send(persona: Optional[str], attributes: Optional[Dict[str, Any]] = None):
    """Span around one whole cascade send."""
    attrs: Dict[str, Any] = {"multiai.persona": persona or "generic"}
    if attributes:
        attrs.update(attributes)
    with get_tracer().start_as_current_span("cascade.send", attributes=attrs) as span:
        yield span


@contextmanager
def trace_provider_attempt(provider: str, model: str, attempt: int = 1):
    """Client span around one adapter call."""
    with get_tracer().start_as_current_span(
        "cascade.provider_attempt",
        kind=SpanKind.CLIENT,
        attributes={
            "ai.provider": provider,
            "ai.model": model,
            "multiai.attempt": attempt,
        },
    ) as span:
        yield span


def mark_span_failed(span, failure: str):
    """Tag a span with a failure kind (never the raw error text)."""
    span.set_attribute("multiai.failure", failure)
    span.set_status(Status(StatusCode.ERROR, failure))
