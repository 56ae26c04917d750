"""
MultiAI - Observability Module

- Prometheus metrics for sends, attempts and availability windows
- OpenTelemetry spans per send and per provider attempt
- Structured JSON logging with per-send context injection

Usage:
    from multiai.observability import get_logger, get_metrics, setup_logging

    setup_logging(level="INFO")
    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .logging import (
    JSONFormatter,
    LogContext,
    StructuredLogger,
    TimedOperation,
    get_logger,
    setup_logging,
)
from .metrics import (
    CascadeMetrics,
    get_metrics,
    metrics_endpoint,
    setup_metrics,
)
from .tracing import (
    TracingManager,
    current_trace_id,
    get_tracer,
    setup_tracing,
    trace_provider_attempt,
    trace_send,
)

__all__ = [
    # Logging
    "JSONFormatter",
    "LogContext",
    "StructuredLogger",
    "TimedOperation",
    "get_logger",
    "setup_logging",
    # Metrics
    "CascadeMetrics",
    "get_metrics",
    "metrics_endpoint",
    "setup_metrics",
    # Tracing
    "TracingManager",
    "current_trace_id",
    "get_tracer",
    "setup_tracing",
    "trace_provider_attempt",
    "trace_send",
]
