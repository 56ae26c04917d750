"""
MultiAI - Prometheus Metrics

Metrics exposed:
- multiai_sends_total: Counter of sends by outcome (success/exhausted/invalid) and provider label
- multiai_send_duration_seconds: Histogram of end-to-end send latency
- multiai_provider_attempts_total: Counter of provider attempts by outcome
- multiai_provider_attempt_duration_seconds: Histogram of single-attempt latency
- multiai_fallbacks_total: Counter of fallbacks between providers
- multiai_provider_available: Gauge of provider availability (1/0)
- multiai_availability_windows_total: Counter of availability windows opened

Usage:
    from multiai.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.record_attempt(provider="gemini", outcome="success", duration_seconds=0.8)

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Optional

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


class CascadeMetrics:
    """
    Metrics for the provider cascade.

    Each instance owns its collectors on the given registry, so tests can
    pass a fresh CollectorRegistry instead of touching the global one.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.info = Info(
            "multiai",
            "MultiAI service information",
            registry=registry,
        )
        self.info.info({"version": "1.0.0", "service": "multiai-cascade"})

        self.sends_total = Counter(
            "multiai_sends_total",
            "Total sends by outcome",
            labelnames=["outcome", "provider"],
            registry=registry,
        )

        # AI calls typically range from 0.1s to 60s+
        self.send_duration = Histogram(
            "multiai_send_duration_seconds",
            "End-to-end send duration in seconds",
            labelnames=["outcome"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, float("inf")),
            registry=registry,
        )

        self.attempts_total = Counter(
            "multiai_provider_attempts_total",
            "Provider attempts by outcome",
            labelnames=["provider", "outcome"],
            registry=registry,
        )

        self.attempt_duration = Histogram(
            "multiai_provider_attempt_duration_seconds",
            "Single provider attempt duration",
            labelnames=["provider"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, float("inf")),
            registry=registry,
        )

        self.fallbacks_total = Counter(
            "multiai_fallbacks_total",
            "Fallbacks from one provider to the next",
            labelnames=["from_provider", "to_provider", "reason"],
            registry=registry,
        )

        self.provider_available = Gauge(
            "multiai_provider_available",
            "Provider availability (1=available, 0=unavailable)",
            labelnames=["provider"],
            registry=registry,
        )

        self.windows_total = Counter(
            "multiai_availability_windows_total",
            "Availability windows opened",
            labelnames=["provider", "reason"],
            registry=registry,
        )

    def record_send(self, outcome: str, provider: str, duration_seconds: float):
        self.sends_total.labels(outcome=outcome, provider=provider).inc()
        self.send_duration.labels(outcome=outcome).observe(duration_seconds)

    def record_attempt(self, provider: str, outcome: str, duration_seconds: float):
        self.attempts_total.labels(provider=provider, outcome=outcome).inc()
        self.attempt_duration.labels(provider=provider).observe(duration_seconds)

    def record_fallback(self, from_provider: str, to_provider: str, reason: str):
        self.fallbacks_total.labels(
            from_provider=from_provider,
            to_provider=to_provider,
            reason=reason,
        ).inc()

    def record_window(self, provider: str, reason: str):
        self.windows_total.labels(provider=provider, reason=reason).inc()

    def set_available(self, provider: str, available: bool):
        self.provider_available.labels(provider=provider).set(1 if available else 0)


_metrics_instance: Optional[CascadeMetrics] = None


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> CascadeMetrics:
    """
    Setup metrics collection.

    Safe to call multiple times with the same registry.
    """
    global _metrics_instance

    if _metrics_instance is not None and _metrics_instance.registry is registry:
        return _metrics_instance

    _metrics_instance = CascadeMetrics(registry)
    return _metrics_instance


def get_metrics() -> CascadeMetrics:
    """Get the process-wide metrics instance (global registry)."""
    if _metrics_instance is None:
        return setup_metrics()
    return _metrics_instance


def metrics_endpoint(registry: Optional[CollectorRegistry] = None) -> Response:
    """Prometheus exposition for the /metrics route."""
    content = generate_latest(registry or get_metrics().registry)
    return Response(content=content, media_type=CONTENT_TYPE_LATEST)
