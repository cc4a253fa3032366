"""
Prometheus metrics for search providers.
Provides RED metrics (Rate, Errors, Duration) per provider.
"""

from prometheus_client import (
    Counter,
    Histogram,
    REGISTRY,
)

metrics_registry = REGISTRY

search_provider_duration_seconds = Histogram(
    "search_provider_duration_seconds",
    "Search provider call duration in seconds",
    ["provider"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
    registry=metrics_registry,
)

search_provider_errors_total = Counter(
    "search_provider_errors_total",
    "Total search provider errors",
    ["provider", "error_type"],  # error, timeout, rate_limited, unauthorized
    registry=metrics_registry,
)

search_results_count = Histogram(
    "search_results_count",
    "Number of records returned per provider call",
    ["provider"],
    buckets=[0, 1, 5, 10, 20, 50, 100],
    registry=metrics_registry,
)

search_requests_total = Counter(
    "search_requests_total",
    "Aggregated searches by outcome",
    ["outcome"],  # ok, partial, failed, no_providers
    registry=metrics_registry,
)


def track_provider_call(provider: str, status: str, latency_seconds: float, result_count: int) -> None:
    """Record a single provider execution."""
    search_provider_duration_seconds.labels(provider=provider).observe(latency_seconds)
    search_results_count.labels(provider=provider).observe(result_count)
    if status != "ok":
        search_provider_errors_total.labels(provider=provider, error_type=status).inc()


def track_search_outcome(outcome: str) -> None:
    search_requests_total.labels(outcome=outcome).inc()
