"""
Observability infrastructure for the Niche Library backend.

Provides:
- Structured logging stamped with the request id
- Prometheus metrics for search providers
"""

from .logging import current_request_id, request_id_scope, setup_logging
from .metrics import (
    metrics_registry,
    search_provider_duration_seconds,
    search_provider_errors_total,
    search_results_count,
    search_requests_total,
    track_provider_call,
    track_search_outcome,
)

__all__ = [
    "current_request_id",
    "request_id_scope",
    "setup_logging",
    "metrics_registry",
    "search_provider_duration_seconds",
    "search_provider_errors_total",
    "search_results_count",
    "search_requests_total",
    "track_provider_call",
    "track_search_outcome",
]
