"""Search pipeline observability.

Structured logging for every aggregated search:
- provider outcomes (status, result count, latency)
- provider success rate
- result counts before and after deduplication
- end-to-end latency
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from observability.metrics import track_search_outcome

logger = logging.getLogger("sourcing.metrics")


@dataclass
class ProviderMetrics:
    """Metrics for a single provider execution."""
    provider_id: str
    status: str  # ok, error, timeout, rate_limited, unauthorized
    result_count: int
    latency_ms: float
    error_message: Optional[str] = None


@dataclass
class SearchMetrics:
    """Aggregated metrics for a single search operation."""
    query: str = ""
    total_results: int = 0
    unique_results: int = 0
    providers_called: int = 0
    providers_succeeded: int = 0
    providers_failed: int = 0
    total_latency_ms: float = 0.0
    provider_metrics: List[ProviderMetrics] = field(default_factory=list)

    def success_rate(self) -> float:
        if self.providers_called == 0:
            return 0.0
        return self.providers_succeeded / self.providers_called

    def has_results(self) -> bool:
        return self.unique_results > 0

    def outcome(self) -> str:
        if self.providers_called == 0:
            return "no_providers"
        if self.providers_failed == self.providers_called:
            return "failed"
        if self.providers_failed > 0:
            return "partial"
        return "ok"


class SearchMetricsCollector:
    """Collector for search operation metrics.

    Each ``track_search`` block owns its own ``SearchMetrics`` so concurrent
    searches on the same collector do not interleave.
    """

    @contextmanager
    def track_search(self, query: str = ""):
        metrics = SearchMetrics(query=query)
        started = time.time()
        try:
            yield metrics
        finally:
            metrics.total_latency_ms = (time.time() - started) * 1000
            self._log_metrics(metrics)

    @staticmethod
    def record_provider(
        metrics: SearchMetrics,
        provider_id: str,
        status: str,
        result_count: int,
        latency_ms: float,
        error_message: Optional[str] = None,
    ):
        metrics.provider_metrics.append(
            ProviderMetrics(
                provider_id=provider_id,
                status=status,
                result_count=result_count,
                latency_ms=latency_ms,
                error_message=error_message,
            )
        )
        metrics.providers_called += 1
        if status == "ok":
            metrics.providers_succeeded += 1
        else:
            metrics.providers_failed += 1

    @staticmethod
    def record_results(metrics: SearchMetrics, total: int, unique: int):
        metrics.total_results = total
        metrics.unique_results = unique

    def _log_metrics(self, m: SearchMetrics):
        provider_summary = [
            {
                "id": pm.provider_id,
                "status": pm.status,
                "results": pm.result_count,
                "latency_ms": round(pm.latency_ms, 1),
            }
            for pm in m.provider_metrics
        ]

        log_data = {
            "event": "search_complete",
            "query_length": len(m.query),
            "results": {
                "total": m.total_results,
                "unique": m.unique_results,
            },
            "providers": {
                "called": m.providers_called,
                "succeeded": m.providers_succeeded,
                "failed": m.providers_failed,
                "success_rate": round(m.success_rate(), 2),
                "details": provider_summary,
            },
            "latency_ms": round(m.total_latency_ms, 1),
            "success": m.has_results(),
        }

        outcome = m.outcome()
        track_search_outcome(outcome)

        if outcome == "no_providers":
            logger.warning("Search skipped - no providers available", extra=log_data)
        elif outcome == "failed":
            logger.error("Search failed - all providers failed", extra=log_data)
        elif outcome == "partial":
            logger.warning("Search completed with provider failures", extra=log_data)
        elif not m.has_results():
            logger.info("Search completed but no results", extra=log_data)
        else:
            logger.info("Search completed successfully", extra=log_data)


# Global collector instance
_metrics_collector = SearchMetricsCollector()


def get_metrics_collector() -> SearchMetricsCollector:
    return _metrics_collector


def log_search_start(query: str, providers: List[str]):
    logger.info(
        "Search started",
        extra={
            "event": "search_start",
            "query_length": len(query),
            "providers_requested": providers,
        },
    )


def log_provider_result(provider_id: str, status: str, result_count: int, latency_ms: float):
    logger.info(
        f"Provider {provider_id} completed",
        extra={
            "event": "provider_complete",
            "provider_id": provider_id,
            "status": status,
            "result_count": result_count,
            "latency_ms": round(latency_ms, 1),
        },
    )
