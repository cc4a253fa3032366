"""Multi-provider perfume search.

``SourcingRepository.search_all`` fans a query out to every available
provider concurrently, isolates provider failures, and reconciles the
returned records into one deduplicated list keyed by identity key.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from sourcing.executors import run_provider_with_status
from sourcing.metrics import get_metrics_collector, log_provider_result, log_search_start
from sourcing.models import Perfume, ProviderError, SearchResult
from sourcing.scorer import richness_score

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from sourcing.credentials import CredentialStore

logger = logging.getLogger(__name__)

# Offline dataset first: it is free, fast and never rate limited.
PROVIDER_PRIORITY: Tuple[str, ...] = ("parfumo", "fragella", "fragrancefinder")

# Fields a losing duplicate may still contribute to the representative.
BACKFILL_FIELDS: Tuple[str, ...] = ("image_url", "description", "year")

DEFAULT_TIMEOUT_SECONDS = 8.0
DEFAULT_SEARCH_LIMIT = 10


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def default_search_limit() -> int:
    try:
        return max(1, int(os.getenv("SEARCH_DEFAULT_LIMIT", str(DEFAULT_SEARCH_LIMIT))))
    except ValueError:
        return DEFAULT_SEARCH_LIMIT


class SourcingProvider(ABC):
    """A source of perfume records.

    ``is_available`` must be cheap and synchronous; the aggregator calls it
    before every search and never calls ``search`` on an unavailable provider.
    """

    name: str = ""
    provider_id: str = ""

    def is_available(self) -> bool:
        return True

    async def refresh(self) -> None:
        """Re-check availability that lives outside this process. No-op by default."""

    @abstractmethod
    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Perfume]:
        pass


def _backfill(winner: Perfume, other: Perfume) -> Perfume:
    updates = {
        field: getattr(other, field)
        for field in BACKFILL_FIELDS
        if not getattr(winner, field) and getattr(other, field)
    }
    return winner.model_copy(update=updates) if updates else winner


def dedupe_and_merge(candidates: Iterable[Perfume]) -> List[Perfume]:
    """Collapse candidates sharing an identity key.

    The first occurrence of a key holds its position in the output. A later
    candidate replaces it only when its richness score is strictly higher;
    either way the surviving record back-fills ``image_url``, ``description``
    and ``year`` from the other one. Records with an empty key are never
    merged with each other.
    """
    merged: List[Perfume] = []
    positions: Dict[str, int] = {}

    for candidate in candidates:
        key = candidate.id
        if not key:
            merged.append(candidate)
            continue

        index = positions.get(key)
        if index is None:
            positions[key] = len(merged)
            merged.append(candidate)
            continue

        current = merged[index]
        if richness_score(candidate) > richness_score(current):
            merged[index] = _backfill(candidate, current)
        else:
            merged[index] = _backfill(current, candidate)

    return merged


class SourcingRepository:
    def __init__(
        self,
        providers: Optional[Dict[str, SourcingProvider]] = None,
        *,
        credentials: Optional["CredentialStore"] = None,
        engine: Optional["AsyncEngine"] = None,
        timeout_seconds: Optional[float] = None,
    ):
        if providers is None:
            providers = self._build_default_providers(credentials, engine)
        self.providers: Dict[str, SourcingProvider] = self._in_priority_order(providers)
        self.timeout_seconds = timeout_seconds or env_float(
            "SOURCING_PROVIDER_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS
        )

    @staticmethod
    def _build_default_providers(
        credentials: Optional["CredentialStore"], engine: Optional["AsyncEngine"]
    ) -> Dict[str, SourcingProvider]:
        from sourcing.credentials import CredentialStore
        from sourcing.fragella_provider import FragellaProvider
        from sourcing.fragrancefinder_provider import FragranceFinderProvider
        from sourcing.parfumo_provider import ParfumoDatasetProvider

        credentials = credentials or CredentialStore()
        providers: Dict[str, SourcingProvider] = {}
        if engine is not None:
            providers["parfumo"] = ParfumoDatasetProvider(engine)
        providers["fragella"] = FragellaProvider(key_getter=credentials.getter("fragella"))
        providers["fragrancefinder"] = FragranceFinderProvider(
            key_getter=credentials.getter("fragrancefinder")
        )
        logger.info(f"[SourcingRepository] Registered providers: {list(providers)}")
        return providers

    @staticmethod
    def _in_priority_order(providers: Dict[str, SourcingProvider]) -> Dict[str, SourcingProvider]:
        ordered = {pid: providers[pid] for pid in PROVIDER_PRIORITY if pid in providers}
        for pid, provider in providers.items():
            ordered.setdefault(pid, provider)
        return ordered

    def available_providers(self) -> List[Tuple[str, SourcingProvider]]:
        return [(pid, p) for pid, p in self.providers.items() if p.is_available()]

    def provider_status(self) -> List[Dict[str, object]]:
        """Configuration state of every registered provider (settings screen)."""
        return [
            {"id": pid, "name": p.name or pid, "configured": p.is_available()}
            for pid, p in self.providers.items()
        ]

    def any_available(self) -> bool:
        return bool(self.available_providers())

    async def refresh_providers(self) -> None:
        refreshers = [p.refresh() for p in self.providers.values() if hasattr(p, "refresh")]
        if refreshers:
            await asyncio.gather(*refreshers)

    async def search_all(self, query: str, limit: Optional[int] = None) -> SearchResult:
        """Search every available provider and merge the results.

        Providers re-check their availability first. Never raises for
        provider failures: each failure becomes an entry in ``errors``. With
        no available provider nothing is called and ``providers_queried`` is 0.
        """
        limit = limit or default_search_limit()
        await self.refresh_providers()
        selected = self.available_providers()
        collector = get_metrics_collector()

        with collector.track_search(query=query) as metrics:
            if not selected:
                logger.info("[SourcingRepository] No providers available; skipping search")
                return SearchResult(query=query)

            log_search_start(query, [pid for pid, _ in selected])

            outcomes = await asyncio.gather(
                *[
                    run_provider_with_status(
                        pid,
                        provider,
                        query,
                        limit=limit,
                        timeout_seconds=self.timeout_seconds,
                    )
                    for pid, provider in selected
                ]
            )

            candidates: List[Perfume] = []
            errors: List[ProviderError] = []
            statuses = []
            for (pid, provider), (results, status) in zip(selected, outcomes):
                statuses.append(status)
                latency_ms = float(status.latency_ms or 0)
                collector.record_provider(
                    metrics, pid, status.status, status.result_count, latency_ms, status.message
                )
                log_provider_result(pid, status.status, status.result_count, latency_ms)
                if status.status == "ok":
                    candidates.extend(results)
                else:
                    errors.append(
                        ProviderError(
                            provider=provider.name or pid,
                            error=status.message or "Search failed",
                        )
                    )

            merged = dedupe_and_merge(candidates)
            collector.record_results(metrics, total=len(candidates), unique=len(merged))

        return SearchResult(
            query=query,
            results=merged,
            errors=errors,
            providers_queried=len(selected),
            provider_statuses=statuses,
        )
