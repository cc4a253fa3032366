"""Offline provider backed by the bundled Parfumo dataset.

The dataset lives in the ``parfumo_entry`` table (loaded by
``sourcing.dataset_loader``). Searches stream rows best-rated first and stop
as soon as enough matches are found, so a popular query never scans the
whole table.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from exceptions import ProviderNotConfiguredError
from models import AppSetting, ParfumoEntry
from sourcing.models import Perfume
from sourcing.normalizers import normalize_results_for_provider
from sourcing.repository import DEFAULT_SEARCH_LIMIT, SourcingProvider, env_float

logger = logging.getLogger(__name__)

DATASET_VERSION = 1
DATASET_VERSION_KEY = "parfumo_dataset_version"
MIN_TERM_LENGTH = 2
DEFAULT_RECHECK_SECONDS = 30.0


def query_terms(query: str) -> List[str]:
    return [t for t in (query or "").strip().lower().split() if len(t) >= MIN_TERM_LENGTH]


class ParfumoDatasetProvider(SourcingProvider):
    """Unavailable until the dataset version marker is present.

    The marker is written by whichever process runs the loader, so while the
    dataset is missing ``refresh`` re-reads it at most once every
    ``recheck_seconds``.
    """

    name = "Parfumo"
    provider_id = "parfumo"

    def __init__(self, engine: AsyncEngine, *, recheck_seconds: Optional[float] = None):
        self.engine = engine
        self.recheck_seconds = (
            recheck_seconds if recheck_seconds is not None
            else env_float("PARFUMO_RECHECK_SECONDS", DEFAULT_RECHECK_SECONDS)
        )
        self._loaded = False
        self._checked_at: Optional[float] = None

    def is_available(self) -> bool:
        return self._loaded

    def mark_loaded(self) -> None:
        self._loaded = True

    async def refresh_availability(self) -> bool:
        """Re-read the dataset version marker."""
        self._checked_at = time.monotonic()
        async with self.engine.connect() as conn:
            result = await conn.execute(
                sa.select(AppSetting.__table__.c.value).where(
                    AppSetting.__table__.c.key == DATASET_VERSION_KEY
                )
            )
            version = result.scalar_one_or_none()
        self._loaded = version == str(DATASET_VERSION)
        logger.info(f"[Parfumo] Dataset version={version!r} available={self._loaded}")
        return self._loaded

    async def refresh(self) -> None:
        if self._loaded:
            return
        if self._checked_at is not None and time.monotonic() - self._checked_at < self.recheck_seconds:
            return
        try:
            await self.refresh_availability()
        except SQLAlchemyError as e:
            logger.warning(f"[Parfumo] Could not read dataset marker: {type(e).__name__}")

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Perfume]:
        if not self._loaded:
            raise ProviderNotConfiguredError(self.name)

        terms = query_terms(query)
        if not terms:
            return []

        table = ParfumoEntry.__table__
        statement = sa.select(table).order_by(table.c.rating.desc())
        matches: List[Dict[str, Any]] = []

        async with self.engine.connect() as conn:
            stream = await conn.stream(statement)
            try:
                async for row in stream.mappings():
                    haystack = f"{row['name']} {row['brand']}".lower()
                    if all(term in haystack for term in terms):
                        matches.append(dict(row))
                        if len(matches) >= limit:
                            break
            finally:
                await stream.close()

        return normalize_results_for_provider(self.provider_id, matches)
