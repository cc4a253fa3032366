"""FragranceFinder provider (RapidAPI)."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from exceptions import ProviderNotConfiguredError
from sourcing.envelopes import unwrap_envelope
from sourcing.models import Perfume
from sourcing.normalizers import normalize_results_for_provider
from sourcing.repository import DEFAULT_SEARCH_LIMIT, SourcingProvider
from sourcing.utils import fetch_json

logger = logging.getLogger(__name__)


class FragranceFinderProvider(SourcingProvider):
    name = "FragranceFinder"
    provider_id = "fragrancefinder"
    HOST = "fragrancefinder-api.p.rapidapi.com"
    BASE_URL = f"https://{HOST}"
    ENVELOPE_KEYS = ("results", "hits", "data")

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        key_getter: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.api_key = api_key
        self._key_getter = key_getter

    def _current_key(self) -> Optional[str]:
        key = self._key_getter() if self._key_getter else self.api_key
        return key.strip() if key and key.strip() else None

    def is_available(self) -> bool:
        return self._current_key() is not None

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Perfume]:
        api_key = self._current_key()
        if not api_key:
            raise ProviderNotConfiguredError(self.name)

        query = (query or "").strip()
        if not query:
            return []

        payload = await fetch_json(
            self.name,
            f"{self.BASE_URL}/perfumes/search",
            params={"keyword": query, "perPage": limit},
            headers={
                "X-RapidAPI-Key": api_key,
                "X-RapidAPI-Host": self.HOST,
            },
        )
        envelope = unwrap_envelope(payload, self.ENVELOPE_KEYS)
        if not envelope.matched:
            logger.info(f"[FragranceFinder] Unrecognised response shape for {query!r}; treating as no results")
        return normalize_results_for_provider(self.provider_id, envelope.items)
