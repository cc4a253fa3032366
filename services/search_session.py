"""Latest-query-wins wrapper around the aggregator.

Type-ahead search issues overlapping queries. Each query gets a ticket; a
response whose ticket is no longer the newest is dropped instead of being
returned or committed, so a slow early query can never overwrite the
results of a later one.
"""

import logging
from typing import Optional

from sourcing.models import SearchResult
from sourcing.repository import SourcingRepository

logger = logging.getLogger(__name__)


class SearchSession:
    def __init__(self, repository: SourcingRepository):
        self.repository = repository
        self._ticket = 0
        self.latest: Optional[SearchResult] = None

    @property
    def current_ticket(self) -> int:
        return self._ticket

    def is_current(self, ticket: int) -> bool:
        return ticket == self._ticket

    async def search(self, query: str, limit: Optional[int] = None) -> Optional[SearchResult]:
        """Run ``query``; returns None when a newer search superseded it."""
        self._ticket += 1
        ticket = self._ticket
        result = await self.repository.search_all(query, limit)
        if not self.is_current(ticket):
            logger.debug(f"[SearchSession] Dropping stale response for ticket {ticket} (current {self._ticket})")
            return None
        self.latest = result
        return result
