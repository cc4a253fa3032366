"""Provider executors with status instrumentation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Tuple, TYPE_CHECKING

from exceptions import SearchProviderError
from observability.metrics import track_provider_call
from sourcing.models import Perfume, ProviderStatusSnapshot
from utils.security import redact_secrets_from_text

if TYPE_CHECKING:
    from sourcing.repository import SourcingProvider

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Search timed out"


async def run_provider_with_status(
    provider_id: str,
    provider: "SourcingProvider",
    query: str,
    *,
    limit: int = 10,
    timeout_seconds: float = 8.0,
) -> Tuple[List[Perfume], ProviderStatusSnapshot]:
    """Run one provider search, capturing its outcome instead of raising.

    Provider failures become a non-ok snapshot whose ``message`` is the
    user-facing error text; the result list is then empty.
    """
    started = time.monotonic()
    try:
        results = await asyncio.wait_for(
            provider.search(query, limit=limit), timeout=timeout_seconds
        )
        elapsed = time.monotonic() - started
        status = ProviderStatusSnapshot(
            provider_id=provider_id,
            status="ok",
            result_count=len(results),
            latency_ms=int(elapsed * 1000),
        )
        track_provider_call(provider_id, "ok", elapsed, len(results))
        return results, status
    except asyncio.TimeoutError:
        elapsed = time.monotonic() - started
        logger.warning(f"[{provider_id}] Search timed out after {timeout_seconds}s")
        status = ProviderStatusSnapshot(
            provider_id=provider_id,
            status="timeout",
            result_count=0,
            latency_ms=int(elapsed * 1000),
            message=TIMEOUT_MESSAGE,
        )
        track_provider_call(provider_id, "timeout", elapsed, 0)
        return [], status
    except SearchProviderError as e:
        elapsed = time.monotonic() - started
        error_msg = redact_secrets_from_text(e.message)
        logger.warning(f"[{provider_id}] Search failed ({e.status}): {error_msg}")
        status = ProviderStatusSnapshot(
            provider_id=provider_id,
            status=e.status,
            result_count=0,
            latency_ms=int(elapsed * 1000),
            message=error_msg,
        )
        track_provider_call(provider_id, e.status, elapsed, 0)
        return [], status
    except Exception as e:
        elapsed = time.monotonic() - started
        error_msg = redact_secrets_from_text(str(e))
        logger.exception(f"[{provider_id}] Search error: {type(e).__name__}: {error_msg}")
        status = ProviderStatusSnapshot(
            provider_id=provider_id,
            status="error",
            result_count=0,
            latency_ms=int(elapsed * 1000),
            message=f"Search failed: {error_msg[:100]}",
        )
        track_provider_call(provider_id, "error", elapsed, 0)
        return [], status
