"""HTTP helpers shared by the online perfume providers.

Maps upstream HTTP outcomes onto the provider error taxonomy:
429 -> rate limited, 401/403 -> invalid credential, any other non-2xx,
network failure or unparseable body -> transport error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from exceptions import ProviderAuthError, ProviderRateLimitError, ProviderTransportError
from utils.security import redact_secrets_from_text

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0


def _retry_after(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("Retry-After")
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def raise_for_provider_status(provider_name: str, response: httpx.Response) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return
    if status == 429:
        raise ProviderRateLimitError(provider_name, retry_after=_retry_after(response))
    if status in (401, 403):
        raise ProviderAuthError(provider_name)
    raise ProviderTransportError(provider_name, status=status)


async def fetch_json(
    provider_name: str,
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
) -> Any:
    """GET ``url`` and return the decoded JSON body, raising taxonomy errors."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as e:
        safe_msg = redact_secrets_from_text(str(e))
        logger.warning(f"[{provider_name}] Request failed: {type(e).__name__}: {safe_msg}")
        raise ProviderTransportError(provider_name, reason=type(e).__name__) from e

    raise_for_provider_status(provider_name, response)

    try:
        return response.json()
    except ValueError as e:
        raise ProviderTransportError(provider_name, reason="invalid JSON response") from e
