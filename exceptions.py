"""
Custom exception hierarchy for the Niche Library backend.

All exceptions inherit from NicheLibraryError so callers can catch and log
them uniformly.

Exception Hierarchy:
    NicheLibraryError (base)
    ├── ValidationError
    ├── ResourceNotFoundError
    ├── DatasetLoadError
    ├── ExternalServiceError
    │   ├── SearchProviderError
    │   │   ├── ProviderNotConfiguredError
    │   │   ├── ProviderRateLimitError
    │   │   ├── ProviderAuthError
    │   │   └── ProviderTransportError
    │   └── SyncError

Usage:
    from exceptions import ProviderRateLimitError

    raise ProviderRateLimitError("Fragella")

    try:
        await provider.search("sauvage")
    except SearchProviderError as e:
        logger.warning(f"Provider failed: {e}")
"""

from typing import Optional, Dict, Any


class NicheLibraryError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
        status_code: Suggested HTTP status code (for API errors)
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result


class ValidationError(NicheLibraryError):
    """
    Raised when input validation fails.

    Examples:
        raise ValidationError("Brand is required")
        raise ValidationError("Invalid rating", detail={"field": "personal_rating"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=400)


class ResourceNotFoundError(NicheLibraryError):
    """
    Raised when a requested resource doesn't exist.

    Examples:
        raise ResourceNotFoundError("Perfume not found", detail={"perfume_id": "dior-sauvage-edt"})
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=404)


class DatasetLoadError(NicheLibraryError):
    """Raised when the bundled dataset cannot be fetched or imported."""

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message, detail=detail, status_code=500)


class ExternalServiceError(NicheLibraryError):
    """
    Base exception for external service failures.

    This is a parent class for specific service errors (search providers, sync).
    """

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        service_name: Optional[str] = None,
        status_code: int = 502,
    ):
        if service_name and detail is None:
            detail = {"service": service_name}
        elif service_name and detail:
            detail["service"] = service_name

        super().__init__(message, detail=detail, status_code=status_code)


class SearchProviderError(ExternalServiceError):
    """
    Raised when a search provider (Fragella, FragranceFinder, ...) fails.

    The message is user-facing: the aggregator copies it verbatim into the
    ``errors`` list of a search result.
    """

    status = "error"

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[Dict[str, Any]] = None,
        provider: Optional[str] = None,
        status_code: int = 502,
    ):
        if provider and detail is None:
            detail = {"provider": provider}
        elif provider and detail:
            detail["provider"] = provider

        self.provider = provider
        super().__init__(
            message, detail=detail, service_name="search_provider", status_code=status_code
        )


class ProviderNotConfiguredError(SearchProviderError):
    """Raised when ``search`` is called on a provider without credentials/data."""

    status = "not_configured"

    def __init__(self, provider: str):
        super().__init__(
            f"{provider} is not configured. Add its API key in Settings.",
            provider=provider,
            status_code=503,
        )


class ProviderRateLimitError(SearchProviderError):
    """Raised on HTTP 429. Never retried automatically."""

    status = "rate_limited"

    def __init__(self, provider: str, *, retry_after: Optional[int] = None):
        detail = {"retry_after": retry_after} if retry_after else None
        super().__init__(
            f"{provider} search limit reached. Try again later or add the perfume manually.",
            detail=detail,
            provider=provider,
            status_code=429,
        )


class ProviderAuthError(SearchProviderError):
    """Raised on HTTP 401/403."""

    status = "unauthorized"

    def __init__(self, provider: str):
        super().__init__(
            f"Invalid {provider} API key. Check your configuration in Settings.",
            provider=provider,
            status_code=401,
        )


class ProviderTransportError(SearchProviderError):
    """
    Raised on any other network, HTTP or malformed-response failure.

    Examples:
        raise ProviderTransportError("Fragella", status=500)
        raise ProviderTransportError("Fragella", reason="invalid JSON")
    """

    def __init__(
        self,
        provider: str,
        *,
        status: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        if status is not None:
            message = f"{provider} API error: {status}"
        elif reason:
            message = f"{provider} API error: {reason}"
        else:
            message = f"{provider} API error"
        self.http_status = status
        super().__init__(message, provider=provider)


class SyncError(ExternalServiceError):
    """
    Raised when a remote sync write fails.

    ``retryable`` is False for operations that can never succeed (an unknown
    operation kind); the propagator gives up on those after one attempt.
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None, retryable: bool = True):
        self.retryable = retryable
        super().__init__(message, detail=detail, service_name="sync")
