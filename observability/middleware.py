"""Request id binding and request logging for the FastAPI app."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging import request_id_scope

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
UNLOGGED_PREFIXES = ("/health", "/metrics")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the lifetime of each request and echo it back."""

    def __init__(self, app: ASGIApp, enable_request_logging: bool = True):
        super().__init__(app)
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER) or request.headers.get("X-Correlation-ID")

        with request_id_scope(incoming) as request_id:
            request.state.request_id = request_id
            started = time.monotonic()
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "Request failed",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "duration_seconds": round(time.monotonic() - started, 3),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                raise

            response.headers[REQUEST_ID_HEADER] = request_id
            if self.enable_request_logging and not request.url.path.startswith(UNLOGGED_PREFIXES):
                logger.info(
                    "Request completed",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "duration_seconds": round(time.monotonic() - started, 3),
                    },
                )
            return response
