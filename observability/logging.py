"""
Log setup for the Niche Library backend.

Every record carries the id of the HTTP request that produced it, so the
provider calls, normalizer warnings and sync dispatches of one search can be
read together. Provider API keys never reach a handler: the redaction filter
scrubs them out of messages and out of ``extra`` fields.

``LOG_FORMAT=json`` emits one JSON object per line (python-json-logger);
anything else emits a pipe-separated text line. ``LOG_LEVEL`` sets the root
level.
"""

import logging
import os
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from pythonjsonlogger import jsonlogger

from utils.security import redact_secrets_from_text

SERVICE_NAME = "niche-library-backend"
NO_REQUEST = "-"

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Extra fields whose values are provider credentials.
CREDENTIAL_FIELDS = frozenset({
    "api_key", "x-api-key", "x-rapidapi-key", "authorization",
    "fragella_api_key", "fragrancefinder_api_key",
})

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "httpx", "httpcore")


def current_request_id() -> Optional[str]:
    return _request_id.get()


def new_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:16]}"


@contextmanager
def request_id_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id (a fresh one when none is given) for the block."""
    bound = request_id or new_request_id()
    token = _request_id.set(bound)
    try:
        yield bound
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id() or NO_REQUEST
        return True


class CredentialRedactionFilter(logging.Filter):
    """Scrub provider keys from the rendered message and from extras."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # Left for the formatter's own error handling.
            return True
        scrubbed = redact_secrets_from_text(message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None

        for field in CREDENTIAL_FIELDS & set(record.__dict__):
            setattr(record, field, "[REDACTED]")
        return True


class LibraryJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["request_id"] = getattr(record, "request_id", NO_REQUEST)
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = os.getenv("ENVIRONMENT", "development")


def build_handler(log_format: str) -> logging.Handler:
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(LibraryJsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    handler.addFilter(RequestIdFilter())
    handler.addFilter(CredentialRedactionFilter())
    return handler


def setup_logging() -> None:
    """Replace the root handlers with one configured from the environment."""
    default_format = "json" if os.getenv("ENVIRONMENT") == "production" else "text"
    log_format = os.getenv("LOG_FORMAT", default_format).lower()

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.addHandler(build_handler(log_format))
    root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
