"""Response-envelope parsing for provider payloads.

Providers wrap their result lists inconsistently (bare array, ``results``,
``data``, ``hits``). ``unwrap_envelope`` tries the known shapes in a fixed
priority order and reports which one matched, so the fallback behaviour is
explicit and testable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

ARRAY = "array"
EMPTY = "empty"


@dataclass(frozen=True)
class Envelope:
    """Tagged result of parsing a provider payload."""

    shape: str
    items: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return self.shape != EMPTY


def _records(values: Sequence[Any]) -> List[Dict[str, Any]]:
    return [item for item in values if isinstance(item, dict)]


def unwrap_envelope(payload: Any, keys: Sequence[str] = ("results", "data")) -> Envelope:
    """Return the record list of ``payload``.

    Order: bare list first, then each key of ``keys`` whose value is a list.
    Anything else (``None``, scalars, error objects, unknown keys) is the
    ``empty`` shape with no items. Non-dict entries inside a list are dropped.
    """
    if isinstance(payload, list):
        return Envelope(shape=ARRAY, items=_records(payload))
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return Envelope(shape=key, items=_records(value))
    return Envelope(shape=EMPTY)
