"""Shared helpers for the sourcing providers."""

from .http import fetch_json, raise_for_provider_status

__all__ = [
    "fetch_json",
    "raise_for_provider_status",
]
