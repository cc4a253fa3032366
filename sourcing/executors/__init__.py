"""Provider executors."""

from sourcing.executors.base import run_provider_with_status

__all__ = [
    "run_provider_with_status",
]
