"""Result normalizers: raw provider payloads -> canonical Perfume records."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from sourcing.models import Perfume
from sourcing.normalizers.fields import (
    complete_occasion_scores,
    complete_season_scores,
    default_occasion_scores,
    default_season_scores,
    normalize_accord_strength,
    normalize_concentration,
    normalize_gender,
    normalize_gender_from_title,
)
from sourcing.normalizers.fragella import normalize_fragella_results
from sourcing.normalizers.fragrancefinder import normalize_fragrancefinder_results
from sourcing.normalizers.parfumo import normalize_parfumo_results

NORMALIZER_REGISTRY: Dict[str, Callable[[List[Any]], List[Perfume]]] = {
    "fragella": normalize_fragella_results,
    "fragrancefinder": normalize_fragrancefinder_results,
    "parfumo": normalize_parfumo_results,
}


def normalize_results_for_provider(provider_id: str, raw_items: List[Any]) -> List[Perfume]:
    normalizer = NORMALIZER_REGISTRY.get(provider_id)
    if not normalizer:
        raise KeyError(f"No normalizer registered for provider {provider_id!r}")
    return normalizer(raw_items)


__all__ = [
    "NORMALIZER_REGISTRY",
    "normalize_results_for_provider",
    "normalize_gender",
    "normalize_gender_from_title",
    "normalize_concentration",
    "normalize_accord_strength",
    "default_season_scores",
    "default_occasion_scores",
    "complete_season_scores",
    "complete_occasion_scores",
]
