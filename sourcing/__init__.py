"""Multi-source perfume search and record reconciliation."""

from sourcing.models import (
    AccordStrength,
    FragranceNote,
    NotePyramid,
    OccasionScore,
    Perfume,
    ProviderError,
    ProviderStatusSnapshot,
    SearchResult,
    SeasonScore,
)
from sourcing.identity import build_key
from sourcing.scorer import richness_score
from sourcing.repository import SourcingProvider, SourcingRepository, dedupe_and_merge

__all__ = [
    "AccordStrength",
    "FragranceNote",
    "NotePyramid",
    "OccasionScore",
    "Perfume",
    "ProviderError",
    "ProviderStatusSnapshot",
    "SearchResult",
    "SeasonScore",
    "build_key",
    "richness_score",
    "SourcingProvider",
    "SourcingRepository",
    "dedupe_and_merge",
]
