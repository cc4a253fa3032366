"""
Collection shelves: named, rule-based views over the user's collection.

Every shelf is a predicate over a ``ShelfPerfume`` (catalog record joined with
its collection entry). Shelf contents are sorted by effective rating, best
first, then by name.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from models import CollectionEntry, PriceEstimate
from sourcing.models import NEUTRAL_SCORE, OCCASIONS, Perfume

TOP_RATED_THRESHOLD = 4.0
ACCORD_THRESHOLD = 20
TIME_HIGH = 60
TIME_LOW = 40


class ShelfPerfume(BaseModel):
    """A catalog perfume as it sits in the user's collection."""

    perfume: Perfume
    owned: bool
    added_at: datetime
    personal_rating: Optional[float] = None
    personal_notes: Optional[str] = None
    price_estimate: Optional[PriceEstimate] = None
    tags: List[str] = []
    effective_rating: float

    @classmethod
    def build(cls, perfume: Perfume, entry: CollectionEntry) -> "ShelfPerfume":
        effective = entry.personal_rating if entry.personal_rating is not None else perfume.rating
        return cls(
            perfume=perfume,
            owned=entry.owned,
            added_at=entry.added_at,
            personal_rating=entry.personal_rating,
            personal_notes=entry.personal_notes,
            price_estimate=entry.price_estimate,
            tags=entry.tags or [],
            effective_rating=effective,
        )


@dataclass(frozen=True)
class ShelfDefinition:
    id: str
    label: str
    category: str  # collection, season, time, occasion, family
    matches: Callable[[ShelfPerfume], bool]


def _season(season: str) -> Callable[[ShelfPerfume], bool]:
    return lambda item: item.perfume.season_score(season) > NEUTRAL_SCORE


def _occasion(occasion: str) -> Callable[[ShelfPerfume], bool]:
    return lambda item: item.perfume.occasion_score(occasion) > NEUTRAL_SCORE


def _has_occasion_signal(item: ShelfPerfume) -> bool:
    return any(item.perfume.occasion_score(o) != NEUTRAL_SCORE for o in OCCASIONS)


def _day_night(item: ShelfPerfume):
    p = item.perfume
    day = (p.occasion_score("casual") + p.occasion_score("professional")) / 2
    return day, p.occasion_score("nightOut")


def _is_day(item: ShelfPerfume) -> bool:
    if not _has_occasion_signal(item):
        return False
    day, night = _day_night(item)
    return day >= TIME_HIGH or (day >= TIME_LOW and night < TIME_HIGH)


def _is_night(item: ShelfPerfume) -> bool:
    if not _has_occasion_signal(item):
        return False
    _, night = _day_night(item)
    return night >= TIME_LOW


def _is_versatile(item: ShelfPerfume) -> bool:
    if not _has_occasion_signal(item):
        return False
    day, night = _day_night(item)
    return day >= TIME_LOW and night >= TIME_LOW


# Accord vocabularies include the Spanish names used by the bundled dataset.
ACCORD_FAMILIES: Dict[str, Sequence[str]] = {
    "woody": ("woody", "amaderado", "warm spicy", "oud"),
    "oriental": ("oriental", "amber", "sweet", "balsamic", "ámbar"),
    "fresh": ("fresh", "aquatic", "ozonic", "green", "fresco", "acuático"),
    "floral": ("floral", "white floral", "rose", "floral blanco"),
    "aromatic": ("aromatic", "herbal", "lavender", "aromático"),
    "citrus": ("citrus", "cítrico", "fresh spicy"),
}


def _family(vocabulary: Sequence[str]) -> Callable[[ShelfPerfume], bool]:
    names = set(vocabulary)
    return lambda item: any(
        a.name.strip().lower() in names and a.percentage >= ACCORD_THRESHOLD
        for a in item.perfume.accords
    )


SHELF_DEFINITIONS: List[ShelfDefinition] = [
    ShelfDefinition("all", "My Collection", "collection", lambda item: item.owned),
    ShelfDefinition("wishlist", "Wishlist", "collection", lambda item: not item.owned),
    ShelfDefinition(
        "top-rated", "Top Rated", "collection",
        lambda item: item.effective_rating >= TOP_RATED_THRESHOLD,
    ),
    ShelfDefinition("season-spring", "Spring", "season", _season("spring")),
    ShelfDefinition("season-summer", "Summer", "season", _season("summer")),
    ShelfDefinition("season-fall", "Fall", "season", _season("fall")),
    ShelfDefinition("season-winter", "Winter", "season", _season("winter")),
    ShelfDefinition("time-day", "Day", "time", _is_day),
    ShelfDefinition("time-night", "Night", "time", _is_night),
    ShelfDefinition("time-versatile", "Versatile", "time", _is_versatile),
    ShelfDefinition("occasion-professional", "Professional", "occasion", _occasion("professional")),
    ShelfDefinition("occasion-casual", "Casual", "occasion", _occasion("casual")),
    ShelfDefinition("occasion-nightOut", "Night Out", "occasion", _occasion("nightOut")),
    ShelfDefinition("occasion-date", "Date", "occasion", _occasion("date")),
    ShelfDefinition("occasion-special", "Special Event", "occasion", _occasion("special")),
] + [
    ShelfDefinition(f"family-{family}", family.capitalize(), "family", _family(vocabulary))
    for family, vocabulary in ACCORD_FAMILIES.items()
]

_SHELVES_BY_ID = {shelf.id: shelf for shelf in SHELF_DEFINITIONS}


def get_shelf_definition(shelf_id: str) -> Optional[ShelfDefinition]:
    return _SHELVES_BY_ID.get(shelf_id)


def shelf_perfumes(items: Sequence[ShelfPerfume], shelf_id: str) -> List[ShelfPerfume]:
    """Items on ``shelf_id``; unknown shelves are empty."""
    shelf = get_shelf_definition(shelf_id)
    if not shelf:
        return []
    selected = [item for item in items if shelf.matches(item)]
    return sorted(selected, key=lambda item: (-item.effective_rating, item.perfume.name.lower()))
