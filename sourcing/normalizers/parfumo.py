"""Parfumo dataset row normalizer."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from sourcing.models import AccordStrength, FragranceNote, NotePyramid, Perfume
from sourcing.normalizers.fields import (
    default_occasion_scores,
    default_season_scores,
    normalize_concentration,
    normalize_gender_from_title,
    split_list,
)

logger = logging.getLogger(__name__)

# Parfumo rates on 0-10; the catalog uses 0-5.
PARFUMO_RATING_SCALE = 2.0


def parse_accords(raw: Optional[str]) -> List[AccordStrength]:
    """Comma-listed accords are ordered by strength: first ~80%, decreasing toward 20%."""
    names = split_list(raw)
    total = len(names)
    return [
        AccordStrength(name=name, percentage=round(80 - (index / total) * 60))
        for index, name in enumerate(names)
    ]


def normalize_parfumo_entry(entry: Mapping[str, Any]) -> Optional[Perfume]:
    name = entry.get("name")
    brand = entry.get("brand")
    if not name and not brand:
        return None

    rating = entry.get("rating") or 0
    try:
        return Perfume(
            name=name or "Unknown",
            brand=brand or "Unknown",
            year=entry.get("year"),
            gender=normalize_gender_from_title(name, brand),
            concentration=normalize_concentration(entry.get("concentration")),
            rating=float(rating) / PARFUMO_RATING_SCALE,
            notes=NotePyramid(
                top=[FragranceNote(name=n) for n in split_list(entry.get("top_notes"))],
                middle=[FragranceNote(name=n) for n in split_list(entry.get("mid_notes"))],
                base=[FragranceNote(name=n) for n in split_list(entry.get("base_notes"))],
            ),
            accords=parse_accords(entry.get("accords")),
            season_scores=default_season_scores(),
            occasion_scores=default_occasion_scores(),
            data_source="parfumo",
        )
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning(f"[Parfumo] Skipping malformed dataset row {name!r}: {e}")
        return None


def normalize_parfumo_results(rows: List[Mapping[str, Any]]) -> List[Perfume]:
    results = []
    for row in rows:
        normalized = normalize_parfumo_entry(row)
        if normalized:
            results.append(normalized)
    return results
