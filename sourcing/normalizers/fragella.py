"""Fragella API result normalizer."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sourcing.models import AccordStrength, FragranceNote, NotePyramid, Perfume
from sourcing.normalizers.fields import (
    complete_occasion_scores,
    complete_season_scores,
    normalize_accord_strength,
    normalize_concentration,
    normalize_gender,
    split_list,
)

logger = logging.getLogger(__name__)


def _note_list(raw: Any) -> List[FragranceNote]:
    if isinstance(raw, list):
        notes = []
        for entry in raw:
            if isinstance(entry, dict):
                name = str(entry.get("name") or entry.get("Name") or "").strip()
                if name:
                    notes.append(FragranceNote(name=name, image_url=entry.get("imageUrl") or None))
            elif entry:
                notes.append(FragranceNote(name=str(entry).strip()))
        return notes
    return [FragranceNote(name=name) for name in split_list(raw)]


def _notes(raw: Any) -> NotePyramid:
    if not isinstance(raw, dict):
        return NotePyramid()
    return NotePyramid(
        top=_note_list(raw.get("Top")),
        middle=_note_list(raw.get("Middle") or raw.get("Heart")),
        base=_note_list(raw.get("Base")),
    )


def _accords(item: Dict[str, Any]) -> List[AccordStrength]:
    by_percentage = item.get("MainAccordsPercentage")
    if isinstance(by_percentage, dict) and by_percentage:
        return [
            AccordStrength(name=str(name), percentage=normalize_accord_strength(level))
            for name, level in by_percentage.items()
            if str(name).strip()
        ]

    raw = item.get("MainAccords")
    accords: List[AccordStrength] = []
    for entry in raw if isinstance(raw, list) else []:
        if isinstance(entry, dict):
            name = str(entry.get("name") or "").strip()
            if not name:
                continue
            strength = entry.get("percentage")
            if strength is None:
                strength = entry.get("level")
            accords.append(AccordStrength(name=name, percentage=normalize_accord_strength(strength)))
        elif isinstance(entry, str) and entry.strip():
            accords.append(AccordStrength(name=entry.strip(), percentage=normalize_accord_strength(None)))
    return accords


def normalize_fragella_result(item: Dict[str, Any]) -> Optional[Perfume]:
    """Normalize a single Fragella fragrance into a Perfume."""
    name = item.get("Name")
    brand = item.get("Brand")
    if not name and not brand:
        return None

    oil_type = item.get("OilType")
    try:
        return Perfume(
            name=name or "Unknown",
            brand=brand or "Unknown",
            year=item.get("Year"),
            gender=normalize_gender(item.get("Gender")),
            concentration=normalize_concentration(oil_type),
            rating=item.get("rating") or 0,
            longevity=item.get("Longevity", 5),
            sillage=item.get("Sillage", 5),
            notes=_notes(item.get("Notes")),
            accords=_accords(item),
            season_scores=complete_season_scores(item.get("SeasonRanking")),
            occasion_scores=complete_occasion_scores(item.get("OccasionRanking")),
            image_url=item.get("ImageUrl") or item.get("Image URL"),
            source_url=item.get("SourceUrl") or item.get("Purchase URL"),
            data_source="fragella",
        )
    except ValidationError as e:
        logger.warning(f"[Fragella] Skipping malformed record {name!r}: {e.error_count()} errors")
        return None
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning(f"[Fragella] Skipping malformed record {name!r}: {type(e).__name__}")
        return None


def normalize_fragella_results(raw_items: List[Dict[str, Any]]) -> List[Perfume]:
    """Normalize a list of Fragella API results."""
    results = []
    for item in raw_items:
        normalized = normalize_fragella_result(item)
        if normalized:
            results.append(normalized)
    return results
