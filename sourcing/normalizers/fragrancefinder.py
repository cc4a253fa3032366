"""FragranceFinder (RapidAPI) result normalizer.

The upstream schema is loose: notes arrive as a top/middle/base object, a flat
list, a ``scent_notes`` list or a comma-separated string.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sourcing.models import FragranceNote, NotePyramid, Perfume
from sourcing.normalizers.fields import (
    default_occasion_scores,
    default_season_scores,
    normalize_concentration,
    normalize_gender,
    split_list,
)

logger = logging.getLogger(__name__)

IMAGE_CDN_TEMPLATE = "https://fimgs.net/mdimg/perfume/375x500.{image_id}.jpg"


def _as_notes(names: List[str]) -> List[FragranceNote]:
    return [FragranceNote(name=name) for name in names]


def extract_notes(item: Dict[str, Any]) -> NotePyramid:
    """Parse notes trying, in order: structured object, list, ``scent_notes``, string.

    Unstructured notes have no pyramid position and are all filed as top notes.
    """
    notes = item.get("notes")
    if isinstance(notes, dict):
        return NotePyramid(
            top=_as_notes(split_list(notes.get("top"))),
            middle=_as_notes(split_list(notes.get("middle") or notes.get("heart"))),
            base=_as_notes(split_list(notes.get("base"))),
        )
    if isinstance(notes, list):
        return NotePyramid(top=_as_notes(split_list(notes)))
    scent_notes = item.get("scent_notes")
    if isinstance(scent_notes, list):
        return NotePyramid(top=_as_notes(split_list(scent_notes)))
    if isinstance(notes, str):
        return NotePyramid(top=_as_notes(split_list(notes)))
    return NotePyramid()


def build_image_url(item: Dict[str, Any]) -> Optional[str]:
    image = item.get("image")
    if isinstance(image, str) and image.startswith("http"):
        return image
    image_id = item.get("imageId")
    if image_id not in (None, ""):
        return IMAGE_CDN_TEMPLATE.format(image_id=image_id)
    return None


def normalize_fragrancefinder_result(item: Dict[str, Any]) -> Optional[Perfume]:
    name = item.get("name")
    brand = item.get("brand")
    if not name and not brand:
        return None

    try:
        return Perfume(
            name=name or "Unknown",
            brand=brand or "Unknown",
            year=item.get("year"),
            gender=normalize_gender(item.get("gender")),
            concentration=normalize_concentration(item.get("concentration")),
            rating=item.get("rating") or 0,
            notes=extract_notes(item),
            season_scores=default_season_scores(),
            occasion_scores=default_occasion_scores(),
            image_url=build_image_url(item),
            description=item.get("description"),
            data_source="fragrancefinder",
        )
    except ValidationError as e:
        logger.warning(f"[FragranceFinder] Skipping malformed record {name!r}: {e.error_count()} errors")
        return None
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning(f"[FragranceFinder] Skipping malformed record {name!r}: {type(e).__name__}")
        return None


def normalize_fragrancefinder_results(raw_items: List[Dict[str, Any]]) -> List[Perfume]:
    results = []
    for item in raw_items:
        normalized = normalize_fragrancefinder_result(item)
        if normalized:
            results.append(normalized)
    return results
