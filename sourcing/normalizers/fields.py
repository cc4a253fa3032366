"""Field normalizers mapping provider vocabularies onto canonical enums.

Every function here is total: unknown, empty or garbage input degrades to the
documented default instead of raising.
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, Iterable, List, Optional

from sourcing.models import (
    NEUTRAL_SCORE,
    OCCASIONS,
    SEASONS,
    Concentration,
    Gender,
    OccasionScore,
    SeasonScore,
)

_WORD = re.compile(r"[a-z]+")

_FEMININE_WORDS = {
    "women", "woman", "female", "her", "she", "ladies", "lady",
    "femme", "feminine", "femenino", "femenina", "mujer",
}
_MASCULINE_WORDS = {
    "men", "man", "male", "him", "he", "gentlemen", "homme",
    "masculine", "masculino", "hombre",
}

ACCORD_STRENGTH_BUCKETS: Dict[str, float] = {
    "dominant": 85,
    "prominent": 65,
    "moderate": 40,
    "subtle": 20,
}
DEFAULT_ACCORD_STRENGTH = 30

_SEASON_ALIASES: Dict[str, str] = {
    "spring": "spring",
    "summer": "summer",
    "fall": "fall",
    "autumn": "fall",
    "winter": "winter",
}

_OCCASION_ALIASES: Dict[str, str] = {
    "professional": "professional",
    "work": "professional",
    "office": "professional",
    "business": "professional",
    "casual": "casual",
    "daily": "casual",
    "leisure": "casual",
    "nightout": "nightOut",
    "night": "nightOut",
    "evening": "nightOut",
    "party": "nightOut",
    "date": "date",
    "romantic": "date",
    "special": "special",
    "specialoccasion": "special",
    "formal": "special",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_score(value: Any) -> Optional[float]:
    if _is_number(value):
        score = float(value)
    else:
        try:
            score = float(str(value).strip().rstrip("%"))
        except (TypeError, ValueError):
            return None
    if math.isnan(score) or math.isinf(score):
        return None
    return max(0.0, min(100.0, score))


def normalize_gender(raw: Optional[str] = None) -> Gender:
    """Map a provider gender string onto masculine/feminine/unisex.

    Words are matched whole so "women" never counts as "men". Input naming
    both genders (e.g. "for women and men") is unisex.
    """
    if not raw or not isinstance(raw, str):
        return "unisex"
    words = set(_WORD.findall(raw.lower()))
    feminine = bool(words & _FEMININE_WORDS)
    masculine = bool(words & _MASCULINE_WORDS)
    if feminine and not masculine:
        return "feminine"
    if masculine and not feminine:
        return "masculine"
    return "unisex"


def normalize_gender_from_title(name: Optional[str], brand: Optional[str]) -> Gender:
    """Dataset rows carry no gender field; read it from the perfume title."""
    title = f" {name or ''} {brand or ''} ".lower()
    if any(marker in title for marker in ("pour homme", "for men", " man ", " him ")):
        return "masculine"
    if any(marker in title for marker in ("pour femme", "for women", " woman ", " her ")):
        return "feminine"
    return "unisex"


def normalize_concentration(raw: Optional[str] = None) -> Concentration:
    if not raw or not isinstance(raw, str):
        return "Other"
    upper = raw.upper()
    if "EXTRAIT" in upper or "ELIXIR" in upper:
        return "Extrait"
    if "EDP" in upper or "EAU DE PARFUM" in upper:
        return "EDP"
    if "EDT" in upper or "EAU DE TOILETTE" in upper:
        return "EDT"
    if "EDC" in upper or "COLOGNE" in upper:
        return "EDC"
    if "PARFUM" in upper:
        return "Parfum"
    return "Other"


def normalize_accord_strength(raw: Any) -> float:
    """Return an accord percentage in 0-100.

    Numbers (and numeric strings such as "45%") pass through clamped;
    qualitative labels map to fixed buckets; anything else is 30.
    """
    if raw is None:
        return DEFAULT_ACCORD_STRENGTH
    numeric = _coerce_score(raw)
    if numeric is not None:
        return numeric
    label = str(raw).strip().lower()
    return ACCORD_STRENGTH_BUCKETS.get(label, DEFAULT_ACCORD_STRENGTH)


def default_season_scores() -> List[SeasonScore]:
    return [SeasonScore(season=season, score=NEUTRAL_SCORE) for season in SEASONS]


def default_occasion_scores() -> List[OccasionScore]:
    return [OccasionScore(occasion=occasion, score=NEUTRAL_SCORE) for occasion in OCCASIONS]


def _label_of(entry: Any, *keys: str) -> Optional[str]:
    if isinstance(entry, dict):
        for key in keys:
            value = entry.get(key)
            if value:
                return str(value)
    return None


def _score_of(entry: Any) -> Optional[float]:
    if isinstance(entry, dict):
        for key in ("score", "Score", "value", "percentage"):
            if key in entry:
                return _coerce_score(entry.get(key))
    return None


def canonical_season(label: Optional[str]) -> Optional[str]:
    if not label:
        return None
    return _SEASON_ALIASES.get(re.sub(r"[^a-z]", "", label.lower()))


def canonical_occasion(label: Optional[str]) -> Optional[str]:
    if not label:
        return None
    key = re.sub(r"[^a-z]", "", label.lower())
    return _OCCASION_ALIASES.get(key)


def complete_season_scores(partial: Optional[Iterable[Any]]) -> List[SeasonScore]:
    """Map provider season rankings onto all four seasons, filling gaps with 50."""
    found: Dict[str, float] = {}
    for entry in partial if isinstance(partial, (list, tuple)) else []:
        season = canonical_season(_label_of(entry, "season", "Season", "name", "Name"))
        score = _score_of(entry)
        if season and score is not None and season not in found:
            found[season] = score
    return [SeasonScore(season=s, score=found.get(s, NEUTRAL_SCORE)) for s in SEASONS]


def complete_occasion_scores(partial: Optional[Iterable[Any]]) -> List[OccasionScore]:
    """Map provider occasion rankings onto all five occasions, filling gaps with 50."""
    found: Dict[str, float] = {}
    for entry in partial if isinstance(partial, (list, tuple)) else []:
        occasion = canonical_occasion(_label_of(entry, "occasion", "Occasion", "name", "Name"))
        score = _score_of(entry)
        if occasion and score is not None and occasion not in found:
            found[occasion] = score
    return [OccasionScore(occasion=o, score=found.get(o, NEUTRAL_SCORE)) for o in OCCASIONS]


def split_list(raw: Any) -> List[str]:
    """Split a comma-separated string (or pass a list through) into clean names."""
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = raw
    else:
        return []
    names: List[str] = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("name") or item.get("Name") or ""
        text = str(item).strip()
        if text:
            names.append(text)
    return names
