"""Typed models for the perfume search pipeline."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from sourcing.identity import build_key

Gender = Literal["masculine", "feminine", "unisex"]
Concentration = Literal["EDT", "EDP", "Extrait", "Parfum", "EDC", "Other"]
Season = Literal["spring", "summer", "fall", "winter"]
Occasion = Literal["professional", "casual", "nightOut", "date", "special"]
DataSource = Literal["parfumo", "fragella", "fragrancefinder", "manual", "seed"]
ProviderStatus = Literal["ok", "error", "timeout", "rate_limited", "unauthorized", "not_configured"]

SEASONS: tuple = ("spring", "summer", "fall", "winter")
OCCASIONS: tuple = ("professional", "casual", "nightOut", "date", "special")

NEUTRAL_SCORE = 50
DEFAULT_LONGEVITY = 5
DEFAULT_SILLAGE = 5


def _finite(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class FragranceNote(BaseModel):
    name: str
    image_url: Optional[str] = None


class NotePyramid(BaseModel):
    top: List[FragranceNote] = Field(default_factory=list)
    middle: List[FragranceNote] = Field(default_factory=list)
    base: List[FragranceNote] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.top or self.middle or self.base)


class AccordStrength(BaseModel):
    name: str
    percentage: float = Field(..., ge=0, le=100)


class SeasonScore(BaseModel):
    season: Season
    score: float = Field(NEUTRAL_SCORE, ge=0, le=100)


class OccasionScore(BaseModel):
    occasion: Occasion
    score: float = Field(NEUTRAL_SCORE, ge=0, le=100)


class Perfume(BaseModel):
    """Canonical perfume record every provider produces.

    ``id`` is always derived from brand, name and concentration; whatever a
    provider passes in is overwritten. Season and occasion lists are always
    complete and in canonical order.
    """

    id: str = ""
    name: str
    brand: str
    year: Optional[int] = None
    gender: Gender = "unisex"
    concentration: Concentration = "Other"
    rating: float = 0.0
    longevity: int = DEFAULT_LONGEVITY
    sillage: int = DEFAULT_SILLAGE
    notes: NotePyramid = Field(default_factory=NotePyramid)
    accords: List[AccordStrength] = Field(default_factory=list)
    season_scores: List[SeasonScore] = Field(default_factory=list)
    occasion_scores: List[OccasionScore] = Field(default_factory=list)
    image_url: Optional[str] = None
    description: Optional[str] = None
    source_url: Optional[str] = None
    data_source: DataSource = "manual"

    @field_validator("name", "brand", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        return str(value if value is not None else "").strip()

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_year(cls, value: Any) -> Optional[int]:
        if value in (None, "", 0, "0"):
            return None
        number = _finite(value)
        if number is None:
            return None
        year = int(number)
        return year if year > 0 else None

    @field_validator("rating", mode="before")
    @classmethod
    def _clamp_rating(cls, value: Any) -> float:
        number = _finite(value)
        return _clamp(number, 0.0, 5.0) if number is not None else 0.0

    @field_validator("longevity", "sillage", mode="before")
    @classmethod
    def _clamp_performance(cls, value: Any) -> int:
        number = _finite(value)
        if number is None:
            return DEFAULT_LONGEVITY
        return int(round(_clamp(number, 0, 10)))

    @field_validator("image_url", "description", "source_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("season_scores", mode="after")
    @classmethod
    def _complete_seasons(cls, value: List[SeasonScore]) -> List[SeasonScore]:
        by_season: Dict[str, SeasonScore] = {}
        for entry in value:
            by_season.setdefault(entry.season, entry)
        return [by_season.get(season) or SeasonScore(season=season) for season in SEASONS]

    @field_validator("occasion_scores", mode="after")
    @classmethod
    def _complete_occasions(cls, value: List[OccasionScore]) -> List[OccasionScore]:
        by_occasion: Dict[str, OccasionScore] = {}
        for entry in value:
            by_occasion.setdefault(entry.occasion, entry)
        return [by_occasion.get(occasion) or OccasionScore(occasion=occasion) for occasion in OCCASIONS]

    @model_validator(mode="after")
    def _derive_id(self) -> "Perfume":
        self.id = self.identity_key()
        return self

    def identity_key(self) -> str:
        concentration = self.concentration if self.concentration != "Other" else None
        return build_key(self.brand, self.name, concentration)

    def season_score(self, season: str) -> float:
        for entry in self.season_scores:
            if entry.season == season:
                return entry.score
        return NEUTRAL_SCORE

    def occasion_score(self, occasion: str) -> float:
        for entry in self.occasion_scores:
            if entry.occasion == occasion:
                return entry.score
        return NEUTRAL_SCORE


class ProviderError(BaseModel):
    provider: str
    error: str


class ProviderStatusSnapshot(BaseModel):
    provider_id: str
    status: ProviderStatus
    result_count: int = 0
    latency_ms: Optional[int] = None
    message: Optional[str] = None


class SearchResult(BaseModel):
    """Aggregated output of one ``search_all`` call."""

    query: str = ""
    results: List[Perfume] = Field(default_factory=list)
    errors: List[ProviderError] = Field(default_factory=list)
    providers_queried: int = 0
    provider_statuses: List[ProviderStatusSnapshot] = Field(default_factory=list)

    @property
    def no_providers(self) -> bool:
        return self.providers_queried == 0

    @property
    def all_providers_failed(self) -> bool:
        return self.providers_queried > 0 and len(self.errors) >= self.providers_queried

    @property
    def is_total_failure(self) -> bool:
        """No results to show and at least one provider error."""
        return bool(self.errors) and not self.results

    @property
    def is_partial(self) -> bool:
        return bool(self.errors) and bool(self.results)

    def to_contract(self) -> Dict[str, Any]:
        """Serialise with the external camelCase contract keys."""
        return {
            "query": self.query,
            "results": [r.model_dump() for r in self.results],
            "errors": [e.model_dump() for e in self.errors],
            "providersQueried": self.providers_queried,
        }
