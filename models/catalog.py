"""Catalog, collection, dataset and settings tables."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

import sqlalchemy as sa
from pydantic import BaseModel, Field as PydanticField
from sqlmodel import Column, Field, SQLModel

from sourcing.models import Perfume


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC view of a timestamp; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PerfumeRecord(SQLModel, table=True):
    """Persisted canonical perfume. Nested structures live in JSON columns."""
    __tablename__ = "perfume"

    id: str = Field(primary_key=True)
    name: str = Field(index=True)
    brand: str = Field(index=True)
    year: Optional[int] = None
    gender: str = "unisex"
    concentration: str = "Other"
    rating: float = Field(default=0.0, index=True)
    longevity: int = 5
    sillage: int = 5
    notes: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(sa.JSON, nullable=False))
    accords: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(sa.JSON, nullable=False))
    season_scores: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(sa.JSON, nullable=False))
    occasion_scores: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(sa.JSON, nullable=False))
    image_url: Optional[str] = None
    description: Optional[str] = None
    source_url: Optional[str] = None
    data_source: str = Field(default="manual", index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_perfume(cls, perfume: Perfume) -> "PerfumeRecord":
        return cls(**perfume.model_dump(), updated_at=utcnow())

    def apply(self, perfume: Perfume) -> None:
        """Overwrite this row with ``perfume``'s data (same id)."""
        for key, value in perfume.model_dump().items():
            setattr(self, key, value)
        self.updated_at = utcnow()

    def to_perfume(self) -> Perfume:
        return Perfume(
            name=self.name,
            brand=self.brand,
            year=self.year,
            gender=self.gender,
            concentration=self.concentration,
            rating=self.rating,
            longevity=self.longevity,
            sillage=self.sillage,
            notes=self.notes or {},
            accords=self.accords or [],
            season_scores=self.season_scores or [],
            occasion_scores=self.occasion_scores or [],
            image_url=self.image_url,
            description=self.description,
            source_url=self.source_url,
            data_source=self.data_source,
        )


class PriceEstimate(BaseModel):
    amount: float = PydanticField(..., ge=0)
    currency: str = "UYU"
    source: str = ""
    last_updated: Optional[str] = None
    confidence: Literal["exact", "estimate", "unknown"] = "unknown"


class CollectionEntry(SQLModel, table=True):
    """User overlay on a catalog perfume. owned=False means wishlist."""
    __tablename__ = "collection_entry"

    perfume_id: str = Field(primary_key=True)
    added_at: datetime = Field(default_factory=utcnow, index=True)
    owned: bool = Field(default=True, index=True)
    personal_rating: Optional[float] = None
    personal_notes: Optional[str] = None
    price_estimate: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(sa.JSON, nullable=True))
    tags: Optional[List[str]] = Field(default=None, sa_column=Column(sa.JSON, nullable=True))
    updated_at: Optional[datetime] = None

    def to_payload(self) -> Dict[str, Any]:
        """Plain dict for the remote sync backend; None values are dropped."""
        payload = {
            "perfume_id": self.perfume_id,
            "added_at": self.added_at.isoformat() if self.added_at else None,
            "owned": self.owned,
            "personal_rating": self.personal_rating,
            "personal_notes": self.personal_notes,
            "price_estimate": self.price_estimate,
            "tags": self.tags,
        }
        return {k: v for k, v in payload.items() if v is not None}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CollectionEntry":
        added_at = payload.get("added_at")
        if isinstance(added_at, str):
            added_at = datetime.fromisoformat(added_at.replace("Z", "+00:00"))
        if isinstance(added_at, datetime):
            added_at = as_utc(added_at)
        return cls(
            perfume_id=payload["perfume_id"],
            added_at=added_at or utcnow(),
            owned=bool(payload.get("owned", True)),
            personal_rating=payload.get("personal_rating"),
            personal_notes=payload.get("personal_notes"),
            price_estimate=payload.get("price_estimate"),
            tags=payload.get("tags"),
        )


class CollectionEntryUpdate(SQLModel):
    owned: Optional[bool] = None
    personal_rating: Optional[float] = Field(default=None, ge=0, le=5)
    personal_notes: Optional[str] = None
    price_estimate: Optional[PriceEstimate] = None
    tags: Optional[List[str]] = None


class ParfumoEntry(SQLModel, table=True):
    """Read-only row of the bundled Parfumo dataset (rating on 0-10)."""
    __tablename__ = "parfumo_entry"

    id: str = Field(primary_key=True)
    name: str
    brand: str
    year: int = 0
    concentration: str = ""
    rating: float = Field(default=0.0, index=True)
    accords: str = ""
    top_notes: str = ""
    mid_notes: str = ""
    base_notes: str = ""


class AppSetting(SQLModel, table=True):
    """Key/value settings (provider API keys, dataset version markers)."""
    __tablename__ = "app_setting"

    key: str = Field(primary_key=True)
    value: str = ""
    updated_at: datetime = Field(default_factory=utcnow)
