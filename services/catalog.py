"""Catalog and collection service.

The only writer of the ``perfume`` and ``collection_entry`` tables. Every
mutation commits locally first; when a ``user_id`` is given and a
propagator is configured, the change is then sent to the remote store in
the background.
"""

import logging
from typing import Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy import func, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from exceptions import ResourceNotFoundError, ValidationError
from models import AppSetting, CollectionEntry, CollectionEntryUpdate, PerfumeRecord, utcnow
from services.shelves import ShelfPerfume
from services.sync import SyncPropagator
from sourcing.models import Perfume

logger = logging.getLogger(__name__)

LOCAL_SEARCH_MIN_LENGTH = 2
LOCAL_SEARCH_LIMIT = 20
SEED_VERSION = 1
SEED_VERSION_KEY = "seed_version"


class CollectionStats(BaseModel):
    total_in_collection: int = 0
    total_wishlist: int = 0
    total_catalog: int = 0
    avg_rating: float = 0.0


class CatalogService:
    def __init__(self, session: AsyncSession, propagator: Optional[SyncPropagator] = None):
        self.session = session
        self.propagator = propagator

    def _propagate(self, user_id: Optional[str]) -> bool:
        return bool(user_id and self.propagator)

    # -- catalog ----------------------------------------------------------

    async def add_perfume_to_catalog(self, perfume: Perfume, user_id: Optional[str] = None) -> Perfume:
        """Insert or overwrite a catalog record keyed by its identity key."""
        if not perfume.id:
            raise ValidationError(
                "Perfume name and brand must contain letters or digits",
                detail={"name": perfume.name, "brand": perfume.brand},
            )

        record = await self.session.get(PerfumeRecord, perfume.id)
        if record:
            record.apply(perfume)
        else:
            record = PerfumeRecord.from_perfume(perfume)
        self.session.add(record)
        await self.session.commit()
        logger.info(f"[CatalogService] Saved perfume {perfume.id} ({perfume.data_source})")

        if self._propagate(user_id):
            self.propagator.put_perfume(user_id, perfume)
        return perfume

    async def get_perfume(self, perfume_id: str) -> Perfume:
        record = await self.session.get(PerfumeRecord, perfume_id)
        if not record:
            raise ResourceNotFoundError(f"Perfume {perfume_id} not found", detail={"perfume_id": perfume_id})
        return record.to_perfume()

    async def list_catalog(self, limit: Optional[int] = None, offset: int = 0) -> List[Perfume]:
        stmt = select(PerfumeRecord).order_by(PerfumeRecord.brand, PerfumeRecord.name).offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        records = (await self.session.exec(stmt)).all()
        return [record.to_perfume() for record in records]

    async def search_local_catalog(self, query: str, limit: int = LOCAL_SEARCH_LIMIT) -> List[Perfume]:
        """Case-insensitive substring match on name or brand."""
        query = (query or "").strip()
        if len(query) < LOCAL_SEARCH_MIN_LENGTH:
            return []
        needle = query.lower()
        stmt = (
            select(PerfumeRecord)
            .where(
                or_(
                    func.lower(PerfumeRecord.name).contains(needle, autoescape=True),
                    func.lower(PerfumeRecord.brand).contains(needle, autoescape=True),
                )
            )
            .order_by(PerfumeRecord.name)
            .limit(limit)
        )
        records = (await self.session.exec(stmt)).all()
        return [record.to_perfume() for record in records]

    async def seed_catalog_if_empty(self, perfumes: Iterable[Perfume]) -> int:
        """Seed the catalog once, and only into an empty catalog."""
        marker = await self.session.get(AppSetting, SEED_VERSION_KEY)
        if marker and marker.value == str(SEED_VERSION):
            return 0

        count = (await self.session.exec(select(func.count()).select_from(PerfumeRecord))).one()
        seeded = 0
        if count == 0:
            for perfume in perfumes:
                seed = perfume.model_copy(update={"data_source": "seed"})
                self.session.add(PerfumeRecord.from_perfume(seed))
                seeded += 1

        if marker:
            marker.value = str(SEED_VERSION)
            marker.updated_at = utcnow()
        else:
            marker = AppSetting(key=SEED_VERSION_KEY, value=str(SEED_VERSION))
        self.session.add(marker)
        await self.session.commit()
        logger.info(f"[CatalogService] Seeded {seeded} perfumes")
        return seeded

    # -- collection -------------------------------------------------------

    async def get_collection_entry(self, perfume_id: str) -> Optional[CollectionEntry]:
        return await self.session.get(CollectionEntry, perfume_id)

    async def add_to_collection(
        self, perfume_id: str, owned: bool = True, user_id: Optional[str] = None
    ) -> CollectionEntry:
        """Add a catalog perfume to the collection (or wishlist). Idempotent:
        an existing entry is returned unchanged."""
        existing = await self.get_collection_entry(perfume_id)
        if existing:
            return existing

        if not await self.session.get(PerfumeRecord, perfume_id):
            raise ResourceNotFoundError(f"Perfume {perfume_id} not found", detail={"perfume_id": perfume_id})

        entry = CollectionEntry(perfume_id=perfume_id, owned=owned, added_at=utcnow())
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)

        if self._propagate(user_id):
            self.propagator.put_collection_entry(user_id, entry)
        return entry

    async def accept_search_result(
        self, perfume: Perfume, owned: bool = True, user_id: Optional[str] = None
    ) -> CollectionEntry:
        """Persist a search result the user picked and add it to the collection."""
        await self.add_perfume_to_catalog(perfume, user_id=user_id)
        return await self.add_to_collection(perfume.id, owned=owned, user_id=user_id)

    async def update_collection_entry(
        self, perfume_id: str, updates: CollectionEntryUpdate, user_id: Optional[str] = None
    ) -> CollectionEntry:
        entry = await self.get_collection_entry(perfume_id)
        if not entry:
            raise ResourceNotFoundError(
                f"Perfume {perfume_id} is not in the collection", detail={"perfume_id": perfume_id}
            )

        for key, value in updates.model_dump(exclude_unset=True).items():
            setattr(entry, key, value)
        entry.updated_at = utcnow()
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)

        if self._propagate(user_id):
            self.propagator.put_collection_entry(user_id, entry)
        return entry

    async def remove_from_collection(self, perfume_id: str, user_id: Optional[str] = None) -> bool:
        entry = await self.get_collection_entry(perfume_id)
        if not entry:
            return False
        await self.session.delete(entry)
        await self.session.commit()

        if self._propagate(user_id):
            self.propagator.delete_collection_entry(user_id, perfume_id)
        return True

    async def collection_perfumes(self) -> List[ShelfPerfume]:
        """Collection entries joined with their catalog records."""
        rows = (await self.session.exec(
            select(PerfumeRecord, CollectionEntry).where(PerfumeRecord.id == CollectionEntry.perfume_id)
        )).all()
        return [ShelfPerfume.build(record.to_perfume(), entry) for record, entry in rows]

    async def collection_stats(self) -> CollectionStats:
        items = await self.collection_perfumes()
        owned = [item for item in items if item.owned]
        entries = (await self.session.exec(select(CollectionEntry))).all()
        total_catalog = (await self.session.exec(select(func.count()).select_from(PerfumeRecord))).one()

        avg_rating = 0.0
        if owned:
            avg_rating = sum(item.effective_rating for item in owned) / len(owned)

        return CollectionStats(
            total_in_collection=sum(1 for e in entries if e.owned),
            total_wishlist=sum(1 for e in entries if not e.owned),
            total_catalog=total_catalog,
            avg_rating=round(avg_rating, 1),
        )
