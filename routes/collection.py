"""Catalog and collection routes."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from dependencies import get_catalog_service, get_user_id
from exceptions import ResourceNotFoundError, ValidationError
from models import CollectionEntry, CollectionEntryUpdate
from services.catalog import CatalogService, CollectionStats
from services.shelves import SHELF_DEFINITIONS, ShelfPerfume, get_shelf_definition, shelf_perfumes
from sourcing.models import Perfume

router = APIRouter(tags=["collection"])
logger = logging.getLogger(__name__)


class AddToCollectionRequest(BaseModel):
    owned: bool = True
    perfume: Optional[Perfume] = None


class ShelfSummary(BaseModel):
    id: str
    label: str
    category: str
    count: int


@router.get("/catalog", response_model=List[Perfume])
async def list_catalog(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    service: CatalogService = Depends(get_catalog_service),
):
    return await service.list_catalog(limit=limit, offset=offset)


@router.post("/catalog", response_model=Perfume)
async def add_to_catalog(
    perfume: Perfume,
    service: CatalogService = Depends(get_catalog_service),
    user_id: Optional[str] = Depends(get_user_id),
):
    """Add a manually entered or chosen perfume to the catalog."""
    try:
        return await service.add_perfume_to_catalog(perfume, user_id=user_id)
    except ValidationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/catalog/search", response_model=List[Perfume])
async def search_catalog(
    q: str = Query(""),
    service: CatalogService = Depends(get_catalog_service),
):
    return await service.search_local_catalog(q)


@router.get("/catalog/{perfume_id}", response_model=Perfume)
async def get_perfume(perfume_id: str, service: CatalogService = Depends(get_catalog_service)):
    try:
        return await service.get_perfume(perfume_id)
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.get("/collection", response_model=List[ShelfPerfume])
async def list_collection(service: CatalogService = Depends(get_catalog_service)):
    return await service.collection_perfumes()


@router.get("/collection/stats", response_model=CollectionStats)
async def collection_stats(service: CatalogService = Depends(get_catalog_service)):
    return await service.collection_stats()


@router.get("/collection/shelves", response_model=List[ShelfSummary])
async def list_shelves(service: CatalogService = Depends(get_catalog_service)):
    items = await service.collection_perfumes()
    return [
        ShelfSummary(
            id=shelf.id,
            label=shelf.label,
            category=shelf.category,
            count=sum(1 for item in items if shelf.matches(item)),
        )
        for shelf in SHELF_DEFINITIONS
    ]


@router.get("/collection/shelves/{shelf_id}", response_model=List[ShelfPerfume])
async def get_shelf(shelf_id: str, service: CatalogService = Depends(get_catalog_service)):
    if not get_shelf_definition(shelf_id):
        raise HTTPException(status_code=404, detail=f"Unknown shelf {shelf_id}")
    items = await service.collection_perfumes()
    return shelf_perfumes(items, shelf_id)


@router.post("/collection/{perfume_id}", response_model=CollectionEntry)
async def add_to_collection(
    perfume_id: str,
    request: AddToCollectionRequest,
    service: CatalogService = Depends(get_catalog_service),
    user_id: Optional[str] = Depends(get_user_id),
):
    """Add a catalog perfume, or a search result sent inline, to the
    collection (``owned=false`` puts it on the wishlist)."""
    try:
        if request.perfume is not None:
            if request.perfume.id != perfume_id:
                raise HTTPException(status_code=400, detail="Perfume id does not match the path")
            return await service.accept_search_result(request.perfume, owned=request.owned, user_id=user_id)
        return await service.add_to_collection(perfume_id, owned=request.owned, user_id=user_id)
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/collection/{perfume_id}", response_model=CollectionEntry)
async def update_collection_entry(
    perfume_id: str,
    updates: CollectionEntryUpdate,
    service: CatalogService = Depends(get_catalog_service),
    user_id: Optional[str] = Depends(get_user_id),
):
    try:
        return await service.update_collection_entry(perfume_id, updates, user_id=user_id)
    except ResourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.delete("/collection/{perfume_id}")
async def remove_from_collection(
    perfume_id: str,
    service: CatalogService = Depends(get_catalog_service),
    user_id: Optional[str] = Depends(get_user_id),
):
    removed = await service.remove_from_collection(perfume_id, user_id=user_id)
    return {"perfume_id": perfume_id, "removed": removed}
