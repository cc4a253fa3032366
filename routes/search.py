"""Search and provider settings routes."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from database import get_session
from dependencies import get_credentials, get_repository, get_search_session
from services.search_session import SearchSession
from sourcing.credentials import SETTING_KEYS, CredentialStore
from sourcing.repository import SourcingRepository

router = APIRouter(tags=["search"])
logger = logging.getLogger(__name__)


class CredentialUpdate(BaseModel):
    api_key: Optional[str] = None


@router.get("/search")
async def search_perfumes(
    q: str = Query(..., min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=50),
    search_session: SearchSession = Depends(get_search_session),
):
    """Search every available provider.

    200 with ``warnings`` when some providers failed but results remain.
    502 when there are no results and at least one provider failed. 503 when
    no provider is configured. 409 when a newer search from the same user
    superseded this one.
    """
    result = await search_session.search(q, limit)
    if result is None:
        raise HTTPException(status_code=409, detail="Superseded by a newer search")

    body: Dict[str, Any] = result.to_contract()
    if result.no_providers:
        body["detail"] = "No search providers are configured. Add an API key in Settings or load the dataset."
        return JSONResponse(status_code=503, content=body)
    if result.is_total_failure:
        body["detail"] = "Search failed: no results and provider errors"
        return JSONResponse(status_code=502, content=body)
    if result.is_partial:
        body["warnings"] = [f"{e.provider}: {e.error}" for e in result.errors]
    return body


@router.get("/providers")
async def list_providers(repo: SourcingRepository = Depends(get_repository)) -> List[Dict[str, Any]]:
    await repo.refresh_providers()
    return repo.provider_status()


@router.put("/settings/credentials/{provider_id}")
async def update_credentials(
    provider_id: str,
    update: CredentialUpdate,
    session: AsyncSession = Depends(get_session),
    credentials: CredentialStore = Depends(get_credentials),
    repo: SourcingRepository = Depends(get_repository),
):
    if provider_id not in SETTING_KEYS:
        raise HTTPException(status_code=404, detail=f"Unknown provider {provider_id}")
    await credentials.save(session, provider_id, update.api_key)
    logger.info(f"[Settings] Updated credentials for {provider_id}")
    return {"provider": provider_id, "configured": credentials.is_configured(provider_id), "providers": repo.provider_status()}
