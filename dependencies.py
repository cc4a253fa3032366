"""
Shared FastAPI dependencies.

Application-wide collaborators (search repository, credential store, sync
propagator, search sessions) live on ``app.state`` and are created at
startup in ``main.py``.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from database import get_session
from services.catalog import CatalogService
from services.search_session import SearchSession
from services.sync import SyncPropagator
from sourcing.credentials import CredentialStore
from sourcing.repository import SourcingRepository

LOCAL_USER = "local"


def get_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Acting user for remote propagation; None means local-only."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None


def get_repository(request: Request) -> SourcingRepository:
    return request.app.state.repository


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_propagator(request: Request) -> Optional[SyncPropagator]:
    return getattr(request.app.state, "propagator", None)


def get_search_session(
    request: Request,
    user_id: Optional[str] = Depends(get_user_id),
) -> SearchSession:
    """One search session per user, so overlapping type-ahead queries
    from the same user supersede each other."""
    sessions = request.app.state.search_sessions
    key = user_id or LOCAL_USER
    if key not in sessions:
        sessions[key] = SearchSession(request.app.state.repository)
    return sessions[key]


def get_catalog_service(
    session: AsyncSession = Depends(get_session),
    propagator: Optional[SyncPropagator] = Depends(get_propagator),
) -> CatalogService:
    return CatalogService(session, propagator)
