"""
Niche Library backend.

Multi-source perfume search, local catalog and personal collection.
"""
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env", override=False)

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession

from database import async_session_factory, engine, get_session, init_db
from exceptions import NicheLibraryError
from observability import metrics_registry, setup_logging
from observability.middleware import RequestIdMiddleware
from routes.collection import router as collection_router
from routes.search import router as search_router
from sourcing.credentials import CredentialStore
from sourcing.repository import SourcingRepository

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Niche Library Backend",
    description="Multi-source perfume search and personal collection backend",
    version="0.1.0",
)

# Search collaborators; credentials are refreshed from the database at startup
credentials = CredentialStore()
app.state.credentials = credentials
app.state.repository = SourcingRepository(credentials=credentials, engine=engine)
app.state.search_sessions = {}
app.state.propagator = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

app.include_router(search_router)
app.include_router(collection_router)


@app.get("/health")
async def health_check():
    repo: SourcingRepository = app.state.repository
    return {
        "status": "healthy",
        "version": "0.1.0",
        "search_available": repo.any_available(),
    }


@app.get("/health/ready")
async def readiness_check(session: AsyncSession = Depends(get_session)):
    """Returns 503 when the database is unreachable."""
    checks = {}
    try:
        await session.exec(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {str(e)[:100]}"

    all_ok = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "status": "ready" if all_ok else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)


@app.exception_handler(NicheLibraryError)
async def niche_library_error_handler(request: Request, exc: NicheLibraryError):
    logger.warning(f"[{request.url.path}] {exc.__class__.__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup_event():
    logger.info(f"Niche Library backend starting (environment={os.getenv('ENVIRONMENT', 'development')})")
    await init_db()
    async with async_session_factory() as session:
        await credentials.load(session)
    parfumo = app.state.repository.providers.get("parfumo")
    if parfumo is not None:
        await parfumo.refresh_availability()
    logger.info(f"Search providers: {app.state.repository.provider_status()}")


@app.on_event("shutdown")
async def shutdown_event():
    propagator = app.state.propagator
    if propagator is not None:
        await propagator.drain()
    await engine.dispose()
    logger.info("Niche Library backend shutting down")
