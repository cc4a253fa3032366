from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

# Local single-user store by default; any async SQLAlchemy URL works.
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./niche_library.db"


def resolve_database_url(url: Optional[str] = None) -> str:
    """Normalise DATABASE_URL onto an async driver."""
    url = url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite:///"):
        url = url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


DATABASE_URL = resolve_database_url()

# Echo SQL queries (for debugging only)
ECHO_SQL = os.getenv("DB_ECHO", "false").lower() == "true"

# Use NullPool for tests / short-lived scripts (each session gets a new connection)
USE_NULL_POOL = os.getenv("DB_USE_NULL_POOL", "false").lower() == "true"


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    url = resolve_database_url(url)
    engine_kwargs = {
        "echo": ECHO_SQL,
        "future": True,
    }
    if USE_NULL_POOL:
        engine_kwargs["poolclass"] = NullPool
    elif url.startswith("postgresql+asyncpg://"):
        engine_kwargs["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
        engine_kwargs["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "10"))
        engine_kwargs["pool_pre_ping"] = True
    logger.debug(f"Database engine for {url.split('://', 1)[0]}")
    return create_async_engine(url, **engine_kwargs)


engine = build_engine(DATABASE_URL)

async_session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(target: Optional[AsyncEngine] = None):
    import models  # noqa: F401  (registers tables on SQLModel.metadata)

    async with (target or engine).begin() as conn:
        # This creates tables if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session_factory() as session:
        yield session
