import os
import sys

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel.ext.asyncio.session import AsyncSession

# Add parent directory to path to allow importing models and main
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Never pick up real provider keys from the developer's environment
os.environ.pop("FRAGELLA_API_KEY", None)
os.environ.pop("FRAGRANCEFINDER_API_KEY", None)

from database import get_session, init_db
from main import app
from sourcing.models import (
    AccordStrength,
    FragranceNote,
    NotePyramid,
    OccasionScore,
    Perfume,
    SeasonScore,
)


@pytest_asyncio.fixture(name="engine", scope="function")
async def engine_fixture(tmp_path):
    # Fresh SQLite file per test
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        future=True,
        poolclass=NullPool,
    )
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(name="session_factory")
def session_factory_fixture(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(name="session", scope="function")
async def session_fixture(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    original_repository = app.state.repository
    app.state.search_sessions = {}

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.repository = original_repository
    app.state.search_sessions = {}
    app.state.propagator = None


def make_perfume(name="Sauvage", brand="Dior", concentration="EDT", **overrides) -> Perfume:
    """Minimal perfume record; keyword overrides are passed to the model."""
    return Perfume(name=name, brand=brand, concentration=concentration, **overrides)


def make_rich_perfume(name="Sauvage", brand="Dior", concentration="EDT", **overrides) -> Perfume:
    """Perfume with notes, accords and off-neutral seasons/occasions."""
    fields = dict(
        rating=4.3,
        longevity=8,
        sillage=7,
        notes=NotePyramid(
            top=[FragranceNote(name="Bergamot")],
            middle=[FragranceNote(name="Pepper")],
            base=[FragranceNote(name="Ambroxan")],
        ),
        accords=[AccordStrength(name="fresh spicy", percentage=90), AccordStrength(name="woody", percentage=60)],
        season_scores=[SeasonScore(season="summer", score=80), SeasonScore(season="winter", score=30)],
        occasion_scores=[
            OccasionScore(occasion="casual", score=85),
            OccasionScore(occasion="professional", score=70),
            OccasionScore(occasion="nightOut", score=35),
        ],
        data_source="fragella",
    )
    fields.update(overrides)
    return Perfume(name=name, brand=brand, concentration=concentration, **fields)


class DummyProvider:
    """In-memory provider returning canned results or raising a canned error."""

    def __init__(self, name, provider_id=None, results=None, error=None, available=True, delay=0.0):
        self.name = name
        self.provider_id = provider_id or name.lower()
        self.results = results or []
        self.error = error
        self.available = available
        self.delay = delay
        self.calls = []

    def is_available(self):
        return self.available

    async def search(self, query, limit=10):
        import asyncio

        self.calls.append((query, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.results)
