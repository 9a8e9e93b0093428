import os

# Settings are read at import time, so the test database must be chosen first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DATABASE_URL_SYNC"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.main import app
from app.models.event import Event
from app.models.tables import metadata

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when a test advances it"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def clock():
    return FixedClock()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def seed(db):
    """Persist rows directly, bypassing the ingest path"""

    async def _seed(*rows):
        db.add_all(rows)
        await db.commit()

    return _seed


@pytest.fixture
def make_event():
    """Build an Event row; defaults to one hour before NOW"""

    def _make(action: str, occurred_at: datetime = NOW - timedelta(hours=1), **fields) -> Event:
        fields.setdefault("context", "unknown")
        fields.setdefault("properties", {})
        return Event(event_id=uuid4(), occurred_at=occurred_at, action=action, **fields)

    return _make
