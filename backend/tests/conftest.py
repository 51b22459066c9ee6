"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh SQLite file database (or TEST_DATABASE_URL) with the
schema created up front and dropped afterwards. Connections are not pooled,
so every session is a separate connection and concurrent sessions really do
collide in the database the way separate API instances would.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./ticketing_app.db")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ticketing.core.security import ADMIN_ROLE, Actor, create_access_token
from ticketing.db.base import Base
from ticketing.db.session import get_db
from ticketing.main import app
from ticketing.models.trip import Trip
from ticketing.schemas.booking import PassengerInfo


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    url = os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'ticketing_test.db'}"
    test_engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session, as in production."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def agent() -> Actor:
    return Actor(id="agent-1")


@pytest.fixture
def other_agent() -> Actor:
    return Actor(id="agent-2")


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", role=ADMIN_ROLE)


def headers_for(actor: Actor) -> dict:
    token = create_access_token(data={"sub": actor.id, "role": actor.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(agent: Actor) -> dict:
    return headers_for(agent)


@pytest.fixture
def other_headers(other_agent: Actor) -> dict:
    return headers_for(other_agent)


@pytest.fixture
def admin_headers(admin: Actor) -> dict:
    return headers_for(admin)


@pytest.fixture
def passenger() -> PassengerInfo:
    return PassengerInfo(name="Jane Wanjiru", phone="0712345678")


async def _make_trip(db: AsyncSession, seat_capacity: int, status: str = "scheduled") -> Trip:
    trip = Trip(
        origin="Nairobi",
        destination="Mombasa",
        departure_time=datetime.now(timezone.utc) + timedelta(days=2),
        price=Decimal("25.00"),
        seat_capacity=seat_capacity,
        status=status,
    )
    db.add(trip)
    await db.commit()
    await db.refresh(trip)
    return trip


@pytest_asyncio.fixture
async def test_trip(db_session: AsyncSession) -> Trip:
    """A small trip with 4 seats."""
    return await _make_trip(db_session, seat_capacity=4)


@pytest_asyncio.fixture
async def big_trip(db_session: AsyncSession) -> Trip:
    return await _make_trip(db_session, seat_capacity=40)


@pytest_asyncio.fixture
async def departed_trip(db_session: AsyncSession) -> Trip:
    return await _make_trip(db_session, seat_capacity=4, status="departed")
