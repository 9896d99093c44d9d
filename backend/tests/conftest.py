"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own database: a fresh SQLite file by default, or the
database named by TEST_DATABASE_URL (e.g. a PostgreSQL test database), with
tables created before and dropped after the test. Each HTTP request and each
service call gets its own session, so concurrent calls really race against
each other through the store.
"""

import os

# Must be set before the application modules read their settings.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./justbus_app.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("REAPER_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.main import app
from app.db.base import Base
from app.db.session import build_engine, build_session_factory, get_db
from app.core.security import create_access_token, hash_password
from app.models.user import User
from app.models.trip import Trip


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables, yield a session factory, then drop tables for isolation."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = build_engine(url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and inspecting data. Commit or roll back after use."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own test database session."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, **fields) -> User:
    user = User(hashed_password=hash_password("testpassword123"), **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A passenger who declared a gender."""
    return await _create_user(
        db_session, name="Test User", email="test@example.com", phone="0790000001", gender="female"
    )


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second passenger without a declared gender."""
    return await _create_user(
        db_session, name="Other User", email="other@example.com", phone="0790000002"
    )


@pytest_asyncio.fixture
async def driver_user(db_session: AsyncSession) -> User:
    return await _create_user(
        db_session, name="Driver", email="driver@example.com", phone="0790000003", role="driver"
    )


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(
        db_session, name="Admin", email="admin@example.com", phone="0790000004", role="admin"
    )


def _headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return _headers_for(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest.fixture
def driver_headers(driver_user: User) -> dict:
    return _headers_for(driver_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


@pytest_asyncio.fixture
async def test_trip(db_session: AsyncSession) -> Trip:
    """A 40-seat trip departing tomorrow."""
    departure = datetime.now(timezone.utc) + timedelta(days=1)
    trip = Trip(
        from_city="Irbid",
        to_city="JUST university",
        pickup_location="Irbid Station",
        dropoff_location="Main Gate",
        trip_date=departure.date(),
        departure_time=departure,
        arrival_time=departure + timedelta(minutes=30),
        duration_minutes=30,
        price=Decimal("2.50"),
        seat_count=40,
    )
    db_session.add(trip)
    await db_session.commit()
    await db_session.refresh(trip)
    await db_session.commit()
    return trip


@pytest.fixture
def trip_date_str(test_trip: Trip) -> str:
    return test_trip.trip_date.isoformat()
