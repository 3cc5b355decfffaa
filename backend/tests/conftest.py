"""
Pytest fixtures for test database, client, accounts and courts.

Each test gets a fresh in-memory SQLite database (via aiosqlite) with the full
schema, including the partial unique index that guards against double booking.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import random
from datetime import date, datetime, timedelta
from typing import AsyncGenerator
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from court_lottery.main import app
from court_lottery.db.base import Base
from court_lottery.db.session import get_db
from court_lottery.models import (
    User, AccountTier, Court, TimeSlot, BookingRequest, RequestStatus,
)
from court_lottery.services.windows import current_time, to_local_date

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday noon in the reference timezone; service tests pin "now" to this
NOW = datetime(2026, 10, 19, 12, 0, tzinfo=ZoneInfo("Europe/Madrid"))
TODAY = NOW.date()


def days_ahead(days: int) -> date:
    return TODAY + timedelta(days=days)


def live_days_ahead(days: int) -> date:
    """Date relative to the real clock, for API tests that cannot pin "now"."""
    return to_local_date(current_time()) + timedelta(days=days)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _add(db_session: AsyncSession, obj):
    db_session.add(obj)
    await db_session.commit()
    await db_session.refresh(obj)
    return obj


@pytest_asyncio.fixture
async def standard_user(db_session: AsyncSession) -> User:
    return await _add(db_session, User(
        email="anna@example.com", name="Anna", tier=AccountTier.STANDARD.value,
    ))


@pytest_asyncio.fixture
async def priority_user(db_session: AsyncSession) -> User:
    return await _add(db_session, User(
        email="marc@example.com", name="Marc", tier=AccountTier.PRIORITY.value,
    ))


@pytest_asyncio.fixture
async def players(db_session: AsyncSession) -> list[User]:
    """Four extra accounts to fill participant lists."""
    users = [
        User(email=f"player{i}@example.com", name=f"Player {i}") for i in range(4)
    ]
    db_session.add_all(users)
    await db_session.commit()
    for user in users:
        await db_session.refresh(user)
    return users


@pytest_asyncio.fixture
async def court(db_session: AsyncSession) -> Court:
    return await _add(db_session, Court(name="Pista 1"))


@pytest_asyncio.fixture
async def second_court(db_session: AsyncSession) -> Court:
    return await _add(db_session, Court(name="Pista 2"))


@pytest_asyncio.fixture
async def closed_court(db_session: AsyncSession) -> Court:
    return await _add(db_session, Court(name="Pista 3", is_active=False))


@pytest_asyncio.fixture
async def monday_slot(db_session: AsyncSession) -> TimeSlot:
    return await _add(db_session, TimeSlot(
        day_of_week=0, start_time="10:00", end_time="11:30", duration_minutes=90, is_peak=False,
    ))


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def make_request(db_session: AsyncSession):
    """Insert a pending request directly, skipping window checks."""

    async def _make(user: User, target_date: date, slot_key: str = "10:00", players: int = 2):
        request = BookingRequest(
            user_id=user.id,
            target_date=target_date,
            slot_key=slot_key,
            player_count=players,
            participant_ids=list(range(1, players + 1)),
            status=RequestStatus.PENDING.value,
        )
        return await _add(db_session, request)

    return _make
