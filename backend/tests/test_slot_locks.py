"""
Tests for slot serialization: the lock registry, and concurrent writers on
separate sessions racing for the same court, date and slot.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from court_lottery.core.errors import ResourceConflictError
from court_lottery.db.base import Base
from court_lottery.models import (
    User, AccountTier, Court, BookingRequest, RequestStatus, Reservation, ReservationStatus,
)
from court_lottery.schemas.reservation import DirectBookingCreate
from court_lottery.services import booking_service
from court_lottery.services.booking_service import create_direct_booking
from court_lottery.services.lottery_service import run_lottery
from court_lottery.services.slot_locks import SlotLockRegistry

from tests.conftest import NOW, days_ahead


@pytest.mark.asyncio
async def test_same_slot_shares_a_lock():
    registry = SlotLockRegistry()
    lock = registry.get(date(2026, 10, 21), "10:00")
    assert registry.get(date(2026, 10, 21), "10:00") is lock
    assert registry.get(date(2026, 10, 21), "11:30") is not lock
    assert registry.get(date(2026, 10, 22), "10:00") is not lock


@pytest.mark.asyncio
async def test_holders_of_one_slot_never_overlap():
    registry = SlotLockRegistry()
    target = date(2026, 10, 21)
    inside = 0
    peak = 0

    async def worker():
        nonlocal inside, peak
        async with registry.hold(target, "10:00"):
            inside += 1
            peak = max(peak, inside)
            await asyncio.sleep(0.01)
            inside -= 1

    await asyncio.gather(*(worker() for _ in range(5)))
    assert peak == 1


@pytest.mark.asyncio
async def test_different_slots_run_concurrently():
    registry = SlotLockRegistry()
    target = date(2026, 10, 21)
    both_inside = asyncio.Event()
    entered = []

    async def worker(slot_key):
        async with registry.hold(target, slot_key):
            entered.append(slot_key)
            if len(entered) == 2:
                both_inside.set()
            await asyncio.wait_for(both_inside.wait(), timeout=1)

    await asyncio.gather(worker("10:00"), worker("11:30"))
    assert sorted(entered) == ["10:00", "11:30"]


# Concurrent writers, each with its own session and connection

@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 10},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def racers(session_factory):
    """Two accounts and one court, committed so every session sees them."""
    async with session_factory() as db:
        users = [
            User(email="ana@example.com", name="Ana", tier=AccountTier.STANDARD.value),
            User(email="pau@example.com", name="Pau", tier=AccountTier.PRIORITY.value),
        ]
        court = Court(name="Pista central")
        db.add_all([*users, court])
        await db.commit()
        return [u.id for u in users], court.id


def _booking(user_id, partner_id, court_id) -> DirectBookingCreate:
    return DirectBookingCreate(
        account_id=user_id,
        court_id=court_id,
        target_date=days_ahead(1),
        slot_key="18:30",
        player_count=2,
        participant_ids=[user_id, partner_id],
    )


async def _book(session_factory, data):
    async with session_factory() as db:
        return await create_direct_booking(db, data, NOW)


async def _confirmed_rows(session_factory, court_id) -> int:
    async with session_factory() as db:
        result = await db.execute(
            select(func.count(Reservation.id)).where(
                Reservation.court_id == court_id,
                Reservation.target_date == days_ahead(1),
                Reservation.slot_key == "18:30",
                Reservation.status == ReservationStatus.CONFIRMED.value,
            )
        )
        return result.scalar()


def _split(outcomes):
    booked = [o for o in outcomes if isinstance(o, Reservation)]
    errors = [o for o in outcomes if isinstance(o, BaseException)]
    return booked, errors


@pytest.mark.asyncio
async def test_concurrent_direct_bookings_one_wins(session_factory, racers):
    (ana, pau), court_id = racers

    outcomes = await asyncio.gather(
        _book(session_factory, _booking(ana, pau, court_id)),
        _book(session_factory, _booking(pau, ana, court_id)),
        return_exceptions=True,
    )

    booked, errors = _split(outcomes)
    assert len(booked) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], ResourceConflictError)
    assert await _confirmed_rows(session_factory, court_id) == 1


class _NoLock:
    @asynccontextmanager
    async def hold(self, target_date, slot_key):
        yield


@pytest.mark.asyncio
async def test_unique_index_stops_race_across_workers(session_factory, racers, monkeypatch):
    """Without the in-process lock and with the pre-check passing, the index still decides."""
    (ana, pau), court_id = racers

    async def no_conflict(*args, **kwargs):
        return False

    monkeypatch.setattr(booking_service, "slot_locks", _NoLock())
    monkeypatch.setattr(booking_service, "has_conflict", no_conflict)

    outcomes = await asyncio.gather(
        _book(session_factory, _booking(ana, pau, court_id)),
        _book(session_factory, _booking(pau, ana, court_id)),
        return_exceptions=True,
    )

    booked, errors = _split(outcomes)
    assert len(booked) == 1
    assert [type(e) for e in errors] == [ResourceConflictError]
    assert await _confirmed_rows(session_factory, court_id) == 1


@pytest.mark.asyncio
async def test_lottery_and_direct_booking_race(session_factory, racers):
    (ana, pau), court_id = racers
    async with session_factory() as db:
        db.add(BookingRequest(
            user_id=ana, target_date=days_ahead(1), slot_key="18:30",
            player_count=2, participant_ids=[ana, pau], status=RequestStatus.PENDING.value,
        ))
        await db.commit()

    async def draw():
        async with session_factory() as db:
            return await run_lottery(db, days_ahead(1), "18:30")

    lottery, direct = await asyncio.gather(
        draw(),
        _book(session_factory, _booking(pau, ana, court_id)),
        return_exceptions=True,
    )

    assert not isinstance(lottery, BaseException)
    if isinstance(direct, Reservation):
        assert lottery.assignments == []
        assert len(lottery.unassigned) == 1
    else:
        assert isinstance(direct, ResourceConflictError)
        assert len(lottery.assignments) == 1
    assert await _confirmed_rows(session_factory, court_id) == 1
