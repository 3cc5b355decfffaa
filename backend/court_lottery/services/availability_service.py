"""
Availability for one (date, slot): active courts minus courts holding a
confirmed reservation. Read straight from the session on every call, so a
cancellation flushed in the same transaction is visible on the next read.
"""

import re
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.core.errors import InvalidTimeSlotError
from court_lottery.models.court import Court
from court_lottery.models.reservation import Reservation, ReservationStatus

SLOT_KEY_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def validate_slot_key(slot_key: str) -> str:
    if not slot_key or not SLOT_KEY_PATTERN.match(slot_key):
        raise InvalidTimeSlotError()
    return slot_key


def occupied_courts_query(target_date: date, slot_key: str):
    return select(Reservation.court_id).where(
        Reservation.target_date == target_date,
        Reservation.slot_key == slot_key,
        Reservation.status == ReservationStatus.CONFIRMED.value,
    )


async def available_court_ids(db: AsyncSession, target_date: date, slot_key: str) -> set[int]:
    validate_slot_key(slot_key)
    active = await db.execute(select(Court.id).where(Court.is_active.is_(True)))
    occupied = await db.execute(occupied_courts_query(target_date, slot_key))
    return set(active.scalars().all()) - set(occupied.scalars().all())


async def available_courts(db: AsyncSession, target_date: date, slot_key: str) -> list[Court]:
    """Full court rows, ordered by id."""
    validate_slot_key(slot_key)
    result = await db.execute(
        select(Court)
        .where(
            Court.is_active.is_(True),
            Court.id.not_in(occupied_courts_query(target_date, slot_key)),
        )
        .order_by(Court.id.asc())
    )
    return list(result.scalars().all())


async def has_conflict(db: AsyncSession, court_id: int, target_date: date, slot_key: str) -> bool:
    result = await db.execute(
        occupied_courts_query(target_date, slot_key).where(Reservation.court_id == court_id)
    )
    return result.first() is not None
