"""
Direct bookings and the reservation lifecycle.

CONCURRENCY STRATEGY: slot lock + partial unique index
======================================================

Problem:
  Two players try to book court 3 for tomorrow 18:30 at the same moment.
  Both check, both see the court free, both insert. Result: double booking.

Solution:
  1. Within a worker, the check-then-insert runs under the (date, slot) lock
     and the transaction commits before the lock is released.
  2. Across workers, the partial unique index
     reservations(court_id, target_date, slot_key) WHERE status = 'confirmed'
     rejects the second insert. The IntegrityError raised at flush is rolled
     back and surfaced as ResourceConflictError; the caller decides whether
     to retry.

  Cancelling flips the row to 'cancelled', which drops it out of the partial
  index, so the court is bookable again immediately.

Lifecycle:
  CONFIRMED -> COMPLETED (usage ledger +1, exactly once)
  CONFIRMED -> CANCELLED (ledger untouched)
  Nothing leaves COMPLETED or CANCELLED.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.core.errors import (
    InvalidStateError, ReservationNotFoundError, ResourceConflictError, ResourceInactiveError,
    ResourceNotFoundError, WindowError,
)
from court_lottery.core.logging import get_logger
from court_lottery.core.metrics import record_booking_attempt, record_transition
from court_lottery.models.court import Court
from court_lottery.models.reservation import Reservation, ReservationStatus
from court_lottery.schemas.reservation import DirectBookingCreate
from court_lottery.services.availability_service import has_conflict, validate_slot_key
from court_lottery.services.request_service import require_account, validate_players
from court_lottery.services.slot_locks import slot_locks
from court_lottery.services.usage_service import increment_usage
from court_lottery.services.windows import BookingWindow, classify, current_time

logger = get_logger(__name__)


async def create_direct_booking(
    db: AsyncSession,
    data: DirectBookingCreate,
    now: datetime | None = None,
) -> Reservation:
    """Book a court 0-1 days ahead, first come first served."""
    try:
        if classify(data.target_date, now) is not BookingWindow.DIRECT_WINDOW:
            raise WindowError("Direct bookings are only possible less than 2 days in advance")
        validate_slot_key(data.slot_key)
        participants = validate_players(data.player_count, data.participant_ids)
        await require_account(db, data.account_id)

        court = await db.get(Court, data.court_id)
        if not court:
            raise ResourceNotFoundError(f"Court {data.court_id} not found")
        if not court.is_active:
            raise ResourceInactiveError(f"Court {court.name} is not active")
    except Exception:
        record_booking_attempt("direct", "rejected")
        raise

    async with slot_locks.hold(data.target_date, data.slot_key):
        if await has_conflict(db, data.court_id, data.target_date, data.slot_key):
            record_booking_attempt("direct", "conflict")
            logger.warning(
                "direct_booking_conflict",
                court_id=data.court_id,
                target_date=data.target_date.isoformat(),
                slot_key=data.slot_key,
            )
            raise ResourceConflictError()

        reservation = Reservation(
            user_id=data.account_id,
            court_id=data.court_id,
            target_date=data.target_date,
            slot_key=data.slot_key,
            player_count=data.player_count,
            participant_ids=participants,
            status=ReservationStatus.CONFIRMED.value,
        )
        db.add(reservation)
        try:
            await db.flush()
        except IntegrityError:
            # Lost the race against another worker
            await db.rollback()
            record_booking_attempt("direct", "conflict")
            logger.warning(
                "direct_booking_conflict",
                court_id=data.court_id,
                target_date=data.target_date.isoformat(),
                slot_key=data.slot_key,
                reason="unique_index",
            )
            raise ResourceConflictError()
        await db.refresh(reservation)
        await db.commit()

    record_booking_attempt("direct", "success")
    logger.info(
        "direct_booking_created",
        reservation_id=reservation.id,
        user_id=reservation.user_id,
        court_id=reservation.court_id,
        target_date=reservation.target_date.isoformat(),
        slot_key=reservation.slot_key,
    )
    return reservation


async def get_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await db.get(Reservation, reservation_id)
    if not reservation:
        raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
    return reservation


async def _apply_transition(
    db: AsyncSession,
    reservation: Reservation,
    target: ReservationStatus,
    at: datetime,
) -> None:
    """
    Move a reservation out of CONFIRMED with a guarded UPDATE.
    Only one of several concurrent callers matches the WHERE clause; the
    others re-read the row and get the typed error for its new status.
    """
    await db.refresh(reservation)
    reservation.check_transition(target)

    result = await db.execute(
        update(Reservation)
        .where(
            Reservation.id == reservation.id,
            Reservation.status == ReservationStatus.CONFIRMED.value,
        )
        .values(**Reservation.transition_values(target, at))
        .execution_options(synchronize_session=False)
    )
    await db.refresh(reservation)
    if result.rowcount == 0:
        reservation.check_transition(target)
        raise InvalidStateError(f"Reservation {reservation.id} changed concurrently")


async def cancel_reservation(
    db: AsyncSession,
    reservation_id: int,
    now: datetime | None = None,
) -> Reservation:
    """Cancel a confirmed reservation and free its court. Never touches the usage ledger."""
    reservation = await get_reservation(db, reservation_id)

    async with slot_locks.hold(reservation.target_date, reservation.slot_key):
        await _apply_transition(db, reservation, ReservationStatus.CANCELLED, now or current_time())
        await db.commit()

    record_transition(ReservationStatus.CANCELLED.value)
    logger.info(
        "reservation_cancelled",
        reservation_id=reservation.id,
        user_id=reservation.user_id,
        court_id=reservation.court_id,
    )
    return reservation


async def complete_reservation(
    db: AsyncSession,
    reservation_id: int,
    now: datetime | None = None,
) -> Reservation:
    """
    Mark a confirmed reservation as played and count it in the usage ledger.
    The status change and the increment share one transaction, so the ledger
    moves exactly once per completed reservation.
    """
    reservation = await get_reservation(db, reservation_id)

    await _apply_transition(db, reservation, ReservationStatus.COMPLETED, now or current_time())
    await increment_usage(db, reservation.user_id)

    record_transition(ReservationStatus.COMPLETED.value)
    logger.info(
        "reservation_completed",
        reservation_id=reservation.id,
        user_id=reservation.user_id,
    )
    return reservation


async def list_reservations_for_account(db: AsyncSession, account_id: int) -> list[Reservation]:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.user_id == account_id)
        .order_by(Reservation.target_date.desc(), Reservation.slot_key.asc())
    )
    return list(result.scalars().all())
