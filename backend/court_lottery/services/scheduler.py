"""
Periodic jobs: lottery resolution, reservation completion, monthly usage reset
and removal of lapsed requests.

Each job is a plain coroutine taking a session and "now", so it can be run by
the background loop, a cron-driven script or a test. The loop is started from
the application lifespan when SCHEDULER_ENABLED is set.
"""

import asyncio
from datetime import datetime, timedelta

from sqlalchemy import select, delete, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.core.config import get_settings
from court_lottery.core.errors import CourtLotteryError
from court_lottery.core.logging import get_logger, slot_context
from court_lottery.db.session import AsyncSessionLocal
from court_lottery.models.booking_request import BookingRequest, RequestStatus
from court_lottery.models.reservation import Reservation, ReservationStatus
from court_lottery.models.time_slot import TimeSlot
from court_lottery.services.booking_service import complete_reservation
from court_lottery.services.lottery_service import LotteryResult, run_lottery
from court_lottery.services.request_service import list_pending_requests
from court_lottery.services.usage_service import last_reset_date, reset_all
from court_lottery.services.windows import current_time, reference_tz, to_local_date

logger = get_logger(__name__)


async def run_due_lotteries(db: AsyncSession, now: datetime | None = None) -> list[LotteryResult]:
    """Resolve every slot of the day that just left the request window."""
    now = now or current_time()
    target_date = to_local_date(now) + timedelta(days=get_settings().LOTTERY_LEAD_DAYS)

    slots = await db.execute(
        select(TimeSlot.start_time)
        .where(TimeSlot.day_of_week == target_date.weekday())
        .order_by(TimeSlot.start_time.asc())
    )

    results = []
    for slot_key in slots.scalars().all():
        if not await list_pending_requests(db, target_date, slot_key):
            continue
        with slot_context(target_date, slot_key):
            results.append(await run_lottery(db, target_date, slot_key))
    return results


async def complete_elapsed_reservations(db: AsyncSession, now: datetime | None = None) -> int:
    """Complete confirmed reservations whose slot has already started."""
    now = now or current_time()
    today = to_local_date(now)
    local_now = now.astimezone(reference_tz()) if now.tzinfo else now
    clock = local_now.strftime("%H:%M")

    result = await db.execute(
        select(Reservation.id).where(
            Reservation.status == ReservationStatus.CONFIRMED.value,
            or_(
                Reservation.target_date < today,
                and_(Reservation.target_date == today, Reservation.slot_key < clock),
            ),
        )
    )
    completed = 0
    for reservation_id in result.scalars().all():
        try:
            await complete_reservation(db, reservation_id, now)
            completed += 1
        except CourtLotteryError as e:
            # Completed or cancelled by someone else since the select
            logger.warning("reservation_completion_skipped", reservation_id=reservation_id, error=e.detail)
    await db.commit()
    return completed


async def reset_usage_if_due(db: AsyncSession, now: datetime | None = None) -> bool:
    """Reset the ledger once per calendar month."""
    now = now or current_time()
    last = await last_reset_date(db)
    if last is not None:
        last_day = to_local_date(last)
        today = to_local_date(now)
        if (last_day.year, last_day.month) == (today.year, today.month):
            return False
    await reset_all(db, now)
    await db.commit()
    return True


async def purge_lapsed_requests(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete PENDING requests whose date has passed; they can no longer win anything."""
    today = to_local_date(now or current_time())
    result = await db.execute(
        delete(BookingRequest).where(
            BookingRequest.status == RequestStatus.PENDING.value,
            BookingRequest.target_date < today,
        )
    )
    await db.commit()
    if result.rowcount:
        logger.info("lapsed_requests_purged", count=result.rowcount, before=today)
    return result.rowcount


async def run_periodic_jobs(db: AsyncSession, now: datetime | None = None) -> dict:
    now = now or current_time()
    summary = {
        "usage_reset": await reset_usage_if_due(db, now),
        "completed": await complete_elapsed_reservations(db, now),
        "lapsed_purged": await purge_lapsed_requests(db, now),
        "lotteries": len(await run_due_lotteries(db, now)),
    }
    logger.info("scheduler_tick", **summary)
    return summary


async def scheduler_loop() -> None:
    interval = get_settings().SCHEDULER_INTERVAL_SECONDS
    logger.info("scheduler_started", interval_seconds=interval)
    try:
        while True:
            try:
                async with AsyncSessionLocal() as db:
                    await run_periodic_jobs(db)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("scheduler_tick_failed")
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("scheduler_stopped")
        raise
