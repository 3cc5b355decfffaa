"""
Usage ledger: completed reservations per account since the last reset.

increment() is a single INSERT .. ON CONFLICT DO UPDATE statement, so two
concurrent completions for the same account cannot lose an update. Only the
reservation state machine calls it.
"""

from datetime import datetime

from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.models.usage_counter import UsageCounter, UsageReset
from court_lottery.core.logging import get_logger
from court_lottery.core.metrics import usage_increments
from court_lottery.services.windows import current_time

logger = get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def get_usage(db: AsyncSession, user_id: int) -> int:
    """Current count; accounts without a ledger row count as zero."""
    result = await db.execute(select(UsageCounter.count).where(UsageCounter.user_id == user_id))
    count = result.scalar_one_or_none()
    return count or 0


async def increment_usage(db: AsyncSession, user_id: int) -> None:
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Atomic usage increment not supported on {dialect}")

    stmt = insert(UsageCounter).values(user_id=user_id, count=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[UsageCounter.user_id],
        set_={"count": UsageCounter.count + 1, "updated_at": func.now()},
    )
    await db.execute(stmt)
    usage_increments.inc()
    logger.info("usage_incremented", user_id=user_id)


async def reset_all(db: AsyncSession, now: datetime | None = None) -> int:
    """
    Zero every counter and record the reset. Returns the number of counters touched.
    The reset is logged in usage_resets even when no counter exists yet, so the
    monthly trigger can tell that this month is already done.
    """
    now = now or current_time()
    result = await db.execute(
        update(UsageCounter).values(count=0, last_reset_at=now)
    )
    db.add(UsageReset(reset_at=now, counters_reset=result.rowcount))
    await db.flush()
    logger.info("usage_reset", counters=result.rowcount, reset_at=now)
    return result.rowcount


async def last_reset_date(db: AsyncSession) -> datetime | None:
    result = await db.execute(select(func.max(UsageReset.reset_at)))
    return result.scalar_one_or_none()


async def list_counters(db: AsyncSession) -> list[UsageCounter]:
    result = await db.execute(
        select(UsageCounter).order_by(UsageCounter.count.desc(), UsageCounter.user_id.asc())
    )
    return list(result.scalars().all())
