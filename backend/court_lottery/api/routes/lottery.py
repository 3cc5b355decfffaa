"""
Lottery execution and usage ledger endpoints (operator operations).
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.core.logging import slot_context
from court_lottery.db.session import get_db
from court_lottery.models.usage_counter import UsageCounter
from court_lottery.schemas.lottery import (
    LotteryRunRequest, LotteryRunResponse, LotterySummary, AssignmentResponse,
    UsageResponse, UsageResetResponse,
)
from court_lottery.services.lottery_service import run_lottery
from court_lottery.services.usage_service import get_usage, reset_all
from court_lottery.services.windows import current_time

router = APIRouter(prefix="/lottery", tags=["Lottery"])
usage_router = APIRouter(prefix="/usage", tags=["Usage"])


@router.post("/run", response_model=LotteryRunResponse)
async def run_lottery_endpoint(
    run_data: LotteryRunRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Draw courts for every pending request of one slot.
    Safe to repeat: only requests still pending take part.
    """
    with slot_context(run_data.target_date, run_data.slot_key):
        result = await run_lottery(db, run_data.target_date, run_data.slot_key)
    return LotteryRunResponse(
        target_date=result.target_date,
        slot_key=result.slot_key,
        summary=LotterySummary(
            total_requests=result.total_requests,
            assigned=len(result.assignments),
            unassigned=len(result.unassigned),
        ),
        assignments=[
            AssignmentResponse(
                request_id=a.request_id, court_id=a.court_id, reservation_id=a.reservation_id
            )
            for a in result.assignments
        ],
        unassigned=result.unassigned,
    )


@usage_router.get("/{account_id}", response_model=UsageResponse)
async def get_usage_endpoint(
    account_id: int,
    db: AsyncSession = Depends(get_db),
):
    count = await get_usage(db, account_id)
    last_reset = await db.execute(
        select(UsageCounter.last_reset_at).where(UsageCounter.user_id == account_id)
    )
    return UsageResponse(
        account_id=account_id,
        count=count,
        last_reset_at=last_reset.scalar_one_or_none(),
    )


@usage_router.post("/reset", response_model=UsageResetResponse)
async def reset_usage_endpoint(db: AsyncSession = Depends(get_db)):
    """Monthly reset; normally triggered by the scheduler."""
    now = current_time()
    count = await reset_all(db, now)
    return UsageResetResponse(counters_reset=count, reset_at=now)
