"""
Weighted lottery for one (date, slot).

ALGORITHM
=========

  1. Pool    = PENDING requests for the slot, in submission order
  2. Weights = base(tier) / (1 + usage * decay), stamped on every request
               (winners and losers alike, for auditing)
  3. Courts  = active courts without a confirmed reservation for the slot
  4. While both pools are non-empty:
       r ~ Uniform(0, total_weight) and walk the pool subtracting weights
       until r <= 0; that request wins the next court, gets a CONFIRMED
       reservation and becomes RESOLVED
  5. Whatever is left stays PENDING and is reported as unassigned

Selection is proportional, not ranked: any request with a non-zero weight can
win in any run, heavy recent users just win less often. If every weight is
zero the draw falls back to uniform.

The whole run happens under the slot lock in one transaction. A second run
for the same slot only sees requests that are still PENDING, so re-running
after a failure never assigns a request twice. Each draw is O(n); pools are
a handful of requests per slot.
"""

import random
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.core.errors import ResourceConflictError
from court_lottery.core.logging import get_logger
from court_lottery.core.metrics import lottery_latency, record_lottery_run
from court_lottery.models.booking_request import BookingRequest
from court_lottery.models.reservation import Reservation, ReservationStatus
from court_lottery.models.user import User
from court_lottery.services.availability_service import available_court_ids, validate_slot_key
from court_lottery.services.request_service import list_pending_requests
from court_lottery.services.slot_locks import slot_locks
from court_lottery.services.usage_service import get_usage
from court_lottery.services.weighting import calculate_weight

logger = get_logger(__name__)

_default_rng = random.SystemRandom()


@dataclass
class Assignment:
    request_id: int
    court_id: int
    reservation_id: int


@dataclass
class LotteryResult:
    target_date: date
    slot_key: str
    assignments: list[Assignment] = field(default_factory=list)
    unassigned: list[int] = field(default_factory=list)

    @property
    def total_requests(self) -> int:
        return len(self.assignments) + len(self.unassigned)


def select_weighted_index(weights: Sequence[Optional[float]], rng: random.Random) -> int:
    """
    Index of the drawn entry, with probability proportional to its weight.
    Missing weights count as zero. Raises ValueError on an empty pool.
    """
    if not weights:
        raise ValueError("cannot draw from an empty pool")

    normalized = [w if w and w > 0 else 0.0 for w in weights]
    total = sum(normalized)
    if total <= 0:
        return rng.randrange(len(normalized))

    r = rng.uniform(0, total)
    last_positive = 0
    for index, weight in enumerate(normalized):
        if weight <= 0:
            continue
        last_positive = index
        r -= weight
        if r <= 0:
            return index
    # Float rounding can leave a sliver of r; it belongs to the last real entry
    return last_positive


async def _compute_weights(db: AsyncSession, requests: list[BookingRequest]) -> None:
    for request in requests:
        user = await db.get(User, request.user_id)
        if user is None:
            # FK makes this unreachable in practice; a zero weight keeps the request drawable
            request.weight = 0.0
            continue
        usage = await get_usage(db, request.user_id)
        request.weight = calculate_weight(user.tier, usage)
    await db.flush()


async def run_lottery(
    db: AsyncSession,
    target_date: date,
    slot_key: str,
    rng: random.Random | None = None,
) -> LotteryResult:
    validate_slot_key(slot_key)
    rng = rng or _default_rng
    result = LotteryResult(target_date=target_date, slot_key=slot_key)
    started = time.perf_counter()

    async with slot_locks.hold(target_date, slot_key):
        pending = await list_pending_requests(db, target_date, slot_key)
        if not pending:
            record_lottery_run("empty")
            logger.info(
                "lottery_completed",
                target_date=target_date.isoformat(),
                slot_key=slot_key,
                total_requests=0,
            )
            return result

        await _compute_weights(db, pending)
        logger.info(
            "lottery_weights_computed",
            target_date=target_date.isoformat(),
            slot_key=slot_key,
            weights={r.id: round(r.weight, 4) for r in pending},
        )

        courts = sorted(await available_court_ids(db, target_date, slot_key))
        remaining = list(pending)

        while remaining and courts:
            winner = remaining.pop(select_weighted_index([r.weight for r in remaining], rng))
            court_id = courts.pop(0)

            reservation = Reservation(
                user_id=winner.user_id,
                court_id=court_id,
                target_date=winner.target_date,
                slot_key=winner.slot_key,
                player_count=winner.player_count,
                participant_ids=list(winner.participant_ids),
                request_id=winner.id,
                status=ReservationStatus.CONFIRMED.value,
            )
            db.add(reservation)
            winner.resolve()
            try:
                await db.flush()
            except IntegrityError:
                # A direct booking from another worker took the court mid-run
                await db.rollback()
                record_lottery_run("conflict")
                logger.warning(
                    "lottery_conflict",
                    target_date=target_date.isoformat(),
                    slot_key=slot_key,
                    court_id=court_id,
                )
                raise ResourceConflictError(
                    f"Court {court_id} was taken during the lottery; run it again"
                )
            await db.refresh(reservation)

            result.assignments.append(
                Assignment(request_id=winner.id, court_id=court_id, reservation_id=reservation.id)
            )
            logger.info(
                "lottery_assignment",
                request_id=winner.id,
                user_id=winner.user_id,
                court_id=court_id,
                reservation_id=reservation.id,
                weight=winner.weight,
            )

        result.unassigned = [r.id for r in remaining]
        await db.commit()

    lottery_latency.observe(time.perf_counter() - started)
    record_lottery_run("completed", len(result.assignments), len(result.unassigned))
    logger.info(
        "lottery_completed",
        target_date=target_date.isoformat(),
        slot_key=slot_key,
        total_requests=result.total_requests,
        assigned=len(result.assignments),
        unassigned=len(result.unassigned),
    )
    return result
