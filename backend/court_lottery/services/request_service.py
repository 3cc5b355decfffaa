"""
Pooled request intake (2-5 days ahead).

Requests are validated completely before the single insert, so a rejected
request never leaves a row behind. Accepted requests wait, unweighted, for the
lottery of their (date, slot).
"""

from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.core.config import get_settings
from court_lottery.core.errors import (
    AccountNotFoundError, InvalidStateError, PlayerCountError, RequestNotFoundError, WindowError,
)
from court_lottery.core.logging import get_logger
from court_lottery.core.metrics import record_booking_attempt
from court_lottery.models.booking_request import BookingRequest, RequestStatus
from court_lottery.models.user import User
from court_lottery.schemas.booking_request import BookingRequestCreate
from court_lottery.services.availability_service import validate_slot_key
from court_lottery.services.slot_locks import slot_locks
from court_lottery.services.windows import BookingWindow, classify

logger = get_logger(__name__)


def validate_players(player_count: int, participant_ids: list[int]) -> list[int]:
    """Return the de-duplicated participant list, or raise PlayerCountError."""
    settings = get_settings()
    if not settings.MIN_PLAYERS <= player_count <= settings.MAX_PLAYERS:
        raise PlayerCountError(
            f"Player count must be between {settings.MIN_PLAYERS} and {settings.MAX_PLAYERS}"
        )
    unique_ids = list(dict.fromkeys(participant_ids))
    if len(unique_ids) != player_count:
        raise PlayerCountError(
            f"Expected {player_count} distinct participants, got {len(unique_ids)}"
        )
    return unique_ids


async def require_account(db: AsyncSession, account_id: int) -> User:
    user = await db.get(User, account_id)
    if not user:
        raise AccountNotFoundError(f"Account {account_id} not found")
    return user


async def submit_pooled_request(
    db: AsyncSession,
    data: BookingRequestCreate,
    now: datetime | None = None,
) -> BookingRequest:
    if classify(data.target_date, now) is not BookingWindow.REQUEST_WINDOW:
        record_booking_attempt("pooled", "rejected")
        raise WindowError("Requests must be made between 2 and 5 days in advance")
    try:
        validate_slot_key(data.slot_key)
        participants = validate_players(data.player_count, data.participant_ids)
        await require_account(db, data.account_id)
    except Exception:
        record_booking_attempt("pooled", "rejected")
        raise

    request = BookingRequest(
        user_id=data.account_id,
        target_date=data.target_date,
        slot_key=data.slot_key,
        player_count=data.player_count,
        participant_ids=participants,
        status=RequestStatus.PENDING.value,
    )
    db.add(request)
    await db.flush()
    await db.refresh(request)

    record_booking_attempt("pooled", "success")
    logger.info(
        "pooled_request_submitted",
        request_id=request.id,
        user_id=request.user_id,
        target_date=request.target_date.isoformat(),
        slot_key=request.slot_key,
        players=request.player_count,
    )
    return request


async def get_request(db: AsyncSession, request_id: int) -> BookingRequest:
    request = await db.get(BookingRequest, request_id)
    if not request:
        raise RequestNotFoundError(f"Booking request {request_id} not found")
    return request


async def cancel_pooled_request(db: AsyncSession, request_id: int) -> BookingRequest:
    """Withdraw a request that has not been drawn yet."""
    request = await get_request(db, request_id)

    async with slot_locks.hold(request.target_date, request.slot_key):
        await db.refresh(request)
        if not request.is_pending:
            raise InvalidStateError(
                f"Only pending requests can be cancelled (request is {request.status})"
            )
        request.status = RequestStatus.CANCELLED.value
        await db.flush()
        await db.commit()

    logger.info("pooled_request_cancelled", request_id=request.id, user_id=request.user_id)
    return request


async def list_requests_for_account(db: AsyncSession, account_id: int) -> list[BookingRequest]:
    result = await db.execute(
        select(BookingRequest)
        .where(BookingRequest.user_id == account_id)
        .order_by(BookingRequest.target_date.desc(), BookingRequest.slot_key.asc())
    )
    return list(result.scalars().all())


async def list_pending_requests(
    db: AsyncSession, target_date: date, slot_key: str
) -> list[BookingRequest]:
    """Pending pool for one slot, in submission order (the lottery's walk order)."""
    validate_slot_key(slot_key)
    result = await db.execute(
        select(BookingRequest)
        .where(
            BookingRequest.target_date == target_date,
            BookingRequest.slot_key == slot_key,
            BookingRequest.status == RequestStatus.PENDING.value,
        )
        .order_by(BookingRequest.created_at.asc(), BookingRequest.id.asc())
    )
    return list(result.scalars().all())
