"""
Pooled request endpoints (2-5 days ahead, resolved by lottery).
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.db.session import get_db
from court_lottery.schemas.booking_request import (
    BookingRequestCreate, BookingRequestResponse, BookingRequestCancelResponse,
)
from court_lottery.services.request_service import (
    submit_pooled_request, cancel_pooled_request, list_requests_for_account, list_pending_requests,
)

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.post("/", response_model=BookingRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    request_data: BookingRequestCreate,
    db: AsyncSession = Depends(get_db),
):
    """Join the lottery pool for a court slot."""
    return await submit_pooled_request(db, request_data)


@router.get("/", response_model=list[BookingRequestResponse])
async def list_account_requests(
    account_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    return await list_requests_for_account(db, account_id)


@router.get("/pending", response_model=list[BookingRequestResponse])
async def list_pending(
    target_date: date = Query(..., alias="date"),
    slot_key: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Requests still waiting for the lottery of this slot."""
    return await list_pending_requests(db, target_date, slot_key)


@router.delete("/{request_id}", response_model=BookingRequestCancelResponse)
async def cancel_request_endpoint(
    request_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a request before its lottery runs."""
    request = await cancel_pooled_request(db, request_id)
    return BookingRequestCancelResponse(
        message="Request cancelled successfully",
        request_id=request.id,
    )
