"""
Direct booking and reservation lifecycle endpoints, plus slot availability.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from court_lottery.db.session import get_db
from court_lottery.schemas.reservation import (
    DirectBookingCreate, ReservationResponse, AvailabilityResponse, CourtResponse,
)
from court_lottery.services.availability_service import available_courts
from court_lottery.services.booking_service import (
    create_direct_booking, cancel_reservation, complete_reservation, list_reservations_for_account,
)

router = APIRouter(prefix="/reservations", tags=["Reservations"])
availability_router = APIRouter(prefix="/availability", tags=["Availability"])


@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    booking_data: DirectBookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Book a court directly (today or tomorrow).

    Returns 409 if the court is already held for the slot, including when a
    concurrent booking from another worker wins the race.
    """
    return await create_direct_booking(db, booking_data)


@router.get("/", response_model=list[ReservationResponse])
async def list_account_reservations(
    account_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
):
    return await list_reservations_for_account(db, account_id)


@router.post("/{reservation_id}/complete", response_model=ReservationResponse)
async def complete_reservation_endpoint(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await complete_reservation(db, reservation_id)


@router.delete("/{reservation_id}", response_model=ReservationResponse)
async def cancel_reservation_endpoint(
    reservation_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a confirmed reservation; the court is free again immediately."""
    return await cancel_reservation(db, reservation_id)


@availability_router.get("/", response_model=AvailabilityResponse)
async def get_availability(
    target_date: date = Query(..., alias="date"),
    slot_key: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Not cached: availability must reflect cancellations on the next read."""
    courts = await available_courts(db, target_date, slot_key)
    return AvailabilityResponse(
        target_date=target_date,
        slot_key=slot_key,
        courts=[CourtResponse.model_validate(c) for c in courts],
    )
