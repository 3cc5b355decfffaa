"""
Pydantic schemas for reservations and court availability.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class DirectBookingCreate(BaseModel):
    account_id: int
    court_id: int
    target_date: date
    slot_key: str = Field(..., max_length=5, examples=["18:30"])
    player_count: int
    participant_ids: list[int] = Field(default_factory=list)


class ReservationResponse(BaseModel):
    id: int
    user_id: int
    court_id: int
    target_date: date
    slot_key: str
    player_count: int
    participant_ids: list[int]
    request_id: Optional[int]
    status: str
    created_at: datetime
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    model_config = {"from_attributes": True}


class CourtResponse(BaseModel):
    id: int
    name: str
    is_active: bool

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    target_date: date
    slot_key: str
    courts: list[CourtResponse]
