"""
Pydantic schemas for pooled booking requests.

Range rules (player count, windows, slot format) are enforced by the services
so that every caller gets the same typed errors, not only HTTP clients.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class BookingRequestCreate(BaseModel):
    account_id: int
    target_date: date
    slot_key: str = Field(..., max_length=5, examples=["10:00"])
    player_count: int
    participant_ids: list[int] = Field(default_factory=list)


class BookingRequestResponse(BaseModel):
    id: int
    user_id: int
    target_date: date
    slot_key: str
    player_count: int
    participant_ids: list[int]
    weight: Optional[float]
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingRequestCancelResponse(BaseModel):
    message: str
    request_id: int
