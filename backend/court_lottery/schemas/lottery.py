"""
Pydantic schemas for lottery runs and the usage ledger.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class LotteryRunRequest(BaseModel):
    target_date: date
    slot_key: str = Field(..., max_length=5)


class AssignmentResponse(BaseModel):
    request_id: int
    court_id: int
    reservation_id: int


class LotterySummary(BaseModel):
    total_requests: int
    assigned: int
    unassigned: int


class LotteryRunResponse(BaseModel):
    target_date: date
    slot_key: str
    summary: LotterySummary
    assignments: list[AssignmentResponse]
    unassigned: list[int]


class UsageResponse(BaseModel):
    account_id: int
    count: int
    last_reset_at: Optional[datetime] = None


class UsageResetResponse(BaseModel):
    counters_reset: int
    reset_at: datetime
