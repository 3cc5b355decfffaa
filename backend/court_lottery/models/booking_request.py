"""
Pooled booking request, resolved later by the lottery.

Key design decisions:
- `weight` stays NULL until a lottery run stamps it, so every run is auditable
- Unlucky requests stay PENDING; there is no separate "unassigned" status
- Cancellation only flips status to CANCELLED; the row stays for auditing
  and drops out of every future pool
"""

import enum

from sqlalchemy import Column, Integer, String, Float, Date, JSON, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from court_lottery.core.errors import InvalidStateError
from court_lottery.db.base import Base, TimestampMixin


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class BookingRequest(Base, TimestampMixin):
    __tablename__ = "booking_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    target_date = Column(Date, nullable=False)
    slot_key = Column(String(5), nullable=False)
    player_count = Column(Integer, nullable=False)
    participant_ids = Column(JSON, nullable=False, default=list)
    weight = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value)

    user = relationship("User")

    __table_args__ = (
        CheckConstraint("player_count BETWEEN 2 AND 4", name="check_request_player_count"),
        CheckConstraint(
            "status IN ('pending', 'resolved', 'cancelled')", name="check_request_status"
        ),
        # Lottery pool lookup: WHERE target_date = ? AND slot_key = ? AND status = 'pending'
        Index("ix_booking_requests_pool", "target_date", "slot_key", "status"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING.value

    def resolve(self) -> None:
        if not self.is_pending:
            raise InvalidStateError(f"Request {self.id} is {self.status}, not pending")
        self.status = RequestStatus.RESOLVED.value

    def __repr__(self) -> str:
        return (
            f"<BookingRequest(id={self.id}, user={self.user_id}, "
            f"{self.target_date} {self.slot_key}, status={self.status})>"
        )
