"""
Reservation model: a court held by an account for one (date, slot).

Key design decisions:
- Partial unique index on (court_id, target_date, slot_key) WHERE status = 'confirmed'
  is the database-level guarantee against double booking; cancelled and
  completed rows never block the slot
- check_transition() allows CONFIRMED -> COMPLETED | CANCELLED and nothing
  else; the service applies it with an UPDATE guarded on status = 'confirmed'
  built from transition_values()
- request_id links lottery-issued reservations back to their request
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, JSON, ForeignKey, Index, CheckConstraint, text,
)
from sqlalchemy.orm import relationship

from court_lottery.core.errors import CannotCancelCompletedError, InvalidStateError
from court_lottery.db.base import Base, TimestampMixin


class ReservationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_TRANSITIONS = {
    ReservationStatus.CONFIRMED: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
    ReservationStatus.COMPLETED: set(),
    ReservationStatus.CANCELLED: set(),
}

_ACTIVE_ONLY = text("status = 'confirmed'")


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False, index=True)
    target_date = Column(Date, nullable=False)
    slot_key = Column(String(5), nullable=False)
    player_count = Column(Integer, nullable=False)
    participant_ids = Column(JSON, nullable=False, default=list)
    request_id = Column(Integer, ForeignKey("booking_requests.id"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User")
    court = relationship("Court")

    __table_args__ = (
        Index(
            "uq_reservation_active_slot",
            "court_id", "target_date", "slot_key",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index("ix_reservations_date_slot", "target_date", "slot_key", "status"),
        CheckConstraint("player_count BETWEEN 2 AND 4", name="check_reservation_player_count"),
        CheckConstraint(
            "status IN ('confirmed', 'completed', 'cancelled')", name="check_reservation_status"
        ),
    )

    @property
    def current_status(self) -> ReservationStatus:
        return ReservationStatus(self.status)

    def check_transition(self, target: ReservationStatus) -> None:
        current = self.current_status
        if target not in _TRANSITIONS[current]:
            if current is ReservationStatus.COMPLETED and target is ReservationStatus.CANCELLED:
                raise CannotCancelCompletedError()
            raise InvalidStateError(
                f"Reservation {self.id} cannot move from {current.value} to {target.value}"
            )

    @staticmethod
    def transition_values(target: ReservationStatus, at: datetime) -> dict:
        """Column values written when entering `target`."""
        stamp = "completed_at" if target is ReservationStatus.COMPLETED else "cancelled_at"
        return {"status": target.value, stamp: at}

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, court={self.court_id}, "
            f"{self.target_date} {self.slot_key}, status={self.status})>"
        )
