"""
Weekly slot template (e.g. every Monday 10:00-11:30, peak).

Key design decisions:
- Requests and reservations copy `start_time` as their slot_key instead of a
  foreign key, so editing or deleting a template never rewrites history
- day_of_week follows Python's date.weekday(): Monday == 0
"""

from sqlalchemy import Column, Integer, String, Boolean, UniqueConstraint, CheckConstraint

from court_lottery.db.base import Base, TimestampMixin


class TimeSlot(Base, TimestampMixin):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM, doubles as slot_key
    end_time = Column(String(5), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    is_peak = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("day_of_week", "start_time", name="uq_time_slot_day_start"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="check_time_slot_day"),
        CheckConstraint("duration_minutes > 0", name="check_time_slot_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<TimeSlot(day={self.day_of_week}, {self.start_time}-{self.end_time})>"
