"""
Usage ledger row: completed reservations per account since the last monthly reset.
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from court_lottery.db.base import Base, TimestampMixin


class UsageCounter(Base, TimestampMixin):
    __tablename__ = "usage_counters"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    count = Column(Integer, nullable=False, default=0)
    last_reset_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="usage_counter")

    __table_args__ = (
        CheckConstraint("count >= 0", name="check_usage_count_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<UsageCounter(user={self.user_id}, count={self.count})>"


class UsageReset(Base):
    """One row per ledger reset, written even when no counter exists yet."""

    __tablename__ = "usage_resets"

    id = Column(Integer, primary_key=True, index=True)
    reset_at = Column(DateTime(timezone=True), nullable=False, index=True)
    counters_reset = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<UsageReset(at={self.reset_at}, counters={self.counters_reset})>"
