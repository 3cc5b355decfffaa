"""
Account model. The allocation core only reads `tier`; usage lives in usage_counters.
"""

import enum

from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from sqlalchemy.orm import relationship

from court_lottery.db.base import Base, TimestampMixin


class AccountTier(str, enum.Enum):
    PRIORITY = "priority"  # club members
    STANDARD = "standard"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    tier = Column(String(20), nullable=False, default=AccountTier.STANDARD.value)
    is_active = Column(Boolean, default=True, nullable=False)

    usage_counter = relationship("UsageCounter", back_populates="user", uselist=False)

    __table_args__ = (
        CheckConstraint("tier IN ('priority', 'standard')", name="check_user_tier"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, tier={self.tier})>"
