"""
Court model. Inactive courts are never offered, neither directly nor in a lottery.
"""

from sqlalchemy import Column, Integer, String, Boolean

from court_lottery.db.base import Base, TimestampMixin


class Court(Base, TimestampMixin):
    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Court(id={self.id}, name={self.name}, active={self.is_active})>"
