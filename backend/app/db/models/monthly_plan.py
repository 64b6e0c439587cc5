"""Monthly plan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base import Base


class MonthlyPlan(Base):
    __tablename__ = "monthly_plans"
    __table_args__ = (Index("ix_monthly_plans_year_month", "year", "month"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    # Stored against one goal, but the summary covers the whole goal set for the month.
    goal_id = Column(UUID(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    summary = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    goal = relationship("Goal", back_populates="monthly_plans")
