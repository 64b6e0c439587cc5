"""Goal ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship, validates

from app.db.base import Base

GOAL_CATEGORIES = ("growth", "habit", "milestone")
DEFAULT_GOAL_CATEGORY = "growth"
MIN_MULTIPLIER = 1.0
MAX_MULTIPLIER = 5.0


class Goal(Base):
    __tablename__ = "goals"
    __table_args__ = (Index("ix_goals_year", "year"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    year = Column(Integer, nullable=False)
    multiplier = Column(Float, nullable=False, default=MIN_MULTIPLIER)
    frequency = Column(String(length=100), nullable=True)
    category = Column(String(length=20), nullable=False, default=DEFAULT_GOAL_CATEGORY)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    monthly_plans = relationship(
        "MonthlyPlan",
        back_populates="goal",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @validates("multiplier")
    def _validate_multiplier(self, _key, value):
        if value is None:
            return MIN_MULTIPLIER
        value = float(value)
        if not MIN_MULTIPLIER <= value <= MAX_MULTIPLIER:
            raise ValueError(f"multiplier must be between {MIN_MULTIPLIER} and {MAX_MULTIPLIER}, got {value}")
        return value

    @validates("category")
    def _validate_category(self, _key, value):
        if value is None:
            return DEFAULT_GOAL_CATEGORY
        if value not in GOAL_CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(GOAL_CATEGORIES)}")
        return value
