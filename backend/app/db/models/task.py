"""Task ORM model."""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base

TASK_SCOPES = ("month", "week", "day")


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_scope_coordinates", "scope", "scope_year", "scope_month", "scope_week", "scope_day"),
        Index("ix_tasks_completed", "completed"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    scope = Column(String(length=10), nullable=False)
    # Only the coordinates relevant to `scope` are populated; the rest stay NULL.
    scope_year = Column(Integer, nullable=False)
    scope_month = Column(Integer, nullable=True)
    scope_week = Column(Integer, nullable=True)
    scope_day = Column(Integer, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
