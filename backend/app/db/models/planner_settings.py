"""Singleton planner settings row."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, func

from app.db.base import Base
from app.db.types import JSONBCompat

SETTINGS_ROW_ID = "default"
# 0=Sunday..6=Saturday
DEFAULT_WORKING_DAYS = [1, 2, 3, 4, 5]


class PlannerSettings(Base):
    __tablename__ = "planner_settings"

    id = Column(String(length=20), primary_key=True, default=SETTINGS_ROW_ID)
    working_days = Column(JSONBCompat, nullable=False, default=lambda: list(DEFAULT_WORKING_DAYS))
    daily_schedule = Column(Text, nullable=True)
    dynamic_sources = Column(JSONBCompat, nullable=False, default=list)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
