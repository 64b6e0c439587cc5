"""Schemas for planner settings."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.source_fetcher import DynamicSource


class PlannerSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    working_days: List[int]
    daily_schedule: Optional[str]
    dynamic_sources: List[DynamicSource]


class PlannerSettingsUpdateRequest(BaseModel):
    working_days: Optional[List[int]] = Field(
        default=None,
        description="Weekday indices, 0=Sunday..6=Saturday",
    )
    daily_schedule: Optional[str] = None
    dynamic_sources: Optional[List[DynamicSource]] = None
