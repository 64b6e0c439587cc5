"""Schemas for monthly plans and cascade runs."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MonthlyPlanSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    goal_id: UUID
    year: int
    month: int
    summary: str
    created_at: datetime


class MonthlyPlanUpdateRequest(BaseModel):
    summary: str = Field(..., min_length=1)


class CascadeRequest(BaseModel):
    scope: Literal["full", "week", "day"] = "full"


class CascadeResponse(BaseModel):
    cascade_id: str
    scope: str
    planning_date: date
    state: str
    completed_stages: List[str]
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    created: Dict[str, int]
    request_id: Optional[str] = None
