"""Schemas for planner tasks."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

TaskScope = Literal["month", "week", "day"]


class TaskSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: Optional[str]
    completed: bool
    scope: TaskScope
    scope_year: int
    scope_month: Optional[int]
    scope_week: Optional[int]
    scope_day: Optional[int]
    sort_order: int
    created_at: datetime
    updated_at: datetime


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    scope: TaskScope
    year: int
    month: Optional[int] = Field(default=None, ge=1, le=12)
    week: Optional[int] = Field(default=None, ge=1, le=6)
    day: Optional[int] = Field(default=None, ge=1, le=31)


class TaskUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    completed: Optional[bool] = None
