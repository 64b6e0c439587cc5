"""Schemas for yearly goals."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

GoalCategory = Literal["growth", "habit", "milestone"]


class GoalSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    year: int
    multiplier: float
    frequency: Optional[str]
    category: GoalCategory
    created_at: datetime
    updated_at: datetime


class GoalCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    year: int = Field(..., ge=2000, le=2100)
    multiplier: float = Field(1.0, ge=1.0, le=5.0, description="Priority weight, 1 (low) to 5 (top)")
    frequency: Optional[str] = Field(default=None, max_length=100, description='e.g. "5/day" or "3/week"')
    category: GoalCategory = "growth"


class GoalUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    multiplier: Optional[float] = Field(default=None, ge=1.0, le=5.0)
    frequency: Optional[str] = Field(default=None, max_length=100)
    category: Optional[GoalCategory] = None
