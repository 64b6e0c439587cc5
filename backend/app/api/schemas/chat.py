"""Schemas for the goal-setting conversation."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ChatMessageSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: str
    role: str
    content: str
    created_at: datetime


class ChatRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1)
    year: int = Field(..., ge=2000, le=2100)


class GoalDraftPayload(BaseModel):
    title: str
    description: str
    multiplier: float
    frequency: Optional[str]
    category: str


class ChatResponse(BaseModel):
    response: str
    goals_complete: bool
    goals: Optional[List[GoalDraftPayload]] = None
    request_id: Optional[str] = None
