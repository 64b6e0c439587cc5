"""Goal-setting conversation routes."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.deps import get_ai_client
from app.api.schemas.chat import ChatMessageSummary, ChatRequest, ChatResponse, GoalDraftPayload
from app.db.deps import get_db
from app.services.ai_client import AIClient
from app.services.goal_chat import run_chat_turn
from app.services.planner_store import PlannerStore

router = APIRouter()


@router.get("/chat", response_model=List[ChatMessageSummary], tags=["chat"])
def get_chat_history(
    session_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> List[ChatMessageSummary]:
    messages = PlannerStore(db).list_chat_messages(session_id)
    return [ChatMessageSummary.model_validate(message) for message in messages]


@router.post("/chat", response_model=ChatResponse, tags=["chat"])
def post_chat_message(
    payload: ChatRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    ai_client: AIClient = Depends(get_ai_client),
) -> ChatResponse:
    """Send the user's message and return the assistant's reply, plus goals once finalized."""
    turn = run_chat_turn(
        PlannerStore(db),
        ai_client,
        session_id=payload.session_id,
        message=payload.message,
        year=payload.year,
    )
    goals = None
    if turn.goals is not None:
        goals = [GoalDraftPayload(**draft.model_dump()) for draft in turn.goals]
    return ChatResponse(
        response=turn.reply,
        goals_complete=turn.goals_complete,
        goals=goals,
        request_id=getattr(http_request.state, "request_id", None),
    )
