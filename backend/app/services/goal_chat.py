"""Conversational goal-setting flow."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from app.core.errors import PlannerError, ValidationError
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.ai_client import AIClient
from app.services.planner_store import PlannerStore
from app.services.prompt_assembler import build_goal_chat_messages
from app.services.response_parser import GoalDraft, extract_finalized_goals

logger = logging.getLogger(__name__)


@dataclass
class ChatTurn:
    reply: str
    goals: Optional[List[GoalDraft]]

    @property
    def goals_complete(self) -> bool:
        return self.goals is not None


def generate_goal_reply(ai_client: AIClient, history: Sequence[Mapping[str, str]], year: int) -> str:
    """Return the assistant's next free-text message for the conversation so far."""
    messages = build_goal_chat_messages(history, year)
    return ai_client.call_model(messages, json_mode=False)


def try_extract_finalized_goals(text: Optional[str]) -> Optional[List[GoalDraft]]:
    """Finalized goal drafts embedded in `text`, or None if the conversation is still going."""
    return extract_finalized_goals(text)


def run_chat_turn(
    store: PlannerStore,
    ai_client: AIClient,
    *,
    session_id: str,
    message: str,
    year: int,
) -> ChatTurn:
    """Store the user's message, ask the model, store its reply.

    The turn is all-or-nothing: if the model call fails neither message is
    kept, so resending the same message does not duplicate history.
    """
    if not session_id.strip():
        raise ValidationError("session_id is required")
    if not message.strip():
        raise ValidationError("message must not be blank")

    with trace("goal_chat.turn", metadata={"session_id": session_id, "year": year}):
        try:
            store.add_chat_message(session_id, "user", message.strip())
            history = [
                {"role": row.role, "content": row.content} for row in store.list_chat_messages(session_id)
            ]
            reply = generate_goal_reply(ai_client, history, year)
            store.add_chat_message(session_id, "assistant", reply)
            store.commit()
        except PlannerError:
            store.rollback()
            log_metric("goal_chat.turn.failure", 1, {"session_id": session_id})
            raise

    goals = try_extract_finalized_goals(reply)
    if goals is not None:
        logger.info("Goal chat %s finalized %d goal(s)", session_id, len(goals))
    log_metric("goal_chat.turn.success", 1, {"session_id": session_id, "goals_complete": goals is not None})
    return ChatTurn(reply=reply, goals=goals)
