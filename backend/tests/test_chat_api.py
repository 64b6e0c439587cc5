from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_ai_client
from app.core.errors import UpstreamError
from app.db.deps import get_db
from app.db.models.chat_message import ChatMessage
from app.main import app


class _ScriptedAI:
    def __init__(self):
        self.responses = []
        self.seen = []

    def call_model(self, messages, *, json_mode=True):
        self.seen.append((messages, json_mode))
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    ChatMessage.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    ai = _ScriptedAI()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: ai
    with TestClient(app) as test_client:
        yield test_client, ai
    app.dependency_overrides.clear()


def test_plain_reply_keeps_conversation_going(client) -> None:
    test_client, ai = client
    ai.responses.append("What does success look like for you this year?")

    response = test_client.post("/chat", json={"session_id": "s1", "message": "I want to get fit", "year": 2025})

    assert response.status_code == 200
    body = response.json()
    assert body["response"] == "What does success look like for you this year?"
    assert body["goals_complete"] is False
    assert body["goals"] is None

    messages, json_mode = ai.seen[0]
    assert json_mode is False
    assert messages[0]["role"] == "system"
    assert messages[-1] == {"role": "user", "content": "I want to get fit"}

    history = test_client.get("/chat", params={"session_id": "s1"}).json()
    assert [(item["role"], item["content"]) for item in history] == [
        ("user", "I want to get fit"),
        ("assistant", "What does success look like for you this year?"),
    ]


def test_finalized_goals_are_returned(client) -> None:
    test_client, ai = client
    final = {
        "goals_complete": True,
        "goals": [
            {"title": "Run a half marathon", "description": "By October", "multiplier": 9, "category": "milestone"},
            {"title": "Stretch", "frequency": "1/day", "category": "routine"},
        ],
    }
    ai.responses.append("Great, here is your list:\n" + json.dumps(final))

    body = test_client.post("/chat", json={"session_id": "s2", "message": "Looks good", "year": 2025}).json()

    assert body["goals_complete"] is True
    assert [goal["title"] for goal in body["goals"]] == ["Run a half marathon", "Stretch"]
    assert body["goals"][0]["multiplier"] == 5.0
    assert body["goals"][1]["category"] == "growth"
    assert body["goals"][1]["frequency"] == "1/day"


def test_history_is_sent_on_later_turns(client) -> None:
    test_client, ai = client
    ai.responses.extend(["Tell me more.", "Noted."])

    test_client.post("/chat", json={"session_id": "s3", "message": "Learn piano", "year": 2025})
    test_client.post("/chat", json={"session_id": "s3", "message": "Grade 3 by December", "year": 2025})

    messages, _ = ai.seen[1]
    assert [message["content"] for message in messages[1:]] == [
        "Learn piano",
        "Tell me more.",
        "Grade 3 by December",
    ]


def test_failed_turn_leaves_no_history(client) -> None:
    test_client, ai = client
    ai.responses.append(UpstreamError("AI call failed (503)", status_code=503))

    response = test_client.post("/chat", json={"session_id": "s4", "message": "Hello", "year": 2025})

    assert response.status_code == 502
    assert response.json()["upstream_status"] == 503
    assert test_client.get("/chat", params={"session_id": "s4"}).json() == []


def test_blank_message_rejected(client) -> None:
    test_client, ai = client

    response = test_client.post("/chat", json={"session_id": "s5", "message": "   ", "year": 2025})

    assert response.status_code == 400
    assert ai.seen == []
