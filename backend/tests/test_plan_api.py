from __future__ import annotations

import json
from datetime import date
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_ai_client, get_planning_clock, get_scope_locks, get_source_fetcher
from app.core.errors import ConfigurationError, UpstreamError
from app.db.deps import get_db
from app.db.models.goal import Goal
from app.db.models.monthly_plan import MonthlyPlan
from app.db.models.planner_settings import PlannerSettings
from app.db.models.task import Task
from app.main import app
from app.services.cascade_orchestrator import ScopeLockRegistry
from app.services.scope_calculator import PlanningClock

TODAY = date(2025, 6, 11)


class _ScriptedAI:
    def __init__(self):
        self.responses = []
        self.calls = 0

    def call_model(self, messages, *, json_mode=True):
        self.calls += 1
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _tasks_json(*titles):
    return json.dumps({"tasks": [{"title": title} for title in titles]})


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Goal.__table__.create(bind=engine)
    MonthlyPlan.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    PlannerSettings.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    ai = _ScriptedAI()
    locks = ScopeLockRegistry()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: ai
    app.dependency_overrides[get_planning_clock] = lambda: PlanningClock.for_date(TODAY)
    app.dependency_overrides[get_scope_locks] = lambda: locks
    app.dependency_overrides[get_source_fetcher] = lambda: None
    with TestClient(app) as test_client:
        yield test_client, ai, locks
    app.dependency_overrides.clear()


def _create_goal(test_client: TestClient, **overrides) -> dict:
    body = {"title": "Learn Spanish", "description": "Reach B1", "year": 2025, "multiplier": 4}
    body.update(overrides)
    response = test_client.post("/goals", json=body)
    assert response.status_code == 201
    return response.json()


def test_generate_day_plan(client) -> None:
    test_client, ai, _ = client
    _create_goal(test_client)
    ai.responses.append(_tasks_json("Podcast episode", "Flashcards"))

    response = test_client.post("/plan/generate", json={"scope": "day"})

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "done"
    assert data["scope"] == "day"
    assert data["planning_date"] == "2025-06-11"
    assert data["completed_stages"] == ["scoping_day"]
    assert data["created"] == {"scoping_day": 2}
    assert data["request_id"]

    tasks = test_client.get("/tasks", params={"scope": "day", "year": 2025, "month": 6, "day": 11}).json()
    assert [task["title"] for task in tasks] == ["Podcast episode", "Flashcards"]


def test_generate_full_plan_exposes_monthly_plans(client) -> None:
    test_client, ai, _ = client
    _create_goal(test_client)
    ai.responses.extend(
        [
            json.dumps({"months": [{"month": 6, "focus": "Foundations"}, {"month": 7, "focus": "Conversation"}]}),
            _tasks_json("Book tutor"),
            _tasks_json("Tutor session"),
            _tasks_json("Prepare questions"),
        ]
    )

    assert test_client.post("/plan/generate", json={"scope": "full"}).status_code == 200

    plans = test_client.get("/plans", params={"year": 2025}).json()
    assert [(plan["month"], plan["summary"]) for plan in plans] == [(6, "Foundations"), (7, "Conversation")]

    edited = test_client.patch(f"/plans/{plans[1]['id']}", json={"summary": "Travel prep"})
    assert edited.status_code == 200
    assert edited.json()["summary"] == "Travel prep"


def test_generate_without_goals_is_bad_request(client) -> None:
    test_client, ai, _ = client

    response = test_client.post("/plan/generate", json={"scope": "full"})

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
    assert ai.calls == 0


def test_generate_upstream_failure_reports_stage(client) -> None:
    test_client, ai, _ = client
    _create_goal(test_client)
    ai.responses.append(UpstreamError("AI call failed (500)", status_code=500, body="boom"))

    response = test_client.post("/plan/generate", json={"scope": "week"})

    assert response.status_code == 502
    data = response.json()
    assert data["state"] == "failed"
    assert data["failed_stage"] == "scoping_week"
    assert data["error"] == "AI call failed (500)"


def test_generate_without_credentials_is_unavailable(client) -> None:
    test_client, ai, _ = client
    _create_goal(test_client)
    ai.responses.append(ConfigurationError("AI_API_KEY (or OPENROUTER_API_KEY) is not configured"))

    response = test_client.post("/plan/generate", json={"scope": "day"})

    assert response.status_code == 503


def test_generate_malformed_output_is_bad_gateway(client) -> None:
    test_client, ai, _ = client
    _create_goal(test_client)
    ai.responses.append("I could not do that")

    response = test_client.post("/plan/generate", json={"scope": "day"})

    assert response.status_code == 502
    assert response.json()["failed_stage"] == "scoping_day"


def test_generate_conflicts_with_running_cascade(client) -> None:
    test_client, ai, locks = client
    _create_goal(test_client)

    with locks.hold(TODAY.isoformat()):
        response = test_client.post("/plan/generate", json={"scope": "day"})

    assert response.status_code == 409
    assert response.json()["error"] == "CascadeInProgressError"
    assert ai.calls == 0


def test_generate_rejects_unknown_scope(client) -> None:
    test_client, _, _ = client

    response = test_client.post("/plan/generate", json={"scope": "quarter"})

    assert response.status_code == 422


def test_patch_missing_plan_returns_404(client) -> None:
    test_client, _, _ = client

    response = test_client.patch(f"/plans/{uuid4()}", json={"summary": "x"})

    assert response.status_code == 404
