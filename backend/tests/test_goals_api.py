from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.deps import get_db
from app.db.models.goal import Goal
from app.db.models.monthly_plan import MonthlyPlan
from app.main import app


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

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def test_create_and_list_goals_by_year(client) -> None:
    test_client, _ = client
    created = test_client.post(
        "/goals",
        json={
            "title": "  Learn Spanish ",
            "description": "Reach B1",
            "year": 2025,
            "multiplier": 4.5,
            "frequency": "1/day",
            "category": "habit",
        },
    )
    test_client.post("/goals", json={"title": "Old goal", "year": 2024})

    assert created.status_code == 201
    body = created.json()
    assert body["title"] == "Learn Spanish"
    assert body["multiplier"] == 4.5
    assert body["category"] == "habit"

    listed = test_client.get("/goals", params={"year": 2025}).json()
    assert [goal["title"] for goal in listed] == ["Learn Spanish"]
    assert len(test_client.get("/goals").json()) == 2


def test_create_goal_defaults(client) -> None:
    test_client, _ = client

    body = test_client.post("/goals", json={"title": "Read more", "year": 2025}).json()

    assert body["multiplier"] == 1.0
    assert body["category"] == "growth"
    assert body["frequency"] is None
    assert body["description"] == ""


@pytest.mark.parametrize("multiplier", [0, 5.5])
def test_multiplier_outside_range_rejected(client, multiplier) -> None:
    test_client, _ = client

    response = test_client.post("/goals", json={"title": "Run", "year": 2025, "multiplier": multiplier})

    assert response.status_code == 422


def test_unknown_category_rejected(client) -> None:
    test_client, _ = client

    response = test_client.post("/goals", json={"title": "Run", "year": 2025, "category": "hobby"})

    assert response.status_code == 422


def test_partial_update(client) -> None:
    test_client, _ = client
    goal = test_client.post("/goals", json={"title": "Run", "year": 2025, "frequency": "3/week"}).json()

    response = test_client.patch(f"/goals/{goal['id']}", json={"multiplier": 3, "frequency": ""})

    assert response.status_code == 200
    body = response.json()
    assert body["multiplier"] == 3.0
    assert body["frequency"] is None
    assert body["title"] == "Run"


def test_delete_goal_removes_its_plans(client) -> None:
    test_client, session_factory = client
    goal = test_client.post("/goals", json={"title": "Run", "year": 2025}).json()
    session = session_factory()
    try:
        stored = session.get(Goal, UUID(goal["id"]))
        session.add(MonthlyPlan(goal_id=stored.id, year=2025, month=6, summary="Base mileage"))
        session.commit()
    finally:
        session.close()

    assert test_client.delete(f"/goals/{goal['id']}").status_code == 204
    assert test_client.get("/goals").json() == []

    session = session_factory()
    try:
        assert session.query(MonthlyPlan).count() == 0
    finally:
        session.close()


def test_missing_goal_returns_404(client) -> None:
    test_client, _ = client

    assert test_client.patch(f"/goals/{uuid4()}", json={"title": "x"}).status_code == 404
    assert test_client.delete(f"/goals/{uuid4()}").status_code == 404


@pytest.mark.parametrize("field", ["title", "multiplier", "category"])
def test_explicit_null_does_not_reset_goal(client, field) -> None:
    test_client, _ = client
    goal = test_client.post(
        "/goals",
        json={"title": "Run", "year": 2025, "multiplier": 4, "category": "habit"},
    ).json()

    response = test_client.patch(f"/goals/{goal['id']}", json={field: None})

    assert response.status_code == 422
    stored = test_client.get("/goals").json()[0]
    assert (stored["title"], stored["multiplier"], stored["category"]) == ("Run", 4.0, "habit")
