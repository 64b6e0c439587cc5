from __future__ import annotations

import json
from datetime import date

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.errors import UpstreamError
from app.db.models.goal import Goal
from app.db.models.monthly_plan import MonthlyPlan
from app.db.models.planner_settings import PlannerSettings
from app.db.models.task import Task
from app.services.cascade_orchestrator import CascadeScope, ScopeLockRegistry
from app.services.job_runner import run_scheduled_cascade, scope_for_day
from app.services.scope_calculator import PlanningClock

TASKS = json.dumps({"tasks": [{"title": "Morning review", "description": "Check the week list"}]})


class _ScriptedAI:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    def call_model(self, messages, *, json_mode=True):
        self.calls += 1
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Goal.__table__.create(bind=engine)
    MonthlyPlan.__table__.create(bind=engine)
    Task.__table__.create(bind=engine)
    PlannerSettings.__table__.create(bind=engine)
    return TestingSession


def _seed_goal(session_factory, year=2025):
    session = session_factory()
    try:
        session.add(Goal(title="Write a novel", description="80k words", year=year, multiplier=4.0))
        session.commit()
    finally:
        session.close()


def test_scope_for_day() -> None:
    # 1 June 2025 is a Sunday, and also the first of the month.
    assert scope_for_day(PlanningClock.for_date(date(2025, 6, 1)), weekly_weekday=0) == CascadeScope.FULL
    assert scope_for_day(PlanningClock.for_date(date(2025, 6, 8)), weekly_weekday=0) == CascadeScope.WEEK
    assert scope_for_day(PlanningClock.for_date(date(2025, 6, 9)), weekly_weekday=1) == CascadeScope.WEEK
    assert scope_for_day(PlanningClock.for_date(date(2025, 6, 11)), weekly_weekday=0) == CascadeScope.DAY


def test_scheduled_day_cascade_writes_tasks() -> None:
    session_factory = _session()
    _seed_goal(session_factory)
    ai = _ScriptedAI(TASKS)

    session = session_factory()
    try:
        result = run_scheduled_cascade(
            session,
            ai,
            PlanningClock.for_date(date(2025, 6, 11)),
            weekly_weekday=0,
        )
        stored = session.query(Task).filter(Task.scope == "day").all()
    finally:
        session.close()

    assert result.succeeded is True
    assert result.skipped is False
    assert result.scope == CascadeScope.DAY
    assert result.created == {"scoping_day": 1}
    assert [task.title for task in stored] == ["Morning review"]


def test_scheduled_cascade_skips_without_goals() -> None:
    session_factory = _session()
    _seed_goal(session_factory, year=2024)
    ai = _ScriptedAI()

    session = session_factory()
    try:
        result = run_scheduled_cascade(session, ai, PlanningClock.for_date(date(2025, 6, 11)), weekly_weekday=0)
    finally:
        session.close()

    assert result.skipped is True
    assert result.succeeded is False
    assert ai.calls == 0


def test_scheduled_cascade_skips_while_locked() -> None:
    session_factory = _session()
    _seed_goal(session_factory)
    locks = ScopeLockRegistry()
    ai = _ScriptedAI(TASKS)

    session = session_factory()
    try:
        with locks.hold("2025-06-11"):
            result = run_scheduled_cascade(
                session,
                ai,
                PlanningClock.for_date(date(2025, 6, 11)),
                weekly_weekday=0,
                locks=locks,
            )
    finally:
        session.close()

    assert result.skipped is True
    assert ai.calls == 0


def test_scheduled_cascade_reports_failed_stage() -> None:
    session_factory = _session()
    _seed_goal(session_factory)
    ai = _ScriptedAI(UpstreamError("AI backend unreachable"))

    session = session_factory()
    try:
        result = run_scheduled_cascade(session, ai, PlanningClock.for_date(date(2025, 6, 11)), weekly_weekday=0)
    finally:
        session.close()

    assert result.succeeded is False
    assert result.skipped is False
    assert result.failed_stage == "scoping_day"
    assert result.error == "AI backend unreachable"
