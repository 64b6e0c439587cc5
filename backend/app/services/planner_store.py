"""SQLAlchemy-backed stores for goals, tasks, monthly plans, settings and chat history."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.db.models.chat_message import ChatMessage
from app.db.models.goal import Goal
from app.db.models.monthly_plan import MonthlyPlan
from app.db.models.planner_settings import DEFAULT_WORKING_DAYS, SETTINGS_ROW_ID, PlannerSettings
from app.db.models.task import TASK_SCOPES, Task

logger = logging.getLogger(__name__)

# Coordinates each scope must carry; anything else is stored as NULL.
_REQUIRED_COORDINATES = {
    "month": ("month",),
    "week": ("month", "week"),
    "day": ("month", "day"),
}

_GOAL_FIELDS = ("title", "description", "year", "multiplier", "frequency", "category")
_TASK_FIELDS = ("title", "description", "completed")


@dataclass(frozen=True)
class ScopeCoordinates:
    """(year, month?, week?, day?) slice a task belongs to, normalized for its scope."""

    scope: str
    year: int
    month: Optional[int] = None
    week: Optional[int] = None
    day: Optional[int] = None

    @classmethod
    def build(
        cls,
        scope: str,
        year: int,
        month: Optional[int] = None,
        week: Optional[int] = None,
        day: Optional[int] = None,
    ) -> "ScopeCoordinates":
        if scope not in TASK_SCOPES:
            raise ValidationError(f"scope must be one of {', '.join(TASK_SCOPES)}, got {scope!r}")
        values = {"month": month, "week": week, "day": day}
        missing = [name for name in _REQUIRED_COORDINATES[scope] if values[name] is None]
        if missing:
            raise ValidationError(f"{scope} tasks require {', '.join(missing)}")
        relevant = _REQUIRED_COORDINATES[scope]
        return cls(
            scope=scope,
            year=year,
            month=month if "month" in relevant else None,
            week=week if "week" in relevant else None,
            day=day if "day" in relevant else None,
        )


class PlannerStore:
    """Query helpers over one request- or job-scoped session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # Goals -------------------------------------------------------------

    def list_goals(self, year: Optional[int] = None) -> List[Goal]:
        query = self.db.query(Goal)
        if year is not None:
            query = query.filter(Goal.year == year)
        return query.order_by(Goal.created_at.asc(), Goal.title.asc()).all()

    def get_goal(self, goal_id: UUID) -> Optional[Goal]:
        return self.db.get(Goal, goal_id)

    def create_goal(self, **fields: Any) -> Goal:
        goal = Goal(**{key: value for key, value in fields.items() if key in _GOAL_FIELDS})
        self.db.add(goal)
        self.db.flush()
        return goal

    def update_goal(self, goal: Goal, changes: Mapping[str, Any]) -> Goal:
        for key, value in changes.items():
            if key in _GOAL_FIELDS:
                setattr(goal, key, value)
        self.db.flush()
        return goal

    def delete_goal(self, goal: Goal) -> None:
        self.db.delete(goal)
        self.db.flush()

    # Tasks -------------------------------------------------------------

    def _scope_query(self, coords: ScopeCoordinates):
        query = self.db.query(Task).filter(Task.scope == coords.scope, Task.scope_year == coords.year)
        if coords.month is not None:
            query = query.filter(Task.scope_month == coords.month)
        if coords.week is not None:
            query = query.filter(Task.scope_week == coords.week)
        if coords.day is not None:
            query = query.filter(Task.scope_day == coords.day)
        return query

    def list_tasks(
        self,
        scope: str,
        year: int,
        month: Optional[int] = None,
        week: Optional[int] = None,
        day: Optional[int] = None,
    ) -> List[Task]:
        """Tasks for the given slice; omitted coordinates widen the match."""
        if scope not in TASK_SCOPES:
            raise ValidationError(f"scope must be one of {', '.join(TASK_SCOPES)}, got {scope!r}")
        coords = ScopeCoordinates(scope=scope, year=year, month=month, week=week, day=day)
        return self._scope_query(coords).order_by(Task.sort_order.asc(), Task.created_at.asc()).all()

    def delete_tasks(
        self,
        scope: str,
        year: int,
        month: Optional[int] = None,
        week: Optional[int] = None,
        day: Optional[int] = None,
    ) -> int:
        """Remove every task at exactly these coordinates."""
        coords = ScopeCoordinates.build(scope, year, month, week, day)
        deleted = self._scope_query(coords).delete(synchronize_session=False)
        self.db.flush()
        logger.debug("Deleted %d %s task(s) at %s", deleted, scope, coords)
        return deleted

    def _next_sort_order(self, coords: ScopeCoordinates) -> int:
        query = self.db.query(func.max(Task.sort_order)).filter(
            Task.scope == coords.scope,
            Task.scope_year == coords.year,
        )
        if coords.month is not None:
            query = query.filter(Task.scope_month == coords.month)
        if coords.week is not None:
            query = query.filter(Task.scope_week == coords.week)
        if coords.day is not None:
            query = query.filter(Task.scope_day == coords.day)
        current = query.scalar()
        return 0 if current is None else current + 1

    def create_task(
        self,
        *,
        title: str,
        scope: str,
        year: int,
        month: Optional[int] = None,
        week: Optional[int] = None,
        day: Optional[int] = None,
        description: Optional[str] = None,
        completed: bool = False,
    ) -> Task:
        """Append a task after the last one already stored at its coordinates."""
        if not title or not title.strip():
            raise ValidationError("task title must not be blank")
        coords = ScopeCoordinates.build(scope, year, month, week, day)
        task = Task(
            title=title.strip(),
            description=description,
            completed=completed,
            scope=coords.scope,
            scope_year=coords.year,
            scope_month=coords.month,
            scope_week=coords.week,
            scope_day=coords.day,
            sort_order=self._next_sort_order(coords),
        )
        self.db.add(task)
        # autoflush is off; the next sort-order lookup must see this row.
        self.db.flush()
        return task

    def get_task(self, task_id: UUID) -> Optional[Task]:
        return self.db.get(Task, task_id)

    def update_task(self, task: Task, changes: Mapping[str, Any]) -> Task:
        for key, value in changes.items():
            if key not in _TASK_FIELDS:
                continue
            if key == "title" and (value is None or not str(value).strip()):
                raise ValidationError("task title must not be blank")
            setattr(task, key, value.strip() if key == "title" else value)
        self.db.flush()
        return task

    def delete_task(self, task: Task) -> None:
        self.db.delete(task)
        self.db.flush()

    # Monthly plans -----------------------------------------------------

    def delete_plans(self, year: int, month: int, goal_ids: Iterable[UUID]) -> int:
        ids = list(goal_ids)
        if not ids:
            return 0
        deleted = (
            self.db.query(MonthlyPlan)
            .filter(
                MonthlyPlan.year == year,
                MonthlyPlan.month == month,
                MonthlyPlan.goal_id.in_(ids),
            )
            .delete(synchronize_session=False)
        )
        self.db.flush()
        return deleted

    def create_plan(self, goal_id: UUID, year: int, month: int, summary: str) -> MonthlyPlan:
        plan = MonthlyPlan(goal_id=goal_id, year=year, month=month, summary=summary)
        self.db.add(plan)
        self.db.flush()
        return plan

    def list_plans(self, year: int, month: Optional[int] = None) -> List[MonthlyPlan]:
        query = self.db.query(MonthlyPlan).filter(MonthlyPlan.year == year)
        if month is not None:
            query = query.filter(MonthlyPlan.month == month)
        return query.order_by(MonthlyPlan.month.asc(), MonthlyPlan.created_at.asc()).all()

    def get_plan(self, plan_id: UUID) -> Optional[MonthlyPlan]:
        return self.db.get(MonthlyPlan, plan_id)

    def monthly_focus(self, year: int, month: int) -> Optional[str]:
        plans = self.list_plans(year, month)
        return plans[0].summary if plans else None

    # Settings ----------------------------------------------------------

    def get_settings(self) -> PlannerSettings:
        """Return the singleton settings row, creating it with defaults on first read."""
        row = self.db.get(PlannerSettings, SETTINGS_ROW_ID)
        if row is None:
            row = PlannerSettings(
                id=SETTINGS_ROW_ID,
                working_days=list(DEFAULT_WORKING_DAYS),
                daily_schedule=None,
                dynamic_sources=[],
            )
            self.db.add(row)
            self.db.flush()
        return row

    def get_working_days(self) -> List[int]:
        row = self.get_settings()
        if row.working_days is None:
            return list(DEFAULT_WORKING_DAYS)
        return sorted({int(day) for day in row.working_days})

    def update_settings(self, changes: Mapping[str, Any]) -> PlannerSettings:
        row = self.get_settings()
        if "working_days" in changes:
            row.working_days = normalize_working_days(changes["working_days"])
        if "daily_schedule" in changes:
            schedule = changes["daily_schedule"]
            row.daily_schedule = schedule.strip() or None if isinstance(schedule, str) else None
        if "dynamic_sources" in changes:
            row.dynamic_sources = [dict(source) for source in (changes["dynamic_sources"] or [])]
        self.db.flush()
        return row

    # Chat history ------------------------------------------------------

    def list_chat_messages(self, session_id: str) -> List[ChatMessage]:
        return (
            self.db.query(ChatMessage)
            .filter(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc())
            .all()
        )

    def add_chat_message(self, session_id: str, role: str, content: str) -> ChatMessage:
        message = ChatMessage(session_id=session_id, role=role, content=content)
        self.db.add(message)
        self.db.flush()
        return message

    # Transactions ------------------------------------------------------

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


def normalize_working_days(days: Optional[Iterable[Any]]) -> List[int]:
    """Sorted, de-duplicated weekday indices; None means the Monday-Friday default."""
    if days is None:
        return list(DEFAULT_WORKING_DAYS)
    normalized: Dict[int, None] = {}
    for raw in days:
        try:
            day = int(raw)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"working day {raw!r} is not an integer") from exc
        if not 0 <= day <= 6:
            raise ValidationError(f"working day {day} must be between 0 (Sunday) and 6 (Saturday)")
        normalized[day] = None
    return sorted(normalized)
