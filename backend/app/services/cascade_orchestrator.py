"""Run the year -> month -> week -> day generation cascade."""
from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterator, List, Optional, Sequence, Set, Type, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel

from app.core.context import bind_cascade_id
from app.core.errors import CascadeInProgressError, PlannerError, ValidationError
from app.observability.metrics import log_metric, timed
from app.observability.tracing import trace
from app.services.ai_client import AIClient, Message
from app.services.completion_context import CompletionContext, build_completion_context
from app.services.goal_weighting import WeightedGoal
from app.services.planner_store import PlannerStore
from app.services.prompt_assembler import (
    build_daily_prompt,
    build_monthly_prompt,
    build_weekly_prompt,
    build_yearly_prompt,
)
from app.services.response_parser import MonthFocus, TaskBatch, TaskItem, YearlyPlan, parse_structured
from app.services.scope_calculator import PlanningClock
from app.services.source_fetcher import SourceFetcher, parse_sources

logger = logging.getLogger(__name__)

DEFAULT_MONTH_FOCUS = "Focus on your goals"

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class CascadeScope(str, enum.Enum):
    FULL = "full"
    WEEK = "week"
    DAY = "day"


class CascadeState(str, enum.Enum):
    IDLE = "idle"
    SCOPING_YEAR = "scoping_year"
    SCOPING_MONTH = "scoping_month"
    SCOPING_WEEK = "scoping_week"
    SCOPING_DAY = "scoping_day"
    DONE = "done"
    FAILED = "failed"


STAGES_BY_SCOPE: Dict[CascadeScope, Sequence[CascadeState]] = {
    CascadeScope.FULL: (
        CascadeState.SCOPING_YEAR,
        CascadeState.SCOPING_MONTH,
        CascadeState.SCOPING_WEEK,
        CascadeState.SCOPING_DAY,
    ),
    CascadeScope.WEEK: (CascadeState.SCOPING_WEEK, CascadeState.SCOPING_DAY),
    CascadeScope.DAY: (CascadeState.SCOPING_DAY,),
}


@dataclass
class CascadeResult:
    cascade_id: str
    scope: CascadeScope
    planning_date: date
    state: CascadeState = CascadeState.IDLE
    completed_stages: List[CascadeState] = field(default_factory=list)
    failed_stage: Optional[CascadeState] = None
    error: Optional[PlannerError] = None
    created: Dict[str, int] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.state == CascadeState.DONE


@dataclass
class _PlanningInputs:
    goals: List[WeightedGoal]
    goal_ids: List[UUID]
    working_days: List[int]
    daily_schedule: Optional[str]
    external_context: str = ""


class ScopeLockRegistry:
    """Process-local, non-blocking mutual exclusion keyed by planning date."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._held: Set[str] = set()

    def is_held(self, key: str) -> bool:
        with self._guard:
            return key in self._held

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            if key in self._held:
                raise CascadeInProgressError(f"A cascade for {key} is already running")
            self._held.add(key)
        try:
            yield
        finally:
            with self._guard:
                self._held.discard(key)


def parse_scope(value: CascadeScope | str) -> CascadeScope:
    try:
        return CascadeScope(value)
    except ValueError as exc:
        allowed = ", ".join(scope.value for scope in CascadeScope)
        raise ValidationError(f"scope must be one of {allowed}, got {value!r}") from exc


class CascadeOrchestrator:
    """Sequences the four planning stages against one store, model and clock.

    `clock` is fixed for the lifetime of the orchestrator so every stage agrees
    on "today". Stages commit as they finish; a failing stage is rolled back
    and ends the run, leaving earlier stages in place.
    """

    def __init__(
        self,
        store: PlannerStore,
        ai_client: AIClient,
        clock: PlanningClock,
        source_fetcher: Optional[SourceFetcher] = None,
        locks: Optional[ScopeLockRegistry] = None,
    ) -> None:
        self.store = store
        self.ai_client = ai_client
        self.clock = clock
        self.source_fetcher = source_fetcher
        self.locks = locks or ScopeLockRegistry()

    def run_cascade(self, scope: CascadeScope | str) -> CascadeResult:
        """Run the stages for `scope`.

        Raises ValidationError when there is nothing to plan and
        CascadeInProgressError when the same date is already being planned;
        neither touches the model. Stage failures are reported on the result.
        """
        scope = parse_scope(scope)
        cascade_id = uuid4().hex
        result = CascadeResult(cascade_id=cascade_id, scope=scope, planning_date=self.clock.today)

        with bind_cascade_id(cascade_id), self.locks.hold(self.clock.today.isoformat()):
            goals = self.store.list_goals(self.clock.year)
            if not goals:
                raise ValidationError(f"No goals set for {self.clock.year}")
            inputs = self._gather_inputs(goals)

            logger.info(
                "Cascade %s started for %s (goals=%d, working_days=%s)",
                scope.value,
                self.clock.today.isoformat(),
                len(goals),
                inputs.working_days,
            )
            metadata = {"scope": scope.value, "planning_date": self.clock.today.isoformat(), "goals": len(goals)}
            with trace("cascade.run", metadata=metadata), timed("cascade.run", {"scope": scope.value}):
                self._run_stages(scope, inputs, result)

        log_metric(
            "cascade.run.success" if result.succeeded else "cascade.run.failure",
            1,
            {"scope": scope.value, "failed_stage": result.failed_stage.value if result.failed_stage else None},
        )
        return result

    def _gather_inputs(self, goals) -> _PlanningInputs:
        row = self.store.get_settings()
        inputs = _PlanningInputs(
            goals=[WeightedGoal.from_model(goal) for goal in goals],
            goal_ids=[goal.id for goal in goals],
            working_days=self.store.get_working_days(),
            daily_schedule=row.daily_schedule,
        )
        sources, skipped = parse_sources(row.dynamic_sources)
        if skipped:
            logger.warning("Ignoring %d configured source(s) without a usable URL", skipped)
        if sources and self.source_fetcher is not None:
            inputs.external_context = self.source_fetcher.build_context(sources)
        # Settings row may have just been created.
        self.store.commit()
        return inputs

    def _run_stages(self, scope: CascadeScope, inputs: _PlanningInputs, result: CascadeResult) -> None:
        month_focus: Optional[str] = None
        for stage in STAGES_BY_SCOPE[scope]:
            result.state = stage
            try:
                with trace(f"cascade.{stage.value}"), timed(f"cascade.{stage.value}"):
                    if stage == CascadeState.SCOPING_YEAR:
                        month_focus, created = self._yearly_stage(inputs)
                    elif stage == CascadeState.SCOPING_MONTH:
                        created = self._monthly_stage(inputs, month_focus)
                    elif stage == CascadeState.SCOPING_WEEK:
                        created = self._weekly_stage(inputs)
                    else:
                        created = self._daily_stage(inputs)
                self.store.commit()
            except PlannerError as exc:
                self.store.rollback()
                result.failed_stage = stage
                result.error = exc
                result.state = CascadeState.FAILED
                logger.warning("Cascade %s stopped at %s: %s", scope.value, stage.value, exc)
                return
            except Exception:
                self.store.rollback()
                logger.exception("Cascade %s crashed at %s", scope.value, stage.value)
                raise

            result.created[stage.value] = created
            result.completed_stages.append(stage)
            log_metric("cascade.stage.created", created, {"stage": stage.value})
            logger.info("Stage %s complete (%d record(s))", stage.value, created)

        result.state = CascadeState.DONE

    def _generate(self, messages: List[Message], schema: Type[SchemaT]) -> SchemaT:
        raw = self.ai_client.call_model(messages, json_mode=True)
        return parse_structured(raw, schema)

    def _keep_remaining_months(self, months: Sequence[MonthFocus]) -> List[MonthFocus]:
        kept: List[MonthFocus] = []
        seen: Set[int] = set()
        for item in months:
            if item.month < self.clock.month:
                logger.info("Dropping past month %d from yearly plan", item.month)
                continue
            if item.month in seen:
                logger.info("Dropping duplicate month %d from yearly plan", item.month)
                continue
            seen.add(item.month)
            kept.append(item)
        return kept

    def _yearly_stage(self, inputs: _PlanningInputs) -> tuple[str, int]:
        plan = self._generate(build_yearly_prompt(inputs.goals, self.clock), YearlyPlan)
        months = self._keep_remaining_months(plan.months)

        for item in months:
            self.store.delete_plans(self.clock.year, item.month, inputs.goal_ids)
            self.store.create_plan(inputs.goal_ids[0], self.clock.year, item.month, item.focus)

        current = next((item.focus for item in months if item.month == self.clock.month), None)
        return current or DEFAULT_MONTH_FOCUS, len(months)

    def _monthly_stage(self, inputs: _PlanningInputs, month_focus: Optional[str]) -> int:
        focus = month_focus or self.store.monthly_focus(self.clock.year, self.clock.month) or DEFAULT_MONTH_FOCUS
        batch = self._generate(build_monthly_prompt(inputs.goals, focus, self.clock), TaskBatch)

        self.store.delete_tasks("month", self.clock.year, self.clock.month)
        return self._persist(batch.tasks, "month", month=self.clock.month)

    def _weekly_stage(self, inputs: _PlanningInputs) -> int:
        clock = self.clock
        month_tasks = self.store.list_tasks("month", clock.year, clock.month)
        if not month_tasks:
            logger.warning("No month tasks for %d-%02d; planning the week without them", clock.year, clock.month)

        previous_week: Optional[CompletionContext] = None
        if clock.week_of_month > 1:
            previous_week = build_completion_context(
                self.store.list_tasks("week", clock.year, clock.month, week=clock.week_of_month - 1)
            )

        messages = build_weekly_prompt(
            inputs.goals,
            month_tasks,
            clock,
            inputs.working_days,
            previous_week,
            external_context=inputs.external_context,
        )
        batch = self._generate(messages, TaskBatch)

        self.store.delete_tasks("week", clock.year, clock.month, week=clock.week_of_month)
        return self._persist(batch.tasks, "week", month=clock.month, week=clock.week_of_month)

    def _daily_stage(self, inputs: _PlanningInputs) -> int:
        clock = self.clock
        week_tasks = self.store.list_tasks("week", clock.year, clock.month, week=clock.week_of_month)
        if not week_tasks:
            logger.warning("No week tasks for week %d; planning the day without them", clock.week_of_month)

        yesterday = clock.yesterday
        previous_day = build_completion_context(
            self.store.list_tasks("day", yesterday.year, yesterday.month, day=yesterday.day)
        )

        messages = build_daily_prompt(
            inputs.goals,
            week_tasks,
            clock,
            inputs.working_days,
            previous_day,
            daily_schedule=inputs.daily_schedule,
            external_context=inputs.external_context,
        )
        batch = self._generate(messages, TaskBatch)

        self.store.delete_tasks("day", clock.year, clock.month, day=clock.day)
        return self._persist(batch.tasks, "day", month=clock.month, day=clock.day)

    def _persist(
        self,
        items: Sequence[TaskItem],
        scope: str,
        *,
        month: Optional[int] = None,
        week: Optional[int] = None,
        day: Optional[int] = None,
    ) -> int:
        if not items:
            logger.warning("Model returned no %s tasks", scope)
        for item in items:
            self.store.create_task(
                title=item.title,
                description=item.description,
                scope=scope,
                year=self.clock.year,
                month=month,
                week=week,
                day=day,
            )
        return len(items)
