"""Unattended cascade runs for the scheduler worker."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app.core.errors import CascadeInProgressError, ValidationError
from app.services.ai_client import AIClient
from app.services.cascade_orchestrator import CascadeOrchestrator, CascadeScope, ScopeLockRegistry
from app.services.planner_store import PlannerStore
from app.services.scope_calculator import PlanningClock
from app.services.source_fetcher import SourceFetcher


logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    scope: CascadeScope
    succeeded: bool
    skipped: bool = False
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    created: Dict[str, int] = field(default_factory=dict)


def scope_for_day(clock: PlanningClock, weekly_weekday: int) -> CascadeScope:
    """Full cascade on the 1st, week cascade on the weekly weekday, day cascade otherwise."""
    if clock.day == 1:
        return CascadeScope.FULL
    if clock.day_of_week == weekly_weekday:
        return CascadeScope.WEEK
    return CascadeScope.DAY


def run_scheduled_cascade(
    db: Session,
    ai_client: AIClient,
    clock: PlanningClock,
    *,
    weekly_weekday: int,
    source_fetcher: Optional[SourceFetcher] = None,
    locks: Optional[ScopeLockRegistry] = None,
) -> JobRunResult:
    scope = scope_for_day(clock, weekly_weekday)
    orchestrator = CascadeOrchestrator(
        PlannerStore(db),
        ai_client,
        clock,
        source_fetcher=source_fetcher,
        locks=locks,
    )
    try:
        result = orchestrator.run_cascade(scope)
    except ValidationError as exc:
        logger.info("Skipping scheduled %s cascade: %s", scope.value, exc)
        return JobRunResult(scope=scope, succeeded=False, skipped=True, error=str(exc))
    except CascadeInProgressError as exc:
        logger.info("Skipping scheduled %s cascade: %s", scope.value, exc)
        return JobRunResult(scope=scope, succeeded=False, skipped=True, error=str(exc))

    return JobRunResult(
        scope=scope,
        succeeded=result.succeeded,
        failed_stage=result.failed_stage.value if result.failed_stage else None,
        error=str(result.error) if result.error else None,
        created=dict(result.created),
    )
