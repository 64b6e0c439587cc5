"""Cascade generation and monthly plan routes."""
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.deps import get_ai_client, get_planning_clock, get_scope_locks, get_source_fetcher
from app.api.errors import status_for_error
from app.api.schemas.plan import (
    CascadeRequest,
    CascadeResponse,
    MonthlyPlanSummary,
    MonthlyPlanUpdateRequest,
)
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.ai_client import AIClient
from app.services.cascade_orchestrator import CascadeOrchestrator, CascadeResult, ScopeLockRegistry
from app.services.planner_store import PlannerStore
from app.services.scope_calculator import PlanningClock
from app.services.source_fetcher import SourceFetcher

router = APIRouter()


def _serialize_result(result: CascadeResult, request_id: str | None) -> CascadeResponse:
    return CascadeResponse(
        cascade_id=result.cascade_id,
        scope=result.scope.value,
        planning_date=result.planning_date,
        state=result.state.value,
        completed_stages=[stage.value for stage in result.completed_stages],
        failed_stage=result.failed_stage.value if result.failed_stage else None,
        error=str(result.error) if result.error else None,
        created=result.created,
        request_id=request_id,
    )


@router.post("/plan/generate", response_model=CascadeResponse, tags=["plans"])
def generate_plan(
    payload: CascadeRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    ai_client: AIClient = Depends(get_ai_client),
    clock: PlanningClock = Depends(get_planning_clock),
    source_fetcher: SourceFetcher = Depends(get_source_fetcher),
    locks: ScopeLockRegistry = Depends(get_scope_locks),
):
    """Run a full, week or day cascade for today."""
    request_id = getattr(http_request.state, "request_id", None)
    orchestrator = CascadeOrchestrator(
        PlannerStore(db),
        ai_client,
        clock,
        source_fetcher=source_fetcher,
        locks=locks,
    )

    with trace(
        "plan.generate",
        metadata={"route": "/plan/generate", "scope": payload.scope, "planning_date": clock.today.isoformat()},
        request_id=request_id,
    ):
        result = orchestrator.run_cascade(payload.scope)

    body = _serialize_result(result, request_id)
    if result.error is not None:
        log_metric("plan.generate.failure", 1, metadata={"scope": payload.scope, "stage": body.failed_stage})
        return JSONResponse(status_code=status_for_error(result.error), content=body.model_dump(mode="json"))

    log_metric("plan.generate.success", 1, metadata={"scope": payload.scope})
    return body


@router.get("/plans", response_model=List[MonthlyPlanSummary], tags=["plans"])
def list_plans(
    year: int = Query(..., ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> List[MonthlyPlanSummary]:
    plans = PlannerStore(db).list_plans(year, month)
    return [MonthlyPlanSummary.model_validate(plan) for plan in plans]


@router.patch("/plans/{plan_id}", response_model=MonthlyPlanSummary, tags=["plans"])
def update_plan(
    plan_id: UUID,
    payload: MonthlyPlanUpdateRequest,
    db: Session = Depends(get_db),
) -> MonthlyPlanSummary:
    store = PlannerStore(db)
    plan = store.get_plan(plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    plan.summary = payload.summary.strip()
    store.commit()
    db.refresh(plan)
    return MonthlyPlanSummary.model_validate(plan)
