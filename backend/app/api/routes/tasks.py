"""Task listing and editing routes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.api.schemas.task import TaskCreateRequest, TaskScope, TaskSummary, TaskUpdateRequest
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.planner_store import PlannerStore

router = APIRouter()


@router.get("/tasks", response_model=List[TaskSummary], tags=["tasks"])
def list_tasks(
    http_request: Request,
    scope: TaskScope = Query(...),
    year: int = Query(...),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    week: Optional[int] = Query(default=None, ge=1, le=6),
    day: Optional[int] = Query(default=None, ge=1, le=31),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    """List tasks for a scope; omitted coordinates widen the match."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "scope": scope,
        "year": year,
        "month": month,
        "week": week,
        "day": day,
    }
    with trace("task.list", metadata=metadata, request_id=request_id):
        tasks = PlannerStore(db).list_tasks(scope, year, month=month, week=week, day=day)

    log_metric("task.list.count", len(tasks), metadata={"scope": scope})
    return [TaskSummary.model_validate(task) for task in tasks]


@router.post("/tasks", response_model=TaskSummary, status_code=status.HTTP_201_CREATED, tags=["tasks"])
def create_task(payload: TaskCreateRequest, db: Session = Depends(get_db)) -> TaskSummary:
    """Manually add a task after the existing ones at its coordinates."""
    store = PlannerStore(db)
    task = store.create_task(
        title=payload.title,
        description=payload.description,
        scope=payload.scope,
        year=payload.year,
        month=payload.month,
        week=payload.week,
        day=payload.day,
    )
    store.commit()
    db.refresh(task)
    log_metric("task.create.success", 1, metadata={"scope": payload.scope})
    return TaskSummary.model_validate(task)


def _get_task_or_404(store: PlannerStore, task_id: UUID):
    task = store.get_task(task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


@router.patch("/tasks/{task_id}", response_model=TaskSummary, tags=["tasks"])
def update_task(
    task_id: UUID,
    payload: TaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskSummary:
    """Toggle completion or edit a task's text."""
    request_id = getattr(http_request.state, "request_id", None)
    store = PlannerStore(db)
    task = _get_task_or_404(store, task_id)
    changes = payload.model_dump(exclude_unset=True)
    if "completed" in changes and changes["completed"] is None:
        changes.pop("completed")

    with trace("task.update", metadata={"route": f"/tasks/{task_id}", **changes}, request_id=request_id):
        store.update_task(task, changes)
        store.commit()
        db.refresh(task)

    if "completed" in changes:
        log_metric("task.completion_toggled", 1, metadata={"scope": task.scope, "completed": task.completed})
    return TaskSummary.model_validate(task)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["tasks"])
def delete_task(task_id: UUID, db: Session = Depends(get_db)) -> Response:
    store = PlannerStore(db)
    task = _get_task_or_404(store, task_id)
    store.delete_task(task)
    store.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
