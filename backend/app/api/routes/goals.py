"""Goal CRUD routes."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from app.api.schemas.goal import GoalCreateRequest, GoalSummary, GoalUpdateRequest
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.planner_store import PlannerStore

router = APIRouter()


@router.get("/goals", response_model=List[GoalSummary], tags=["goals"])
def list_goals(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    db: Session = Depends(get_db),
) -> List[GoalSummary]:
    goals = PlannerStore(db).list_goals(year)
    return [GoalSummary.model_validate(goal) for goal in goals]


@router.post("/goals", response_model=GoalSummary, status_code=status.HTTP_201_CREATED, tags=["goals"])
def create_goal(
    payload: GoalCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> GoalSummary:
    request_id = getattr(http_request.state, "request_id", None)
    store = PlannerStore(db)
    with trace("goal.create", metadata={"route": "/goals", "year": payload.year}, request_id=request_id):
        goal = store.create_goal(
            title=payload.title.strip(),
            description=payload.description.strip(),
            year=payload.year,
            multiplier=payload.multiplier,
            frequency=(payload.frequency or "").strip() or None,
            category=payload.category,
        )
        store.commit()
        db.refresh(goal)

    log_metric("goal.create.success", 1, metadata={"category": goal.category})
    return GoalSummary.model_validate(goal)


def _get_goal_or_404(store: PlannerStore, goal_id: UUID):
    goal = store.get_goal(goal_id)
    if not goal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return goal


@router.patch("/goals/{goal_id}", response_model=GoalSummary, tags=["goals"])
def update_goal(
    goal_id: UUID,
    payload: GoalUpdateRequest,
    db: Session = Depends(get_db),
) -> GoalSummary:
    store = PlannerStore(db)
    goal = _get_goal_or_404(store, goal_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("title", "multiplier", "category"):
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"{field} cannot be null")
    if "description" in changes:
        changes["description"] = (changes["description"] or "").strip()
    if "frequency" in changes:
        changes["frequency"] = (changes["frequency"] or "").strip() or None
    store.update_goal(goal, changes)
    store.commit()
    db.refresh(goal)
    return GoalSummary.model_validate(goal)


@router.delete("/goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["goals"])
def delete_goal(goal_id: UUID, db: Session = Depends(get_db)) -> Response:
    store = PlannerStore(db)
    goal = _get_goal_or_404(store, goal_id)
    store.delete_goal(goal)
    store.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
