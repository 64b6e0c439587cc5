"""Planner settings routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.schemas.settings import PlannerSettingsResponse, PlannerSettingsUpdateRequest
from app.db.deps import get_db
from app.services.planner_store import PlannerStore

router = APIRouter()


def _serialize(store: PlannerStore) -> PlannerSettingsResponse:
    row = store.get_settings()
    return PlannerSettingsResponse(
        working_days=store.get_working_days(),
        daily_schedule=row.daily_schedule,
        dynamic_sources=row.dynamic_sources or [],
    )


@router.get("/settings", response_model=PlannerSettingsResponse, tags=["settings"])
def get_planner_settings(db: Session = Depends(get_db)) -> PlannerSettingsResponse:
    store = PlannerStore(db)
    response = _serialize(store)
    store.commit()
    return response


@router.patch("/settings", response_model=PlannerSettingsResponse, tags=["settings"])
def update_planner_settings(
    payload: PlannerSettingsUpdateRequest,
    db: Session = Depends(get_db),
) -> PlannerSettingsResponse:
    store = PlannerStore(db)
    changes = payload.model_dump(exclude_unset=True)
    store.update_settings(changes)
    store.commit()
    return _serialize(store)
