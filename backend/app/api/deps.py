"""Process-wide collaborators injected into the planner routes."""
from __future__ import annotations

from functools import lru_cache

from app.core.config import get_settings
from app.services.ai_client import AIClient
from app.services.cascade_orchestrator import ScopeLockRegistry
from app.services.scope_calculator import PlanningClock
from app.services.source_fetcher import SourceFetcher


@lru_cache()
def get_ai_client() -> AIClient:
    return AIClient.from_settings(get_settings())


@lru_cache()
def get_source_fetcher() -> SourceFetcher:
    return SourceFetcher.from_settings(get_settings())


@lru_cache()
def get_scope_locks() -> ScopeLockRegistry:
    return ScopeLockRegistry()


def get_planning_clock() -> PlanningClock:
    """Read "today" once per request in the configured planner timezone."""
    return PlanningClock.now(get_settings().planner_timezone)
