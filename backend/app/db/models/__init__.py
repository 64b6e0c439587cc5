"""ORM models exposed for metadata discovery."""
from app.db.models.chat_message import ChatMessage
from app.db.models.goal import Goal
from app.db.models.monthly_plan import MonthlyPlan
from app.db.models.planner_settings import PlannerSettings
from app.db.models.task import Task

__all__ = [
    "ChatMessage",
    "Goal",
    "MonthlyPlan",
    "PlannerSettings",
    "Task",
]
