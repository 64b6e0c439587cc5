"""Goal weighting: prompt formatting and task-count ranges per horizon."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

from app.db.models.goal import DEFAULT_GOAL_CATEGORY, MAX_MULTIPLIER, MIN_MULTIPLIER


class TaskCountRange(NamedTuple):
    low: int
    high: int


MONTHLY_SHORT_BASE = TaskCountRange(2, 4)
MONTHLY_BASE = TaskCountRange(4, 8)
WEEKDAY_BASE = TaskCountRange(3, 6)
# Rest and weekend days ignore goal weighting entirely.
WEEKEND_TASK_RANGE = TaskCountRange(2, 4)
REST_DAY_TASK_RANGE = TaskCountRange(1, 2)

MONTHLY_BOOST_FACTOR = 0.5
WEEKLY_BOOST_FACTOR = 0.3
DAILY_BOOST_FACTOR = 0.3
SHORT_MONTH_THRESHOLD_DAYS = 7
MIN_WEEKLY_BASE_DAYS = 2


@dataclass(frozen=True)
class WeightedGoal:
    title: str
    description: str = ""
    multiplier: float = MIN_MULTIPLIER
    frequency: Optional[str] = None
    category: str = DEFAULT_GOAL_CATEGORY

    @classmethod
    def from_model(cls, goal) -> "WeightedGoal":
        return cls(
            title=goal.title,
            description=goal.description or "",
            multiplier=float(goal.multiplier if goal.multiplier is not None else MIN_MULTIPLIER),
            frequency=goal.frequency or None,
            category=goal.category or DEFAULT_GOAL_CATEGORY,
        )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _priority_boost(avg_multiplier: float, factor: float) -> float:
    return max(0.0, (avg_multiplier - 1) * factor)


def average_multiplier(goals: Sequence[WeightedGoal]) -> float:
    """Mean priority multiplier; 1.0 when there are no goals."""
    if not goals:
        return 1.0
    mean = sum(goal.multiplier for goal in goals) / len(goals)
    return min(MAX_MULTIPLIER, max(MIN_MULTIPLIER, mean))


def _format_multiplier(value: float) -> str:
    return f"{value:g}"


def format_goals_for_prompt(goals: Sequence[WeightedGoal]) -> str:
    """Enumerate goals highest-priority first; ties keep their original order."""
    ordered = sorted(goals, key=lambda goal: -goal.multiplier)
    lines = []
    for index, goal in enumerate(ordered, start=1):
        line = f"{index}. {goal.title}: {goal.description}".rstrip()
        line += f" [priority: {_format_multiplier(goal.multiplier)}/5]"
        if goal.frequency:
            line += f" [target: {goal.frequency}]"
        if goal.category != DEFAULT_GOAL_CATEGORY:
            line += f" [type: {goal.category}]"
        lines.append(line)
    return "\n".join(lines)


def monthly_task_count(remaining_days: int, avg_multiplier: float) -> TaskCountRange:
    """4-8 tasks for a normal month, 2-4 when a week or less remains, shifted up by priority."""
    base = MONTHLY_SHORT_BASE if remaining_days <= SHORT_MONTH_THRESHOLD_DAYS else MONTHLY_BASE
    boost = _priority_boost(avg_multiplier, MONTHLY_BOOST_FACTOR)
    return TaskCountRange(
        _round_half_up(base.low + boost),
        _round_half_up(base.high + boost * 2),
    )


def weekly_task_count(remaining_days: int, avg_multiplier: float) -> TaskCountRange:
    """Roughly one to two tasks per remaining day, scaled by priority."""
    base = max(MIN_WEEKLY_BASE_DAYS, remaining_days)
    scale = 1 + _priority_boost(avg_multiplier, WEEKLY_BOOST_FACTOR)
    return TaskCountRange(
        _round_half_up(base * scale),
        _round_half_up(base * 2 * scale),
    )


def daily_task_count(is_weekend: bool, is_working_day: bool, avg_multiplier: float) -> TaskCountRange:
    if not is_working_day:
        return REST_DAY_TASK_RANGE
    if is_weekend:
        return WEEKEND_TASK_RANGE
    boost = _priority_boost(avg_multiplier, DAILY_BOOST_FACTOR)
    return TaskCountRange(
        _round_half_up(WEEKDAY_BASE.low + boost),
        _round_half_up(WEEKDAY_BASE.high + boost * 2),
    )
