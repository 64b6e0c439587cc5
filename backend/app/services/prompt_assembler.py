"""Prompt construction for each planning horizon.

Every builder returns a `[system, user]` conversation. Wording is free to
change; what each prompt must carry is fixed: the horizon's remaining time,
the weighted goal list, the task-count range and, where one exists, the
completion context from the previous period.
"""
from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from app.services.ai_client import Message, to_messages
from app.services.completion_context import CompletionContext
from app.services.goal_weighting import (
    WeightedGoal,
    average_multiplier,
    daily_task_count,
    format_goals_for_prompt,
    monthly_task_count,
    weekly_task_count,
)
from app.services.scope_calculator import MONTH_NAMES, SHORT_DAY_NAMES, PlanningClock, ordinal

TASKS_RESPONSE_FORMAT = 'Respond in JSON: {"tasks": [{"title": "...", "description": "..."}]}'
DAILY_RESPONSE_FORMAT = (
    'Respond in JSON: {"tasks": [{"title": "...", "description": "Detailed steps and what success looks like"}]}'
)

REST_DAY_FRAMING = "This is a REST DAY. Only include light personal tasks or habit check-ins, no heavy work."
WEEKEND_FRAMING = "It's the weekend. Keep a lighter load and focus on personal goals or catch-up."
WEEKDAY_FRAMING = "Weekday. Full productivity mode."

GOAL_CHAT_SYSTEM_PROMPT = """You are a friendly goal-setting coach helping the user define their goals for {year}.

How to run the conversation:
- Ask one or two short questions at a time about what they want to achieve this year.
- For each goal, pin down a clear title and a one-sentence description of what success looks like.
- Ask how important each goal is on a 1-5 scale (5 = top priority).
- For recurring habits, ask for a frequency target such as "1/day" or "3/week".
- Classify each goal as "growth" (open-ended improvement), "habit" (recurring activity) or "milestone" (a one-off achievement with a target date).
- Suggest 3-6 goals in total; push back gently on overloaded plans.

When the user confirms the list is final, reply with a short closing sentence followed by exactly one JSON object:
{{"goals_complete": true, "goals": [{{"title": "...", "description": "...", "multiplier": 1-5, "frequency": "3/week" or null, "category": "growth" | "habit" | "milestone"}}]}}
Never emit that JSON object before the user has confirmed."""


def _checklist(tasks: Iterable) -> str:
    lines = [f"- [{'x' if task.completed else ' '}] {task.title}" for task in tasks]
    return "\n".join(lines) if lines else "(none yet)"


def _goals_block(goals: Sequence[WeightedGoal]) -> str:
    return format_goals_for_prompt(goals) or "(no goals)"


def _working_day_names(working_days: Iterable[int]) -> str:
    names = [SHORT_DAY_NAMES[day] for day in sorted(set(working_days)) if 0 <= day <= 6]
    return ", ".join(names) if names else "none"


def build_yearly_prompt(goals: Sequence[WeightedGoal], clock: PlanningClock) -> List[Message]:
    """Ask for one focus per remaining month; months already passed are excluded."""
    current = clock.month
    remaining = ", ".join(f"{MONTH_NAMES[number - 1]} (month {number})" for number in range(current, 13))
    if current > 1:
        past_note = (
            f"Months already passed: {', '.join(MONTH_NAMES[: current - 1])}. "
            "Do NOT include these and never re-plan past months."
        )
    else:
        past_note = "This is the start of the year."

    system = f"""You are a strategic life planner. Create a HIGH-LEVEL plan for the REMAINING months of the year only.

Rules:
- ONLY plan for these remaining months: {remaining}
- {past_note}
- Each month needs a brief focus area (1-2 sentences max)
- Think about natural progression and dependencies
- The current month ({clock.month_name}) should start immediately actionable
- Later months build on earlier progress
- Be realistic about time
- Goals with higher priority weights should get proportionally more attention
- Habit-type goals should appear consistently across months
- Milestone-type goals should have clear target months

Respond in JSON: {{"months": [{{"month": <1-12>, "focus": "..."}}]}}
Only include months from {current} to 12."""

    user = (
        f"Year: {clock.year}, Current month: {clock.month_name}\n\n"
        f"Goals (highest priority first):\n{_goals_block(goals)}\n\n"
        "Create a high-level monthly focus plan for the remaining months."
    )
    return to_messages(system, user)


def build_monthly_prompt(goals: Sequence[WeightedGoal], month_focus: str, clock: PlanningClock) -> List[Message]:
    remaining_days = clock.remaining_days_in_month
    task_range = monthly_task_count(remaining_days, average_multiplier(goals))

    system = f"""You are a task planner. Generate high-level monthly tasks based on the focus area and goals.

Rules:
- There are {remaining_days} days remaining in this month
- Generate {task_range.low}-{task_range.high} high-level tasks scaled to the remaining time
- If only a few days remain, keep it to {task_range.low} achievable tasks
- Tasks should be concrete but not overly detailed
- Allocate MORE tasks to goals with higher priority weights, in proportion to their priority
- For goals with frequency targets (e.g. "5/day"), include recurring tasks that establish the habit
- Mix tasks from different goals if the focus area covers multiple
- Tasks should build on each other logically

{TASKS_RESPONSE_FORMAT}"""

    user = (
        f"Month: {clock.month_name} {clock.year} ({remaining_days} days remaining)\n"
        f"Focus: {month_focus}\n\n"
        f"Goals (highest priority first):\n{_goals_block(goals)}\n\n"
        "Generate tasks for the remaining time this month."
    )
    return to_messages(system, user)


def _weekly_adjustment_note(previous_week: Optional[CompletionContext]) -> str:
    if previous_week is None:
        return ""
    if previous_week.incomplete:
        return (
            f"\n\nLast week's completion rate: {previous_week.completion_percent}%.\n"
            f"Incomplete from last week: {', '.join(previous_week.incomplete)}.\n"
            "Carry these over FIRST, at the start of the week, then adjust the rest of the load."
        )
    return "\n\nLast week: 100% completion. Keep the same pace and consider one stretch task."


def build_weekly_prompt(
    goals: Sequence[WeightedGoal],
    month_tasks: Sequence,
    clock: PlanningClock,
    working_days: Sequence[int],
    previous_week: Optional[CompletionContext],
    external_context: str = "",
) -> List[Message]:
    """Plan only the weekday names still ahead of us this week."""
    day_names = clock.remaining_weekday_names
    days_str = ", ".join(day_names)
    task_range = weekly_task_count(len(day_names), average_multiplier(goals))

    system = f"""You are a weekly task planner. Break monthly tasks into work for the remaining days of this week.

Rules:
- This week only has these days remaining: {days_str} ({len(day_names)} days). Never plan for days already passed.
- Working days are: {_working_day_names(working_days)}. Only assign significant tasks on working days.
- Non-working days should only have light personal/habit tasks if any.
- Generate {task_range.low}-{task_range.high} tasks total
- Slightly overestimate: add ~20% buffer for unexpected delays
- If the previous week had incomplete tasks, front-load those carried-over tasks before anything new
- This is week {clock.week_of_month} of {clock.total_weeks_in_month} in the month
- Tasks should be specific enough to act on
- Allocate more tasks to higher-priority goals

{TASKS_RESPONSE_FORMAT}"""

    user = (
        f"Week {clock.week_of_month} of {clock.total_weeks_in_month}, {clock.month_name} {clock.year}\n"
        f"Remaining days: {days_str}\n\n"
        f"Goals (highest priority first):\n{_goals_block(goals)}\n\n"
        f"Monthly tasks:\n{_checklist(month_tasks)}"
        f"{_weekly_adjustment_note(previous_week)}"
    )
    if external_context:
        user += f"\n\nExternal context provided by the user:\n{external_context}"
    user += "\n\nGenerate tasks for the remaining days of this week."
    return to_messages(system, user)


def _daily_adjustment_note(previous_day: Optional[CompletionContext]) -> str:
    if previous_day is None:
        return ""
    if previous_day.incomplete:
        return (
            f"\n\nYesterday's completion rate: {previous_day.completion_percent}%.\n"
            f"Incomplete from yesterday: {', '.join(previous_day.incomplete)}.\n"
            "Redistribute incomplete work into today. If the rate was low, reduce the load to stay realistic."
        )
    return "\n\nYesterday: 100% completion! Keep the momentum; you can add a stretch task."


def build_daily_prompt(
    goals: Sequence[WeightedGoal],
    week_tasks: Sequence,
    clock: PlanningClock,
    working_days: Sequence[int],
    previous_day: Optional[CompletionContext],
    daily_schedule: Optional[str] = None,
    external_context: str = "",
) -> List[Message]:
    is_working_day = clock.is_working_day(working_days)
    task_range = daily_task_count(clock.is_weekend, is_working_day, average_multiplier(goals))
    if not is_working_day:
        framing = REST_DAY_FRAMING
    elif clock.is_weekend:
        framing = WEEKEND_FRAMING
    else:
        framing = WEEKDAY_FRAMING

    system = f"""You are a detailed daily task planner. Create a DETAILED task list for today.

Rules:
- Today is {clock.day_name}, the {ordinal(clock.day)}
- There are {clock.remaining_days_in_week} days left in the week (including today)
- {framing}
- Generate {task_range.low}-{task_range.high} DETAILED tasks, each with a clear, actionable description
- Every description must explain exactly what to do and what done looks like; never just repeat the title
- Overestimate slightly: plan for ~110% of realistic capacity
- If the previous day had incomplete tasks, redistribute them
- Order tasks by priority (most important first)
- Each task should be completable in 1-3 hours
- For goals with frequency targets, include those as discrete tasks (e.g. "Practice piano - session 3 of 5")

{DAILY_RESPONSE_FORMAT}"""

    user = (
        f"Day: {clock.day_name}, the {ordinal(clock.day)} "
        f"({clock.remaining_days_in_week} days left this week)\n\n"
        f"Goals (highest priority first):\n{_goals_block(goals)}\n\n"
        f"Weekly tasks:\n{_checklist(week_tasks)}"
        f"{_daily_adjustment_note(previous_day)}"
    )
    if daily_schedule and daily_schedule.strip():
        user += f"\n\nThe user's usual daily routine (plan around it):\n{daily_schedule.strip()}"
    if external_context:
        user += f"\n\nExternal context provided by the user:\n{external_context}"
    user += "\n\nGenerate today's detailed task list."
    return to_messages(system, user)


def build_goal_chat_messages(history: Sequence[Mapping[str, str]], year: int) -> List[Message]:
    """System directive for goal setting followed by the stored conversation."""
    messages: List[Message] = [{"role": "system", "content": GOAL_CHAT_SYSTEM_PROMPT.format(year=year)}]
    for entry in history:
        role = entry.get("role")
        if role not in ("user", "assistant"):
            continue
        messages.append({"role": role, "content": entry.get("content", "")})
    return messages
