"""Calendar arithmetic for the planning horizons.

Weeks are Sunday-aligned and weekday indices run 0=Sunday..6=Saturday, the
same convention the working-days setting uses. Nothing here touches the
system clock except `PlanningClock.now`, which is called once per cascade.
"""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List
from zoneinfo import ZoneInfo

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
SHORT_DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

WEEKEND_DAYS = frozenset({0, 6})


def sunday_based_weekday(day: date) -> int:
    """Return 0 for Sunday through 6 for Saturday."""
    return (day.weekday() + 1) % 7


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _first_weekday_offset(year: int, month: int) -> int:
    return sunday_based_weekday(date(year, month, 1))


def week_of_month(day: date) -> int:
    """1-indexed week number; week 1 contains the 1st and starts on the Sunday before it."""
    return math.ceil((day.day + _first_weekday_offset(day.year, day.month)) / 7)


def total_weeks_in_month(year: int, month: int) -> int:
    last_day = days_in_month(year, month)
    return math.ceil((last_day + _first_weekday_offset(year, month)) / 7)


def remaining_days_in_month(day: date) -> int:
    """Days left in the month, counting `day` itself."""
    return days_in_month(day.year, day.month) - day.day + 1


def remaining_weekday_names(day_of_week: int) -> List[str]:
    """Weekday names from `day_of_week` through Saturday, inclusive."""
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"day_of_week must be 0-6, got {day_of_week}")
    return DAY_NAMES[day_of_week:]


def remaining_days_count_in_week(day_of_week: int) -> int:
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"day_of_week must be 0-6, got {day_of_week}")
    return 7 - day_of_week


def ordinal(number: int) -> str:
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


@dataclass(frozen=True)
class PlanningClock:
    """A fixed notion of "today" shared by every stage of one cascade run."""

    today: date

    @classmethod
    def for_date(cls, today: date) -> "PlanningClock":
        return cls(today=today)

    @classmethod
    def now(cls, timezone_name: str = "UTC") -> "PlanningClock":
        return cls(today=datetime.now(ZoneInfo(timezone_name)).date())

    @property
    def year(self) -> int:
        return self.today.year

    @property
    def month(self) -> int:
        return self.today.month

    @property
    def day(self) -> int:
        return self.today.day

    @property
    def day_of_week(self) -> int:
        return sunday_based_weekday(self.today)

    @property
    def week_of_month(self) -> int:
        return week_of_month(self.today)

    @property
    def total_weeks_in_month(self) -> int:
        return total_weeks_in_month(self.year, self.month)

    @property
    def remaining_days_in_month(self) -> int:
        return remaining_days_in_month(self.today)

    @property
    def remaining_weekday_names(self) -> List[str]:
        return remaining_weekday_names(self.day_of_week)

    @property
    def remaining_days_in_week(self) -> int:
        return remaining_days_count_in_week(self.day_of_week)

    @property
    def yesterday(self) -> date:
        return self.today - timedelta(days=1)

    @property
    def is_weekend(self) -> bool:
        return self.day_of_week in WEEKEND_DAYS

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day_of_week]

    def is_working_day(self, working_days) -> bool:
        return self.day_of_week in set(working_days)
