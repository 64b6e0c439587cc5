"""Carry-forward summary of the previous period's task list."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class CompletionContext:
    completed: List[str] = field(default_factory=list)
    incomplete: List[str] = field(default_factory=list)
    completion_rate: float = 0.0

    @property
    def total(self) -> int:
        return len(self.completed) + len(self.incomplete)

    @property
    def completion_percent(self) -> int:
        return round(self.completion_rate * 100)


def build_completion_context(tasks: Sequence) -> Optional[CompletionContext]:
    """Split already-fetched tasks into completed/incomplete titles.

    Returns None when the previous period had no tasks, so callers can omit
    any adjustment note instead of reporting a meaningless 0%.
    """
    if not tasks:
        return None
    completed = [task.title for task in tasks if task.completed]
    incomplete = [task.title for task in tasks if not task.completed]
    return CompletionContext(
        completed=completed,
        incomplete=incomplete,
        completion_rate=len(completed) / len(tasks),
    )
