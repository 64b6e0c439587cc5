from __future__ import annotations

from types import SimpleNamespace

from app.services.completion_context import build_completion_context


def _task(title: str, completed: bool):
    return SimpleNamespace(title=title, completed=completed)


def test_three_of_five_completed() -> None:
    tasks = [
        _task("Outline essay", True),
        _task("Gym", False),
        _task("Call bank", True),
        _task("Spanish lesson", True),
        _task("Tidy desk", False),
    ]

    context = build_completion_context(tasks)

    assert context is not None
    assert context.completion_rate == 0.6
    assert context.completed == ["Outline essay", "Call bank", "Spanish lesson"]
    assert context.incomplete == ["Gym", "Tidy desk"]
    assert context.total == 5
    assert context.completion_percent == 60


def test_no_tasks_means_no_context() -> None:
    assert build_completion_context([]) is None


def test_all_complete() -> None:
    context = build_completion_context([_task("a", True), _task("b", True)])

    assert context.completion_rate == 1.0
    assert context.incomplete == []
