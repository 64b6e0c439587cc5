from __future__ import annotations

import pytest

from app.core.errors import MalformedResponseError
from app.services.response_parser import (
    GoalCompletion,
    TaskBatch,
    YearlyPlan,
    decode_structured,
    extract_finalized_goals,
    parse_structured,
    strip_code_fences,
)

RAW_TASKS = '{"tasks": [{"title": "Draft outline", "description": "Three sections"}, {"title": "Email mentor"}]}'


def test_parses_fenced_json_with_language_tag() -> None:
    batch = parse_structured(f"```json\n{RAW_TASKS}\n```", TaskBatch)

    assert [task.title for task in batch.tasks] == ["Draft outline", "Email mentor"]
    assert batch.tasks[1].description is None


def test_parses_unwrapped_json() -> None:
    batch = parse_structured(RAW_TASKS, TaskBatch)
    assert len(batch.tasks) == 2


def test_tolerates_prose_around_the_object() -> None:
    batch = parse_structured(f"Here is your plan:\n{RAW_TASKS}\nGood luck!", TaskBatch)
    assert batch.tasks[0].title == "Draft outline"


@pytest.mark.parametrize(
    "reply",
    [
        f"Plan for {{this week}}:\n{RAW_TASKS}",
        f"{RAW_TASKS}\nTip: keep {{weekends}} free.",
        f"Use {{}} as a placeholder. {RAW_TASKS} Done {{",
    ],
)
def test_stray_braces_in_prose_are_ignored(reply) -> None:
    batch = parse_structured(reply, TaskBatch)
    assert [task.title for task in batch.tasks] == ["Draft outline", "Email mentor"]


def test_truncated_json_is_malformed() -> None:
    with pytest.raises(MalformedResponseError) as excinfo:
        parse_structured('{"tasks": [{"title": "Draft outl', TaskBatch)
    assert excinfo.value.raw.startswith('{"tasks"')


def test_empty_response_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        parse_structured("   ", TaskBatch)


def test_unknown_envelope_shape_is_rejected() -> None:
    result = decode_structured('{"tasks": [], "notes": "extra"}', TaskBatch)

    assert result.ok is False
    assert isinstance(result.error, MalformedResponseError)
    assert result.payload is None


def test_blank_title_is_rejected() -> None:
    result = decode_structured('{"tasks": [{"title": "   "}]}', TaskBatch)
    assert not result.ok


def test_decode_structured_success_is_tagged() -> None:
    result = decode_structured('{"months": [{"month": 6, "focus": "Ship MVP"}]}', YearlyPlan)

    assert result.ok
    assert result.unwrap().months[0].month == 6


def test_yearly_month_out_of_range_is_rejected() -> None:
    assert not decode_structured('{"months": [{"month": 13, "focus": "x"}]}', YearlyPlan).ok


def test_strip_code_fences_variants() -> None:
    assert strip_code_fences("```\n{}\n```") == "{}"
    assert strip_code_fences("```json {}```") == "{}"
    assert strip_code_fences("{}") == "{}"


def test_extract_finalized_goals_from_free_text() -> None:
    reply = (
        "Great, your goals are locked in!\n"
        '{"goals_complete": true, "goals": ['
        '{"title": "Learn Spanish", "description": "Reach B1", "multiplier": 9, "frequency": "1/day", "category": "habit"},'
        '{"title": "Read more", "description": "12 books", "multiplier": 2, "category": "hobby"}'
        "]}\nTalk soon."
    )

    goals = extract_finalized_goals(reply)

    assert goals is not None
    assert [goal.title for goal in goals] == ["Learn Spanish", "Read more"]
    assert goals[0].multiplier == 5.0
    assert goals[0].frequency == "1/day"
    assert goals[1].category == "growth"
    assert goals[1].frequency is None


def test_extract_finalized_goals_accepts_camel_case_flag() -> None:
    reply = '{"goalsComplete": true, "goals": [{"title": "Run a marathon", "category": "milestone"}]}'

    goals = extract_finalized_goals(reply)

    assert goals is not None and goals[0].category == "milestone"


def test_extract_finalized_goals_finds_nested_object() -> None:
    reply = '{"result": {"goals_complete": true, "goals": [{"title": "Meditate"}]}}'

    goals = extract_finalized_goals(reply)

    assert goals is not None and goals[0].title == "Meditate"


@pytest.mark.parametrize(
    "reply",
    [
        None,
        "",
        "What would you like to achieve this year?",
        '{"goals_complete": false, "goals": [{"title": "x"}]}',
        '{"goals_complete": true, "goals": []}',
        'Sure! {"goals_complete": true, "goals": [',
        '{"unrelated": {"nested": 1}}',
    ],
)
def test_extract_finalized_goals_absent(reply) -> None:
    assert extract_finalized_goals(reply) is None


def test_goal_completion_populates_by_field_name() -> None:
    completion = GoalCompletion.model_validate({"goals_complete": True, "goals": []})
    assert completion.goals_complete is True
