"""Decode structured model output into validated payloads."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaValidationError

from app.core.errors import MalformedResponseError
from app.db.models.goal import DEFAULT_GOAL_CATEGORY, GOAL_CATEGORIES, MAX_MULTIPLIER, MIN_MULTIPLIER

logger = logging.getLogger(__name__)

_LEADING_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*")
_TRAILING_FENCE_RE = re.compile(r"\s*```\s*$")


class TaskItem(BaseModel):
    """A single generated task."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be blank")
        return cleaned

    @field_validator("description")
    @classmethod
    def _blank_description_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class TaskBatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tasks: List[TaskItem]


class MonthFocus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    month: int = Field(..., ge=1, le=12)
    focus: str = Field(..., min_length=1)


class YearlyPlan(BaseModel):
    model_config = ConfigDict(extra="forbid")

    months: List[MonthFocus]


class GoalDraft(BaseModel):
    """A goal proposed by the goal-setting conversation."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    description: str = ""
    multiplier: float = MIN_MULTIPLIER
    frequency: Optional[str] = None
    category: str = DEFAULT_GOAL_CATEGORY

    @field_validator("multiplier", mode="before")
    @classmethod
    def _clamp_multiplier(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return MIN_MULTIPLIER
        return min(MAX_MULTIPLIER, max(MIN_MULTIPLIER, number))

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: Any) -> str:
        normalized = str(value or "").strip().lower()
        return normalized if normalized in GOAL_CATEGORIES else DEFAULT_GOAL_CATEGORY

    @field_validator("frequency", mode="before")
    @classmethod
    def _blank_frequency_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class GoalCompletion(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    goals_complete: bool = Field(..., alias="goalsComplete")
    goals: List[GoalDraft]


T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Either a validated payload or the reason decoding failed."""

    payload: Optional[T] = None
    error: Optional[MalformedResponseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.payload  # type: ignore[return-value]


def strip_code_fences(raw: str) -> str:
    """Drop a leading ```/```json marker and a trailing ``` marker."""
    text = _LEADING_FENCE_RE.sub("", raw, count=1)
    return _TRAILING_FENCE_RE.sub("", text, count=1).strip()


def _embedded_objects(text: str) -> Iterator[dict]:
    """Every JSON object that decodes starting at some `{` in `text`, outermost first."""
    decoder = json.JSONDecoder()
    index = text.find("{")
    while index != -1:
        try:
            candidate, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(candidate, dict):
                yield candidate
        index = text.find("{", index + 1)


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Model wrapped the object in prose, which may carry stray braces of its own.
        for candidate in _embedded_objects(text):
            if candidate:
                return candidate
        raise


def decode_structured(raw: Optional[str], schema: Type[T]) -> ParseResult[T]:
    """Decode `raw` into `schema` without raising."""
    if raw is None or not raw.strip():
        return ParseResult(error=MalformedResponseError("Model returned an empty response", raw=raw))

    cleaned = strip_code_fences(raw)
    try:
        data = _load_json(cleaned)
    except json.JSONDecodeError as exc:
        return ParseResult(error=MalformedResponseError(f"Response is not valid JSON: {exc.msg}", raw=raw))

    try:
        payload = schema.model_validate(data)
    except SchemaValidationError as exc:
        return ParseResult(
            error=MalformedResponseError(
                f"Response does not match {schema.__name__}: {exc.error_count()} validation error(s)",
                raw=raw,
            )
        )
    return ParseResult(payload=payload)


def parse_structured(raw: Optional[str], schema: Type[T]) -> T:
    """Decode `raw` into `schema`, raising MalformedResponseError on failure."""
    return decode_structured(raw, schema).unwrap()


def extract_finalized_goals(text: Optional[str]) -> Optional[List[GoalDraft]]:
    """Find a `{"goals_complete": true, "goals": [...]}` object anywhere in a chat reply.

    Returns None when the reply carries no finalized goal list; that is the
    normal outcome for every turn but the last one of the conversation.
    """
    if not text:
        return None

    for candidate in _embedded_objects(text):
        if "goals_complete" not in candidate and "goalsComplete" not in candidate:
            continue
        try:
            completion = GoalCompletion.model_validate(candidate)
        except SchemaValidationError:
            logger.debug("Ignoring goal completion object that failed validation")
            continue
        if completion.goals_complete and completion.goals:
            return completion.goals
    return None
