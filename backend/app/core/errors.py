"""Typed failures raised by the planning core."""
from __future__ import annotations


class PlannerError(Exception):
    """Base class for every failure surfaced by a cascade run."""


class ConfigurationError(PlannerError):
    """A required setting (usually the AI credential) is missing."""


class UpstreamError(PlannerError):
    """The AI backend answered with a non-success status, timed out, or was unreachable."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedResponseError(PlannerError):
    """Model output could not be decoded into the expected structure."""

    def __init__(self, message: str, *, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class ValidationError(PlannerError, ValueError):
    """Input rejected before any AI call (e.g. no goals for the year)."""


class CascadeInProgressError(PlannerError):
    """Another cascade already holds the lock for the same planning date."""
