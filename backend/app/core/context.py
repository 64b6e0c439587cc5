"""Per-request and per-cascade context utilities."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
cascade_id_ctx_var: ContextVar[str | None] = ContextVar("cascade_id", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def get_cascade_id() -> str | None:
    """Return the id of the cascade run executing in this context, if any."""
    return cascade_id_ctx_var.get()


@contextmanager
def bind_cascade_id(cascade_id: str) -> Iterator[str]:
    """Tag every log line emitted inside the block with the cascade run id."""
    token = cascade_id_ctx_var.set(cascade_id)
    try:
        yield cascade_id
    finally:
        cascade_id_ctx_var.reset(token)
