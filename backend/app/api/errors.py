"""Map planner failures onto HTTP responses."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import (
    CascadeInProgressError,
    ConfigurationError,
    MalformedResponseError,
    PlannerError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (CascadeInProgressError, status.HTTP_409_CONFLICT),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (MalformedResponseError, status.HTTP_502_BAD_GATEWAY),
)


def status_for_error(exc: PlannerError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_payload(exc: PlannerError, request_id: str | None) -> dict:
    payload = {"detail": str(exc), "error": type(exc).__name__, "request_id": request_id}
    if isinstance(exc, UpstreamError) and exc.status_code is not None:
        payload["upstream_status"] = exc.status_code
    return payload


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PlannerError)
    async def planner_error_handler(request: Request, exc: PlannerError) -> JSONResponse:
        code = status_for_error(exc)
        request_id = getattr(request.state, "request_id", None)
        logger.warning("%s %s failed with %s: %s", request.method, request.url.path, type(exc).__name__, exc)
        return JSONResponse(status_code=code, content=error_payload(exc, request_id))
