"""Main FastAPI application for the Smart Planner backend."""
from fastapi import FastAPI, Request

from app.api.errors import register_exception_handlers
from app.api.routes.chat import router as chat_router
from app.api.routes.goals import router as goals_router
from app.api.routes.plan import router as plan_router
from app.api.routes.settings import router as settings_router
from app.api.routes.tasks import router as tasks_router
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIDMiddleware
from app.observability.client import init_opik
from app.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
register_exception_handlers(app)
app.include_router(plan_router)
app.include_router(goals_router)
app.include_router(tasks_router)
app.include_router(settings_router)
app.include_router(chat_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
