"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.observability.client import init_opik
from app.services.ai_client import AIClient
from app.services.cascade_orchestrator import ScopeLockRegistry
from app.services.job_runner import run_scheduled_cascade
from app.services.scope_calculator import PlanningClock
from app.services.source_fetcher import SourceFetcher


logger = logging.getLogger(__name__)

_ai_client = AIClient.from_settings(settings)
_source_fetcher = SourceFetcher.from_settings(settings)
_locks = ScopeLockRegistry()


def main() -> None:
    configure_logging(log_level=settings.log_level)
    init_opik()
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        _register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running cascade job once on startup")
            _run_cascade_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        _source_fetcher.close()
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def _register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        _run_cascade_job,
        trigger="cron",
        hour=settings.cascade_job_hour,
        minute=settings.cascade_job_minute,
        id="daily_cascade_job",
        replace_existing=True,
    )
    logger.info(
        "Registered daily cascade job (time=%02d:%02d %s, weekly weekday=%s)",
        settings.cascade_job_hour,
        settings.cascade_job_minute,
        settings.scheduler_timezone,
        settings.weekly_cascade_weekday,
    )


def _run_cascade_job() -> None:
    session = SessionLocal()
    try:
        result = run_scheduled_cascade(
            session,
            _ai_client,
            PlanningClock.now(settings.planner_timezone),
            weekly_weekday=settings.weekly_cascade_weekday,
            source_fetcher=_source_fetcher,
            locks=_locks,
        )
        if result.skipped:
            logger.info("Cascade job skipped: %s", result.error)
        elif result.succeeded:
            logger.info("Cascade job complete: scope=%s, created=%s", result.scope.value, result.created)
        else:
            logger.warning(
                "Cascade job stopped at %s: %s (created=%s)",
                result.failed_stage,
                result.error,
                result.created,
            )
    except Exception:  # pragma: no cover - keep the worker alive
        logger.exception("Cascade job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
