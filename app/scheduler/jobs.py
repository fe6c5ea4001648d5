"""
app/scheduler/jobs.py

APScheduler-based background retry of unfinished diagnostics passes.

Run discovery
-------------
A run is picked up when its ``raw_payload["diagnostics"]`` marker is:

  1. ``failed``                 : always retried, or
  2. ``pending`` or missing     : retried once older than one sweep interval,
                                  covering processes that died mid-ingest.

Each run is retried independently; a failure is logged and the sweep moves
on. Re-running is safe because diagnostics writes are insert-or-ignore.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import SchedulerSettings, get_scheduler_settings
from app.logging_utils import log_event
from app.services.diagnostics_service import (
    DiagnosticsPersistenceError,
    DiagnosticsService,
    RunNotFoundError,
    get_diagnostics_service,
)
from app.storage.base import CampaignStore, StoreError

logger = logging.getLogger(__name__)

RETRY_JOB_ID = "diagnostics_retry"


@dataclass
class RetrySweepResult:
    candidates: int = 0
    completed: list[Any] = field(default_factory=list)
    failed: list[Any] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Job: Diagnostics retry sweep
# ---------------------------------------------------------------------------


def run_diagnostics_retry(
    *,
    store: CampaignStore | None = None,
    service: DiagnosticsService | None = None,
    settings: SchedulerSettings | None = None,
    now: datetime | None = None,
) -> RetrySweepResult:
    """
    Re-run diagnostics for failed or stale pending runs.
    """
    settings = settings or get_scheduler_settings()
    service = service or get_diagnostics_service()
    if store is None:
        from app.api.dependencies import get_campaign_store

        store = get_campaign_store()

    now = now or datetime.now(tz=timezone.utc)
    stale_before = now - timedelta(minutes=settings.retry_interval_minutes)
    result = RetrySweepResult()

    logger.info("Scheduler: diagnostics_retry starting")
    try:
        runs = store.list_runs_needing_diagnostics(
            stale_before=stale_before,
            limit=settings.retry_max_runs,
        )
    except StoreError as exc:
        logger.warning("Scheduler: diagnostics_retry could not list runs: %s", exc)
        return result

    result.candidates = len(runs)
    for run in runs:
        try:
            service.run_diagnostics(run.id, store=store)
            result.completed.append(run.id)
        except (DiagnosticsPersistenceError, RunNotFoundError) as exc:
            result.failed.append(run.id)
            logger.warning("Scheduler: diagnostics_retry failed run_id=%s: %s", run.id, exc)

    log_event(
        logger,
        logging.INFO if not result.failed else logging.WARNING,
        "diagnostics_retry_complete",
        candidates=result.candidates,
        completed=len(result.completed),
        failed=len(result.failed),
    )
    return result


def _scheduled_retry() -> None:
    try:
        run_diagnostics_retry()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: diagnostics_retry aborted: %s", exc)


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(settings: SchedulerSettings | None = None) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points. With retries disabled the scheduler has
    no jobs.
    """
    settings = settings or get_scheduler_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    if settings.retry_enabled:
        scheduler.add_job(
            _scheduled_retry,
            trigger="interval",
            minutes=settings.retry_interval_minutes,
            id=RETRY_JOB_ID,
            name="Diagnostics retry sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.retry_interval_minutes * 60,
        )

    return scheduler
