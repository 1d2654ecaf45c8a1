"""
app/scheduler/jobs.py

APScheduler-based maintenance scheduler.

Schedule
--------
  purge_expired_audit_jobs: every ``AUDIT_PURGE_INTERVAL_MINUTES`` (default 15)

Reads already treat expired jobs as absent; the purge only reclaims storage.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_retention_settings
from app.logging_utils import log_event
from app.storage.base import JobStore
from app.storage.factory import get_job_store

logger = logging.getLogger(__name__)


def run_purge_expired_jobs(store: JobStore | None = None) -> int:
    """
    Delete every job whose retention window has passed. Returns the number
    of records removed; a failing store is logged and reported as zero.
    """
    target = store or get_job_store()
    try:
        deleted = target.delete_expired()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: purge_expired_audit_jobs failed: %s", exc)
        return 0

    log_event(logger, logging.INFO, "expired_jobs_purged", deleted=deleted)
    return deleted


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_purge_expired_jobs,
        trigger="interval",
        minutes=get_retention_settings().purge_interval_minutes,
        id="purge_expired_audit_jobs",
        name="Purge expired audit jobs",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    return scheduler
