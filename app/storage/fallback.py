"""
Job store wrapper that degrades to a process-local cache when the backing
store is unavailable.
"""

from __future__ import annotations

import logging
import threading

from app.domain.audit_job import AuditJob
from app.logging_utils import log_event
from app.storage.base import (
    JobMutator,
    JobStore,
    JobStoreUnavailableError,
    RetentionPolicy,
    TTLResolver,
)
from app.storage.memory_storage import InMemoryJobStore

logger = logging.getLogger(__name__)


class FallbackJobStore(JobStore):
    """
    Route every call to `primary`; serve it from `local` when `primary` raises
    JobStoreUnavailableError.

    Successful primary reads and writes are mirrored into `local`, so an outage
    serves the last known state of a job instead of losing it. A job written
    only to `local` is marked local-only; the next call that touches it after
    the primary recovers writes the local copy back before anything else, so
    the primary never serves a state older than the outage writes. While
    `local` is serving, update atomicity is process-local only.
    """

    def __init__(
        self,
        primary: JobStore,
        local: InMemoryJobStore | None = None,
        *,
        retention: RetentionPolicy | None = None,
    ) -> None:
        self._primary = primary
        self._local = local or InMemoryJobStore()
        self._retention = retention or RetentionPolicy()
        self._local_only: set[str] = set()
        self._lock = threading.Lock()

    def get(self, job_id: str) -> AuditJob | None:
        if not self._write_back(job_id):
            return self._local.get(job_id)
        try:
            job = self._primary.get(job_id)
        except JobStoreUnavailableError as exc:
            self._log_fallback("get", job_id, exc)
            return self._local.get(job_id)
        if job is not None:
            self._local.set(job, self._retention.ttl_for(job))
        return job

    def set(self, job: AuditJob, ttl_seconds: int) -> None:
        try:
            self._primary.set(job, ttl_seconds)
        except JobStoreUnavailableError as exc:
            self._log_fallback("set", job.id, exc)
            self._mark_local_only(job.id, True)
        else:
            self._mark_local_only(job.id, False)
        self._local.set(job, ttl_seconds)

    def update(self, job_id: str, mutator: JobMutator, ttl_for: TTLResolver) -> AuditJob | None:
        if not self._write_back(job_id):
            return self._local.update(job_id, mutator, ttl_for)
        try:
            updated = self._primary.update(job_id, mutator, ttl_for)
        except JobStoreUnavailableError as exc:
            self._log_fallback("update", job_id, exc)
            updated = self._local.update(job_id, mutator, ttl_for)
            if updated is not None:
                self._mark_local_only(job_id, True)
            return updated
        if updated is not None:
            self._local.set(updated, ttl_for(updated))
        return updated

    def delete_expired(self) -> int:
        removed = self._local.delete_expired()
        try:
            removed += self._primary.delete_expired()
        except JobStoreUnavailableError as exc:
            self._log_fallback("delete_expired", None, exc)
        return removed

    def _write_back(self, job_id: str) -> bool:
        """
        Copy a local-only job back to the primary.

        Returns False while the primary is still unreachable, True when the
        primary holds the latest state (or the job was never local-only).
        """
        if not self._is_local_only(job_id):
            return True
        job = self._local.get(job_id)
        if job is None:
            self._mark_local_only(job_id, False)
            return True
        try:
            self._primary.set(job, self._retention.ttl_for(job))
        except JobStoreUnavailableError as exc:
            self._log_fallback("write_back", job_id, exc)
            return False
        self._mark_local_only(job_id, False)
        log_event(
            logger,
            logging.INFO,
            "job_store_write_back",
            job_id=job_id,
            status=job.status,
        )
        return True

    def _is_local_only(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._local_only

    def _mark_local_only(self, job_id: str, local_only: bool) -> None:
        with self._lock:
            if local_only:
                self._local_only.add(job_id)
            else:
                self._local_only.discard(job_id)

    def _log_fallback(self, operation: str, job_id: str | None, exc: Exception) -> None:
        log_event(
            logger,
            logging.WARNING,
            "job_store_fallback",
            operation=operation,
            job_id=job_id,
            error=str(exc),
        )
