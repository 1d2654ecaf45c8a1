"""
Process-local job store. Serves as the fallback cache and as the store for
local development and tests.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from app.domain.audit_job import AuditJob
from app.storage.base import JobMutator, JobStore, TTLResolver


class InMemoryJobStore(JobStore):
    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, tuple[AuditJob, float]] = {}

    def get(self, job_id: str) -> AuditJob | None:
        with self._lock:
            job = self._live(job_id)
            return job.model_copy(deep=True) if job is not None else None

    def set(self, job: AuditJob, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[job.id] = (job.model_copy(deep=True), self._clock() + ttl_seconds)

    def update(self, job_id: str, mutator: JobMutator, ttl_for: TTLResolver) -> AuditJob | None:
        with self._lock:
            current = self._live(job_id)
            if current is None:
                return None
            updated = mutator(current.model_copy(deep=True))
            if updated is None:
                return current.model_copy(deep=True)
            self._entries[job_id] = (updated.model_copy(deep=True), self._clock() + ttl_for(updated))
            return updated

    def delete_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [job_id for job_id, (_, expires_at) in self._entries.items() if expires_at <= now]
            for job_id in expired:
                del self._entries[job_id]
            return len(expired)

    def _live(self, job_id: str) -> AuditJob | None:
        entry = self._entries.get(job_id)
        if entry is None:
            return None
        job, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[job_id]
            return None
        return job
