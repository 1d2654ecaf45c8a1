"""
SQLAlchemy-backed job store.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.audit_job import AuditJob
from app.storage.base import JobMutator, JobStore, JobStoreUnavailableError, TTLResolver
from db.repositories.audit_job_repository import AuditJobRepository


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SQLAlchemyJobStore(JobStore):
    """
    Persist jobs as JSON documents in the `audit_jobs` table.

    `update` locks the row with SELECT ... FOR UPDATE for the duration of the
    read-modify-write, so concurrent patches of one job serialize on PostgreSQL.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | Callable[[], Session] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory
        self._clock = clock

    def get(self, job_id: str) -> AuditJob | None:
        try:
            with self._session_factory() as db:
                record = AuditJobRepository(db).get_live(job_id, now=self._clock())
                if record is None:
                    return None
                return AuditJob.model_validate(record.payload)
        except SQLAlchemyError as exc:
            raise JobStoreUnavailableError(f"Job store read failed: {type(exc).__name__}") from exc

    def set(self, job: AuditJob, ttl_seconds: int) -> None:
        now = self._clock()
        try:
            with self._session_factory() as db, db.begin():
                AuditJobRepository(db).upsert(
                    job_id=job.id,
                    status=job.status,
                    payload=job.model_dump(mode="json"),
                    expires_at=now + timedelta(seconds=ttl_seconds),
                )
        except SQLAlchemyError as exc:
            raise JobStoreUnavailableError(f"Job store write failed: {type(exc).__name__}") from exc

    def update(self, job_id: str, mutator: JobMutator, ttl_for: TTLResolver) -> AuditJob | None:
        now = self._clock()
        try:
            with self._session_factory() as db, db.begin():
                repository = AuditJobRepository(db)
                record = repository.get_live_for_update(job_id, now=now)
                if record is None:
                    return None
                current = AuditJob.model_validate(record.payload)
                updated = mutator(current.model_copy(deep=True))
                if updated is None:
                    return current
                repository.upsert(
                    job_id=updated.id,
                    status=updated.status,
                    payload=updated.model_dump(mode="json"),
                    expires_at=now + timedelta(seconds=ttl_for(updated)),
                )
                return updated
        except SQLAlchemyError as exc:
            raise JobStoreUnavailableError(f"Job store update failed: {type(exc).__name__}") from exc

    def delete_expired(self) -> int:
        try:
            with self._session_factory() as db, db.begin():
                return AuditJobRepository(db).delete_expired(now=self._clock())
        except SQLAlchemyError as exc:
            raise JobStoreUnavailableError(f"Job store purge failed: {type(exc).__name__}") from exc
