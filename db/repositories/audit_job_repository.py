"""
Repository for audit job documents keyed by job id.

Expiry is evaluated in SQL so timezone handling stays with the database.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Select, delete, select
from sqlalchemy.orm import Session

from db.models.audit_job_record import AuditJobRecord


class AuditJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def _live(self, job_id: str, now: datetime) -> Select[tuple[AuditJobRecord]]:
        return select(AuditJobRecord).where(
            AuditJobRecord.id == job_id,
            AuditJobRecord.expires_at > now,
        )

    def get_live(self, job_id: str, *, now: datetime) -> AuditJobRecord | None:
        return self._session.scalars(self._live(job_id, now)).first()

    def get_live_for_update(self, job_id: str, *, now: datetime) -> AuditJobRecord | None:
        """
        Fetch a non-expired row and lock it until the surrounding transaction ends.
        """

        stmt = self._live(job_id, now).with_for_update()
        return self._session.scalars(stmt).first()

    def upsert(
        self,
        *,
        job_id: str,
        status: str,
        payload: dict[str, Any],
        expires_at: datetime,
    ) -> AuditJobRecord:
        record = self._session.get(AuditJobRecord, job_id)
        if record is None:
            record = AuditJobRecord(
                id=job_id,
                status=status,
                payload=payload,
                expires_at=expires_at,
            )
            self._session.add(record)
        else:
            record.status = status
            record.payload = payload
            record.expires_at = expires_at
        self._session.flush()
        return record

    def delete_expired(self, *, now: datetime) -> int:
        result = self._session.execute(
            delete(AuditJobRecord).where(AuditJobRecord.expires_at <= now)
        )
        return int(result.rowcount or 0)
