"""
db/models/audit_job_record.py

One row per audit job. The job itself is stored as a JSON document so the
state machine can evolve its fields without schema migrations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONPayload, TimestampMixin


class AuditJobRecord(Base, TimestampMixin):
    __tablename__ = "audit_jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="pending, crawling, analyzing, complete, failed",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        nullable=False,
        comment="Serialized AuditJob document",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_audit_jobs_status", "status"),
        Index("ix_audit_jobs_expires_at", "expires_at"),
    )
