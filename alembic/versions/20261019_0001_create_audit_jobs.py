"""create audit_jobs

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ---------------------------------------------------------------------------
    # audit_jobs
    # One row per job; the job document lives in payload. expires_at drives
    # read-side expiry and the periodic purge.
    # ---------------------------------------------------------------------------
    op.create_table(
        "audit_jobs",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            comment="pending, crawling, analyzing, complete, failed",
        ),
        sa.Column(
            "payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Serialized AuditJob document",
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_jobs_status", "audit_jobs", ["status"])
    op.create_index("ix_audit_jobs_expires_at", "audit_jobs", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_jobs_expires_at", table_name="audit_jobs")
    op.drop_index("ix_audit_jobs_status", table_name="audit_jobs")
    op.drop_table("audit_jobs")
