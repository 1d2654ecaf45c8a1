"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.audit_job_record import AuditJobRecord

__all__ = [
    "AuditJobRecord",
]
