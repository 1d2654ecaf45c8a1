"""
Repository layer exports.
"""

from db.repositories.audit_job_repository import AuditJobRepository

__all__ = [
    "AuditJobRepository",
]
