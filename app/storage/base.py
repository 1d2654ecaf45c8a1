"""
Storage layer interfaces for audit job documents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from app.domain.audit_job import AuditJob

JobMutator = Callable[[AuditJob], "AuditJob | None"]
TTLResolver = Callable[[AuditJob], int]


class JobStoreUnavailableError(RuntimeError):
    """
    Raised when the backing store cannot be reached or fails mid-operation.
    """


@dataclass(frozen=True)
class RetentionPolicy:
    """
    Decide how long a job document lives, based on whether it was paid for.
    """

    ttl_seconds: int = 3600
    paid_ttl_seconds: int = 86400

    def ttl_for(self, job: AuditJob) -> int:
        return self.paid_ttl_seconds if job.paid else self.ttl_seconds


class JobStore(ABC):
    """
    Key-value store of audit jobs with per-entry expiry.
    """

    @abstractmethod
    def get(self, job_id: str) -> AuditJob | None:
        """
        Return the job, or None when it is absent or expired.
        """

    @abstractmethod
    def set(self, job: AuditJob, ttl_seconds: int) -> None:
        """
        Write the whole job and reset its expiry.
        """

    @abstractmethod
    def update(self, job_id: str, mutator: JobMutator, ttl_for: TTLResolver) -> AuditJob | None:
        """
        Read-modify-write one job atomically.

        `mutator` receives a private copy of the current job and returns the
        replacement, or None to leave the stored job untouched. Exceptions
        raised by the mutator propagate and nothing is written. Returns the
        stored job after the call, or None when the job does not exist.
        """

    @abstractmethod
    def delete_expired(self) -> int:
        """
        Remove expired entries and return how many were removed.
        """
