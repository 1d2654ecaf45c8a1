"""
Build the configured job store.
"""

from __future__ import annotations

from functools import lru_cache

from app.config import get_job_store_settings, get_retention_settings
from app.storage.base import JobStore, RetentionPolicy
from app.storage.fallback import FallbackJobStore
from app.storage.memory_storage import InMemoryJobStore


def get_retention_policy() -> RetentionPolicy:
    settings = get_retention_settings()
    return RetentionPolicy(
        ttl_seconds=settings.ttl_seconds,
        paid_ttl_seconds=settings.paid_ttl_seconds,
    )


def build_job_store(backend: str) -> JobStore:
    if backend == "memory":
        return InMemoryJobStore()

    from app.storage.sqlalchemy_storage import SQLAlchemyJobStore

    return FallbackJobStore(
        SQLAlchemyJobStore(),
        InMemoryJobStore(),
        retention=get_retention_policy(),
    )


@lru_cache(maxsize=1)
def get_job_store() -> JobStore:
    return build_job_store(get_job_store_settings().backend)
