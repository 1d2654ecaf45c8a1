"""
tests/conftest.py

Shared fixtures for the audit pipeline tests.

Stores run in memory with a manual clock; the SQL store runs against an
in-memory SQLite database shared across threads.
"""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import AuditPipelineSettings
from app.services.job_state_machine import AuditJobStateMachine
from app.storage.base import RetentionPolicy
from app.storage.memory_storage import InMemoryJobStore
from fakes import ManualClock


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def store(clock: ManualClock) -> InMemoryJobStore:
    return InMemoryJobStore(clock=clock)


@pytest.fixture()
def retention() -> RetentionPolicy:
    return RetentionPolicy(ttl_seconds=3600, paid_ttl_seconds=86400)


@pytest.fixture()
def state_machine(store: InMemoryJobStore, retention: RetentionPolicy) -> AuditJobStateMachine:
    return AuditJobStateMachine(store=store, retention=retention)


@pytest.fixture()
def pipeline_settings() -> AuditPipelineSettings:
    return AuditPipelineSettings(
        max_pages=10,
        max_competitors=5,
        competitor_group_size=3,
        competitor_batch_timeout_seconds=10.0,
        competitor_crawl_timeout_seconds=2.0,
    )


@pytest.fixture()
def sqlite_session_factory():
    import db.models  # noqa: F401  registers AuditJobRecord on Base.metadata
    from db.base import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, expire_on_commit=False)
    finally:
        engine.dispose()
