"""
tests/test_job_stores.py

Contract tests for the job stores.

Coverage
--------
- InMemoryJobStore: copies, expiry, mutator semantics, purge
- SQLAlchemyJobStore on SQLite: round trip, update, expiry, purge
- FallbackJobStore: outage routing, mirroring with the retention TTL, outage
  writes copied back to the primary after recovery
- Purge job wiring in the scheduler module
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.domain.audit_job import AuditJob, AuditJobStatus, AuditPreview, FullResults
from app.scheduler.jobs import build_scheduler, run_purge_expired_jobs
from app.services.job_state_machine import AuditJobStateMachine
from app.storage.base import JobStore, JobStoreUnavailableError, RetentionPolicy
from app.storage.fallback import FallbackJobStore
from app.storage.memory_storage import InMemoryJobStore
from app.storage.sqlalchemy_storage import SQLAlchemyJobStore
from fakes import ManualClock

POLICY = RetentionPolicy(ttl_seconds=60, paid_ttl_seconds=600)


def _job(job_id: str = "job-1", **kwargs) -> AuditJob:
    return AuditJob(id=job_id, url="https://example.com", **kwargs)


def _set_status(status: str):
    def mutate(job: AuditJob) -> AuditJob:
        return job.model_copy(update={"status": status})

    return mutate


class FlakyStore(JobStore):
    """
    In-memory store that raises JobStoreUnavailableError while `down` is set.
    """

    def __init__(self) -> None:
        self.inner = InMemoryJobStore()
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise JobStoreUnavailableError("connection refused")

    def get(self, job_id):
        self._check()
        return self.inner.get(job_id)

    def set(self, job, ttl_seconds):
        self._check()
        self.inner.set(job, ttl_seconds)

    def update(self, job_id, mutator, ttl_for):
        self._check()
        return self.inner.update(job_id, mutator, ttl_for)

    def delete_expired(self):
        self._check()
        return self.inner.delete_expired()


# ---------------------------------------------------------------------------
# InMemoryJobStore
# ---------------------------------------------------------------------------


class TestInMemoryJobStore:
    def test_get_returns_private_copy(self, store: InMemoryJobStore) -> None:
        store.set(_job(), 60)
        fetched = store.get("job-1")
        fetched.crawled_pages.append("/mutated")
        assert store.get("job-1").crawled_pages == []

    def test_update_applies_mutator(self, store: InMemoryJobStore) -> None:
        store.set(_job(), 60)
        updated = store.update("job-1", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for)
        assert updated.status == AuditJobStatus.CRAWLING
        assert store.get("job-1").status == AuditJobStatus.CRAWLING

    def test_mutator_returning_none_leaves_job(self, store: InMemoryJobStore) -> None:
        store.set(_job(), 60)
        result = store.update("job-1", lambda job: None, POLICY.ttl_for)
        assert result.status == AuditJobStatus.PENDING

    def test_update_missing_returns_none(self, store: InMemoryJobStore) -> None:
        assert store.update("nope", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for) is None

    def test_mutator_error_writes_nothing(self, store: InMemoryJobStore) -> None:
        store.set(_job(), 60)

        def explode(job: AuditJob) -> AuditJob:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.update("job-1", explode, POLICY.ttl_for)
        assert store.get("job-1").status == AuditJobStatus.PENDING

    def test_update_refreshes_ttl_from_paid_flag(self, store: InMemoryJobStore, clock: ManualClock) -> None:
        store.set(_job(), 60)
        store.update("job-1", lambda job: job.model_copy(update={"paid": True}), POLICY.ttl_for)
        clock.advance(120)
        assert store.get("job-1") is not None

    def test_delete_expired(self, store: InMemoryJobStore, clock: ManualClock) -> None:
        store.set(_job("old"), 10)
        store.set(_job("new"), 100)
        clock.advance(50)
        assert store.delete_expired() == 1
        assert store.get("new") is not None


# ---------------------------------------------------------------------------
# SQLAlchemyJobStore
# ---------------------------------------------------------------------------


class UTCClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


class TestSQLAlchemyJobStore:
    def test_round_trip(self, sqlite_session_factory) -> None:
        store = SQLAlchemyJobStore(session_factory=sqlite_session_factory)
        store.set(_job(email="a@b.co"), 60)
        fetched = store.get("job-1")
        assert fetched is not None
        assert fetched.email == "a@b.co"
        assert store.get("missing") is None

    def test_update_and_status_column(self, sqlite_session_factory) -> None:
        from db.models import AuditJobRecord

        store = SQLAlchemyJobStore(session_factory=sqlite_session_factory)
        store.set(_job(), 60)
        store.update("job-1", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for)

        with sqlite_session_factory() as db:
            record = db.get(AuditJobRecord, "job-1")
            assert record.status == AuditJobStatus.CRAWLING
            assert record.payload["status"] == AuditJobStatus.CRAWLING

    def test_expired_rows_are_invisible_and_purged(self, sqlite_session_factory) -> None:
        clock = UTCClock()
        store = SQLAlchemyJobStore(session_factory=sqlite_session_factory, clock=clock)
        store.set(_job("short"), 60)
        store.set(_job("long"), 600)

        clock.now += timedelta(seconds=120)
        assert store.get("short") is None
        assert store.update("short", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for) is None
        assert store.get("long") is not None
        assert store.delete_expired() == 1


# ---------------------------------------------------------------------------
# FallbackJobStore
# ---------------------------------------------------------------------------


class TestFallbackJobStore:
    def test_outage_serves_mirrored_state(self) -> None:
        primary = FlakyStore()
        store = FallbackJobStore(primary)
        store.set(_job(), 60)

        primary.down = True
        assert store.get("job-1") is not None
        updated = store.update("job-1", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for)
        assert updated.status == AuditJobStatus.CRAWLING

    def test_writes_during_outage_stay_visible_after_recovery(self) -> None:
        primary = FlakyStore()
        store = FallbackJobStore(primary)

        primary.down = True
        store.set(_job("local"), 60)
        primary.down = False

        assert primary.get("local") is None
        assert store.get("local") is not None
        updated = store.update("local", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for)
        assert updated.status == AuditJobStatus.CRAWLING

    def test_outage_updates_to_existing_job_survive_recovery(self) -> None:
        primary = FlakyStore()
        store = FallbackJobStore(primary, retention=POLICY)
        state_machine = AuditJobStateMachine(store=store, retention=POLICY)
        job = state_machine.create(url="https://example.com")
        assert state_machine.claim_for_crawl(job.id)

        primary.down = True
        state_machine.begin_analysis(job.id)
        primary.down = False

        assert state_machine.get(job.id).status == AuditJobStatus.ANALYZING
        assert primary.get(job.id).status == AuditJobStatus.ANALYZING

        completed = state_machine.complete(
            job.id,
            preview=AuditPreview(differentiation_score=60),
            full_results=FullResults(),
            requested_competitors=[],
            competitor_records=[],
        )
        assert completed.status == AuditJobStatus.COMPLETE
        assert primary.get(job.id).status == AuditJobStatus.COMPLETE

    def test_update_after_recovery_applies_to_outage_state(self) -> None:
        primary = FlakyStore()
        store = FallbackJobStore(primary, retention=POLICY)
        store.set(_job(), 60)

        primary.down = True
        store.update("job-1", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for)
        primary.down = False

        updated = store.update("job-1", _set_status(AuditJobStatus.ANALYZING), POLICY.ttl_for)
        assert updated.status == AuditJobStatus.ANALYZING
        assert primary.get("job-1").status == AuditJobStatus.ANALYZING

    def test_outage_state_is_served_while_primary_stays_down(self) -> None:
        primary = FlakyStore()
        store = FallbackJobStore(primary, retention=POLICY)
        store.set(_job(), 60)

        primary.down = True
        store.update("job-1", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for)

        assert store.get("job-1").status == AuditJobStatus.CRAWLING
        assert primary.inner.get("job-1").status == AuditJobStatus.PENDING

    def test_paid_job_mirror_keeps_paid_ttl(self, clock: ManualClock) -> None:
        primary = FlakyStore()
        store = FallbackJobStore(primary, InMemoryJobStore(clock=clock), retention=POLICY)
        primary.inner.set(_job(paid=True), 600)
        primary.inner.set(_job("job-2"), 60)
        assert store.get("job-1") is not None
        assert store.get("job-2") is not None

        primary.down = True
        clock.advance(120)
        assert store.get("job-1") is not None
        assert store.get("job-2") is None

    def test_unknown_job_is_absent(self) -> None:
        store = FallbackJobStore(FlakyStore())
        assert store.get("nope") is None
        assert store.update("nope", _set_status(AuditJobStatus.CRAWLING), POLICY.ttl_for) is None

    def test_purge_survives_outage(self) -> None:
        primary = FlakyStore()
        store = FallbackJobStore(primary)
        primary.down = True
        assert store.delete_expired() == 0


# ---------------------------------------------------------------------------
# Purge job
# ---------------------------------------------------------------------------


class TestPurgeJob:
    def test_purge_reports_deleted_count(self, store: InMemoryJobStore, clock: ManualClock) -> None:
        store.set(_job("a"), 10)
        store.set(_job("b"), 10)
        clock.advance(11)
        assert run_purge_expired_jobs(store) == 2

    def test_purge_failure_is_logged_not_raised(self) -> None:
        class BrokenStore(FlakyStore):
            def delete_expired(self):
                raise JobStoreUnavailableError("down")

        assert run_purge_expired_jobs(BrokenStore()) == 0

    def test_scheduler_registers_purge_job(self) -> None:
        scheduler = build_scheduler()
        job_ids = [job.id for job in scheduler.get_jobs()]
        assert job_ids == ["purge_expired_audit_jobs"]
