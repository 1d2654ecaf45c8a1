"""
Job state machine: the only code that mutates stored audit jobs.

Main machine: pending -> crawling -> analyzing -> complete, with `failed`
reachable from every non-terminal state. The enrichment sub-machine
(None -> analyzing_competitors -> complete | failed) runs independently and
can be re-entered once it settles.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Sequence
from typing import Any

from app.domain.audit_job import (
    ALLOWED_TRANSITIONS,
    AuditJob,
    AuditJobStatus,
    AuditPreview,
    CompetitorProgress,
    CompetitorRecord,
    EnrichmentStatus,
    FullResults,
    SuggestedCompetitor,
    utc_now,
)
from app.logging_utils import log_event
from app.services.competitor_comparison import build_comparison, merge_domain_lists
from app.storage.base import JobStore, RetentionPolicy

logger = logging.getLogger(__name__)

CRAWL_START_PROGRESS = 5
CRAWL_SPAN_PROGRESS = 55
CRAWL_MAX_PROGRESS = 60
CRAWL_DONE_PROGRESS = 65
ANALYZING_PROGRESS = 70
SCORED_PROGRESS = 90
DISCOVERY_PROGRESS = 91
COMPETITOR_BATCH_PROGRESS = 92
COMPLETE_PROGRESS = 100

MAX_SOCIAL_URLS_PER_REQUEST = 5


class AuditJobNotFoundError(LookupError):
    """
    Raised when a job id is unknown or its record has expired.
    """


class InvalidJobTransitionError(RuntimeError):
    def __init__(self, job_id: str, current: str, target: str) -> None:
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Illegal job transition {current} -> {target} for job {job_id}")


def new_job_id() -> str:
    return secrets.token_urlsafe(16)


def crawl_progress(crawled: int, budget: int) -> int:
    if budget <= 0:
        return CRAWL_START_PROGRESS
    value = CRAWL_START_PROGRESS + round(crawled / budget * CRAWL_SPAN_PROGRESS)
    return min(max(value, CRAWL_START_PROGRESS), CRAWL_MAX_PROGRESS)


class AuditJobStateMachine:
    """
    Apply guarded merge-patches to stored jobs.

    Every write goes through `JobStore.update`, so a patch is one atomic
    read-modify-write of one job, and the TTL is recomputed from the job's
    paid flag on every write.
    """

    def __init__(
        self,
        *,
        store: JobStore,
        retention: RetentionPolicy | None = None,
        id_factory: Callable[[], str] = new_job_id,
    ) -> None:
        self._store = store
        self._retention = retention or RetentionPolicy()
        self._id_factory = id_factory

    @property
    def store(self) -> JobStore:
        return self._store

    def create(self, *, url: str, email: str | None = None) -> AuditJob:
        job = AuditJob(id=self._id_factory(), url=url, email=email)
        self._store.set(job, self._retention.ttl_for(job))
        log_event(logger, logging.INFO, "audit_job_created", job_id=job.id, url=url)
        return job

    def get(self, job_id: str) -> AuditJob | None:
        return self._store.get(job_id)

    def require(self, job_id: str) -> AuditJob:
        job = self._store.get(job_id)
        if job is None:
            raise AuditJobNotFoundError(f"Audit job not found: {job_id}")
        return job

    def patch(
        self,
        job_id: str,
        changes: dict[str, Any],
        *,
        expected_status: str | None = None,
    ) -> AuditJob | None:
        """
        Merge `changes` into the job.

        With `expected_status`, the patch is skipped (returning the unchanged
        job) when the job has moved on to another status.
        """

        def mutate(job: AuditJob) -> AuditJob | None:
            if expected_status is not None and job.status != expected_status:
                return None
            return _apply(job, changes)

        return self._store.update(job_id, mutate, self._retention.ttl_for)

    def claim_for_crawl(self, job_id: str) -> bool:
        """
        Compare-and-swap pending -> crawling. Returns True for exactly one caller.
        """

        claimed = False

        def mutate(job: AuditJob) -> AuditJob | None:
            nonlocal claimed
            if job.status != AuditJobStatus.PENDING:
                return None
            claimed = True
            return _apply(
                job,
                {
                    "status": AuditJobStatus.CRAWLING,
                    "progress": CRAWL_START_PROGRESS,
                    "message": "Discovering pages on your website...",
                },
            )

        self._store.update(job_id, mutate, self._retention.ttl_for)
        return claimed

    def report_crawl_progress(
        self,
        job_id: str,
        *,
        crawled: int,
        found: int,
        current_url: str,
        crawled_pages: Sequence[str],
        page_budget: int,
    ) -> AuditJob | None:
        current_path = crawled_pages[-1] if crawled_pages else "/"
        return self.patch(
            job_id,
            {
                "pages_crawled": crawled,
                "pages_found": max(found, crawled),
                "current_url": current_url,
                "crawled_pages": list(crawled_pages),
                "progress": crawl_progress(crawled, page_budget),
                "message": f"Scanning: {current_path}",
            },
            expected_status=AuditJobStatus.CRAWLING,
        )

    def finish_crawl(
        self,
        job_id: str,
        *,
        crawled_pages: Sequence[str],
        has_linkedin: bool,
    ) -> AuditJob | None:
        message = (
            "LinkedIn found. Analyzing messaging patterns..."
            if has_linkedin
            else "Analyzing messaging patterns..."
        )
        return self.patch(
            job_id,
            {
                "pages_found": len(crawled_pages),
                "pages_crawled": len(crawled_pages),
                "crawled_pages": list(crawled_pages),
                "progress": CRAWL_DONE_PROGRESS,
                "message": message,
            },
            expected_status=AuditJobStatus.CRAWLING,
        )

    def begin_analysis(self, job_id: str) -> AuditJob | None:
        return self.patch(
            job_id,
            {
                "status": AuditJobStatus.ANALYZING,
                "progress": ANALYZING_PROGRESS,
                "message": "Analyzing messaging patterns...",
            },
        )

    def report_analysis_step(self, job_id: str, *, progress: int, message: str) -> AuditJob | None:
        return self.patch(
            job_id,
            {"progress": progress, "message": message},
            expected_status=AuditJobStatus.ANALYZING,
        )

    def record_suggestions(
        self,
        job_id: str,
        suggestions: Sequence[SuggestedCompetitor],
    ) -> AuditJob | None:
        return self.patch(job_id, {"suggested_competitors": list(suggestions)})

    def complete(
        self,
        job_id: str,
        *,
        preview: AuditPreview,
        full_results: FullResults,
        requested_competitors: Sequence[str],
        competitor_records: Sequence[CompetitorRecord],
        competitors_timed_out: bool = False,
    ) -> AuditJob | None:
        """
        Attach results and move analyzing -> complete.

        The inline competitor records are merged into whatever comparison the
        job already carries, so a concurrent enrichment batch is not lost.
        """

        def mutate(job: AuditJob) -> AuditJob:
            comparison = build_comparison(
                your_score=preview.differentiation_score,
                requested=requested_competitors,
                records=competitor_records,
                previous=job.competitor_comparison,
                timed_out=competitors_timed_out,
            )
            return _apply(
                job,
                {
                    "status": AuditJobStatus.COMPLETE,
                    "progress": COMPLETE_PROGRESS,
                    "message": "Analysis complete",
                    "completed_at": utc_now(),
                    "preview": preview,
                    "full_results": full_results,
                    "competitor_comparison": comparison,
                },
            )

        completed = self._store.update(job_id, mutate, self._retention.ttl_for)
        if completed is not None:
            log_event(
                logger,
                logging.INFO,
                "audit_job_completed",
                job_id=job_id,
                score=preview.differentiation_score,
                competitors=len(completed.competitor_comparison.detailed_scores)
                if completed.competitor_comparison
                else 0,
            )
        return completed

    def fail(self, job_id: str, message: str) -> AuditJob | None:
        """
        Move a non-terminal job to `failed`. Failing an already failed job is a no-op.
        """

        def mutate(job: AuditJob) -> AuditJob | None:
            if job.status == AuditJobStatus.FAILED:
                return None
            return _apply(job, {"status": AuditJobStatus.FAILED, "message": message})

        return self._store.update(job_id, mutate, self._retention.ttl_for)

    def start_enrichment(
        self,
        job_id: str,
        *,
        competitors: Sequence[str] = (),
        social_urls: Sequence[str] = (),
        email: str | None = None,
    ) -> AuditJob:
        """
        Record contact/social updates and enter `analyzing_competitors` when
        there are competitors to analyze.

        Social URLs alone are only recorded; the enrichment settles as
        complete immediately.
        """

        def mutate(job: AuditJob) -> AuditJob:
            changes: dict[str, Any] = {}
            if email:
                changes["email"] = email
            new_socials = [url for url in social_urls if url not in job.social_urls]
            new_socials = new_socials[:MAX_SOCIAL_URLS_PER_REQUEST]
            if new_socials:
                changes["social_urls"] = [*job.social_urls, *new_socials]

            if competitors:
                changes.update(
                    {
                        "enrichment_status": EnrichmentStatus.ANALYZING_COMPETITORS,
                        "enrichment_progress": 0,
                        "enrichment_message": "Starting competitor analysis...",
                        "pending_competitors": list(competitors),
                        "competitor_progress": None,
                    }
                )
            elif new_socials:
                plural = "s" if len(new_socials) != 1 else ""
                changes.update(
                    {
                        "enrichment_status": EnrichmentStatus.COMPLETE,
                        "enrichment_progress": 100,
                        "enrichment_message": f"Added {len(new_socials)} social profile{plural} to analysis",
                    }
                )
            if not changes:
                return job
            return _apply(job, changes)

        updated = self._store.update(job_id, mutate, self._retention.ttl_for)
        if updated is None:
            raise AuditJobNotFoundError(f"Audit job not found: {job_id}")
        return updated

    def report_competitor_progress(
        self,
        job_id: str,
        *,
        progress: CompetitorProgress,
        enrichment_progress: int,
        message: str,
    ) -> AuditJob | None:
        def mutate(job: AuditJob) -> AuditJob | None:
            if job.enrichment_status != EnrichmentStatus.ANALYZING_COMPETITORS:
                return None
            return _apply(
                job,
                {
                    "competitor_progress": progress,
                    "enrichment_progress": max(job.enrichment_progress or 0, enrichment_progress),
                    "enrichment_message": message,
                },
            )

        return self._store.update(job_id, mutate, self._retention.ttl_for)

    def finish_enrichment(
        self,
        job_id: str,
        *,
        requested_competitors: Sequence[str],
        competitor_records: Sequence[CompetitorRecord],
    ) -> AuditJob | None:
        def mutate(job: AuditJob) -> AuditJob:
            comparison = build_comparison(
                your_score=_target_score(job),
                requested=requested_competitors,
                records=competitor_records,
                previous=job.competitor_comparison,
            )
            total = len(comparison.detailed_scores)
            plural = "s" if total != 1 else ""
            return _apply(
                job,
                {
                    "competitor_comparison": comparison,
                    "enrichment_status": EnrichmentStatus.COMPLETE,
                    "enrichment_progress": 100,
                    "enrichment_message": f"Analyzed {total} competitor{plural} with full category scoring",
                    "pending_competitors": [],
                    "competitor_progress": None,
                },
            )

        return self._store.update(job_id, mutate, self._retention.ttl_for)

    def fail_enrichment(self, job_id: str, message: str) -> AuditJob | None:
        return self.patch(
            job_id,
            {
                "enrichment_status": EnrichmentStatus.FAILED,
                "enrichment_message": message,
                "pending_competitors": [],
                "competitor_progress": None,
            },
        )

    def mark_paid(self, job_id: str) -> AuditJob | None:
        """
        Set the paid flag. Idempotent; `paid_at` keeps the first payment time.
        """

        def mutate(job: AuditJob) -> AuditJob:
            if job.paid:
                # Rewrite anyway so the post-payment TTL is refreshed.
                return job
            return _apply(job, {"paid": True, "paid_at": utc_now()})

        return self._store.update(job_id, mutate, self._retention.ttl_for)


def _target_score(job: AuditJob) -> int:
    if job.preview is not None:
        return job.preview.differentiation_score
    if job.competitor_comparison is not None:
        return job.competitor_comparison.your_score
    return 0


def _apply(job: AuditJob, changes: dict[str, Any]) -> AuditJob:
    """
    Validate and merge one patch into a job copy.
    """

    target_status = changes.get("status", job.status)
    if target_status != job.status and target_status not in ALLOWED_TRANSITIONS[job.status]:
        raise InvalidJobTransitionError(job.id, job.status, target_status)

    merged = {**job.model_dump(), **changes}
    if target_status == job.status and "progress" in changes:
        merged["progress"] = max(job.progress, changes["progress"])
    if job.paid:
        merged["paid"] = True
        merged["paid_at"] = job.paid_at
    if target_status != AuditJobStatus.COMPLETE:
        merged["full_results"] = None
    return AuditJob.model_validate(merged)


def supplement_competitors(
    requested: Sequence[str],
    job: AuditJob,
    *,
    limit: int,
) -> list[str]:
    """
    Fill a user's competitor list up to `limit` from the current comparison
    and then from stored suggestions.
    """

    existing = job.competitor_comparison.competitors if job.competitor_comparison else []
    suggested = [suggestion.domain for suggestion in job.suggested_competitors]
    return merge_domain_lists(requested, existing, suggested)[:limit]
