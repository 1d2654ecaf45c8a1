"""
Background pipelines of an audit job.

`run` drives crawl -> scoring -> discovery (fallback) -> inline competitor
batch -> complete. `run_enrichment` analyzes user-added competitors and
merges them into the existing comparison.
"""

from __future__ import annotations

import logging
from functools import partial
from urllib.parse import urlparse

from app.config import AuditPipelineSettings, get_audit_pipeline_settings
from app.domain.audit_job import (
    AuditPreview,
    CompetitorProgress,
    Finding,
    FullResults,
    PreviewIssue,
    SiteSnapshot,
    VoiceSummary,
)
from app.domain.crawl import CrawlResult
from app.domain.site_analysis import SiteAnalysis
from app.logging_utils import log_event
from app.scraping.crawler import WebsiteCrawler
from app.services.competitor_batch import BatchOutcome, CompetitorBatchScheduler, rank_suggestions
from app.services.competitor_discovery import CompetitorDiscoveryService
from app.services.job_state_machine import (
    COMPETITOR_BATCH_PROGRESS,
    DISCOVERY_PROGRESS,
    SCORED_PROGRESS,
    AuditJobStateMachine,
)
from app.services.progress_writer import CoalescingProgressWriter
from app.services.site_scoring import LLMSiteScorer, SiteScorer

logger = logging.getLogger(__name__)

CRAWL_FAILED_MESSAGE = "Could not access website. Please check the URL."
ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again."
ENRICHMENT_EMPTY_MESSAGE = "Could not fetch competitor websites"
ENRICHMENT_FAILED_MESSAGE = "Could not analyze competitors"

PREVIEW_ISSUE_LIMIT = 10


class CrawlFailedError(RuntimeError):
    pass


def _path_of(url: str) -> str:
    return urlparse(url).path or "/"


def build_preview(crawl: CrawlResult, analysis: SiteAnalysis) -> AuditPreview:
    """
    Free preview of the analysis. Findings without a page default to the
    homepage; the first finding overall becomes the teaser.
    """

    homepage = crawl.homepage
    homepage_url = homepage.url if homepage else ""
    issues = [
        PreviewIssue(
            title=issue.title,
            description=issue.description,
            severity=issue.severity,
            findings=[
                finding.model_copy(update={"page_url": finding.page_url or homepage_url})
                for finding in issue.findings
            ],
        )
        for issue in analysis.top_issues[:PREVIEW_ISSUE_LIMIT]
    ]
    all_findings: list[Finding] = [finding for issue in issues for finding in issue.findings]

    hostname = urlparse(homepage_url).hostname or ""
    if hostname.startswith("www."):
        hostname = hostname[4:]

    return AuditPreview(
        differentiation_score=analysis.differentiation_score,
        pages_scanned=len(crawl.pages),
        top_issues=issues,
        site_snapshot=SiteSnapshot(
            title=crawl.company_name or hostname.split(".")[0],
            description=(homepage.meta.description or "") if homepage else "",
            h1=homepage.h1 if homepage else None,
            has_linkedin=crawl.linkedin_url is not None,
            pages_found=[page.path for page in crawl.pages],
            spa_warning=crawl.spa_warning,
        ),
        teaser_finding=all_findings[0] if all_findings else None,
        voice_summary=VoiceSummary(
            current_tone=analysis.voice_analysis.current_tone,
            authentic_voice=analysis.voice_analysis.authentic_voice,
        ),
        category_scores=analysis.category_scores,
    )


def build_full_results(analysis: SiteAnalysis) -> FullResults:
    return FullResults(
        page_by_page=analysis.page_analysis,
        proof_points=analysis.proof_points,
        voice_analysis=analysis.voice_analysis,
    )


class AuditPipeline:
    def __init__(
        self,
        *,
        state_machine: AuditJobStateMachine,
        crawler: WebsiteCrawler | None = None,
        scorer: SiteScorer | None = None,
        discovery: CompetitorDiscoveryService | None = None,
        batch: CompetitorBatchScheduler | None = None,
        settings: AuditPipelineSettings | None = None,
    ) -> None:
        self._state_machine = state_machine
        self._crawler = crawler or WebsiteCrawler()
        self._scorer = scorer or LLMSiteScorer()
        self._discovery = discovery or CompetitorDiscoveryService()
        self._batch = batch or CompetitorBatchScheduler()
        self._settings = settings or get_audit_pipeline_settings()

    def run(self, job_id: str) -> None:
        """
        Run the main pipeline for a claimed job. Never raises; every phase
        error ends in `failed` with a user-facing message.
        """

        job = self._state_machine.get(job_id)
        if job is None:
            log_event(logger, logging.WARNING, "audit_pipeline_job_missing", job_id=job_id)
            return

        log_event(logger, logging.INFO, "audit_pipeline_started", job_id=job_id, url=job.url)
        try:
            crawl = self._crawl(job_id, job.url)
            self._analyze(job_id, job.url, crawl)
        except CrawlFailedError as exc:
            log_event(logger, logging.WARNING, "audit_crawl_failed", job_id=job_id, error=str(exc))
            self._state_machine.fail(job_id, CRAWL_FAILED_MESSAGE)
        except Exception:
            logger.exception("Audit pipeline failed for job %s", job_id)
            self._state_machine.fail(job_id, ANALYSIS_FAILED_MESSAGE)

    def run_enrichment(self, job_id: str, competitors: list[str]) -> None:
        """
        Analyze user-requested competitors and merge the records into the
        job's comparison. Never raises.
        """

        try:
            outcome = self._batch.run_enrichment(
                competitors,
                on_progress=partial(self._report_enrichment_progress, job_id),
            )
            if not outcome.records:
                self._state_machine.fail_enrichment(job_id, ENRICHMENT_EMPTY_MESSAGE)
                return
            self._state_machine.finish_enrichment(
                job_id,
                requested_competitors=outcome.requested,
                competitor_records=outcome.records,
            )
        except Exception:
            logger.exception("Competitor enrichment failed for job %s", job_id)
            self._state_machine.fail_enrichment(job_id, ENRICHMENT_FAILED_MESSAGE)

    def _report_enrichment_progress(
        self,
        job_id: str,
        progress: CompetitorProgress,
        enrichment_progress: int,
        message: str,
    ) -> None:
        self._state_machine.report_competitor_progress(
            job_id,
            progress=progress,
            enrichment_progress=enrichment_progress,
            message=message,
        )

    def _crawl(self, job_id: str, url: str) -> CrawlResult:
        max_pages = self._settings.max_pages
        crawled_paths: list[str] = []
        writer = CoalescingProgressWriter(
            partial(self._state_machine.report_crawl_progress, job_id),
            name=f"crawl-progress-{job_id[:8]}",
        )

        def on_progress(crawled: int, found: int, current_url: str) -> None:
            path = _path_of(current_url)
            if path not in crawled_paths:
                crawled_paths.append(path)
            writer.submit(
                crawled=crawled,
                found=found,
                current_url=current_url,
                crawled_pages=list(crawled_paths),
                page_budget=max_pages,
            )

        with writer:
            try:
                crawl = self._crawler.crawl(url, max_pages, on_progress)
            except Exception as exc:
                raise CrawlFailedError(f"Crawler raised for {url}: {exc}") from exc

        if not crawl.pages:
            raise CrawlFailedError(f"No pages crawled for {url}: {crawl.errors[:3]}")

        self._state_machine.finish_crawl(
            job_id,
            crawled_pages=[page.path for page in crawl.pages],
            has_linkedin=crawl.linkedin_url is not None,
        )
        return crawl

    def _analyze(self, job_id: str, url: str, crawl: CrawlResult) -> None:
        self._state_machine.begin_analysis(job_id)
        analysis = self._scorer.score(crawl, url)
        self._state_machine.report_analysis_step(
            job_id, progress=SCORED_PROGRESS, message="Generating recommendations..."
        )

        preview = build_preview(crawl, analysis)
        full_results = build_full_results(analysis)

        suggestions = list(analysis.suggested_competitors)
        if not suggestions:
            self._state_machine.report_analysis_step(
                job_id, progress=DISCOVERY_PROGRESS, message="Discovering competitors..."
            )
            suggestions = self._discovery.discover(crawl, url)
        if suggestions:
            self._state_machine.record_suggestions(job_id, suggestions)

        domains = rank_suggestions(suggestions, self._settings.max_competitors)
        outcome = BatchOutcome(requested=domains)
        if domains:
            self._state_machine.report_analysis_step(
                job_id, progress=COMPETITOR_BATCH_PROGRESS, message="Analyzing competitors..."
            )
            outcome = self._batch.run_inline(domains)

        self._state_machine.complete(
            job_id,
            preview=preview,
            full_results=full_results,
            requested_competitors=outcome.requested,
            competitor_records=outcome.records,
            competitors_timed_out=outcome.timed_out,
        )
