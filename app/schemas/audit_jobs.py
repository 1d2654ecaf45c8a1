"""
Schemas for audit job creation, status, enrichment and payment endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.domain.audit_job import (
    AuditJob,
    AuditPreview,
    CompetitorComparison,
    CompetitorProgress,
    FullResults,
)


class AuditCreateRequest(BaseModel):
    url: str | None = None
    email: str | None = None


class AuditEnrichmentRequest(BaseModel):
    competitors: list[str] | None = None
    social_urls: list[str] | None = None
    email: str | None = None


class AuditEnrichmentResponse(BaseModel):
    success: bool = True
    message: str
    enrichment_status: str | None = None
    competitors: list[str] = Field(default_factory=list)


class AuditPaidResponse(BaseModel):
    success: bool = True
    analysis_id: str
    paid: bool
    paid_at: datetime | None = None


class AuditJobSnapshot(BaseModel):
    """
    Client view of a job. `full_results` is withheld until the job is paid;
    the competitor comparison is always visible.
    """

    id: str
    url: str
    status: str
    progress: int
    message: str
    pages_found: int
    pages_crawled: int
    current_url: str
    crawled_pages: list[str] = Field(default_factory=list)
    created_at: datetime
    completed_at: datetime | None = None
    paid: bool = False
    preview: AuditPreview | None = None
    has_full_results: bool = False
    full_results: FullResults | None = None
    competitor_comparison: CompetitorComparison | None = None
    enrichment_status: str | None = None
    enrichment_progress: int | None = None
    enrichment_message: str | None = None
    pending_competitors: list[str] = Field(default_factory=list)
    social_urls: list[str] = Field(default_factory=list)
    competitor_progress: CompetitorProgress | None = None

    @classmethod
    def from_job(cls, job: AuditJob) -> AuditJobSnapshot:
        return cls(
            id=job.id,
            url=job.url,
            status=job.status,
            progress=job.progress,
            message=job.message,
            pages_found=job.pages_found,
            pages_crawled=job.pages_crawled,
            current_url=job.current_url,
            crawled_pages=job.crawled_pages,
            created_at=job.created_at,
            completed_at=job.completed_at,
            paid=job.paid,
            preview=job.preview,
            has_full_results=job.full_results is not None,
            full_results=job.full_results if job.paid else None,
            competitor_comparison=job.competitor_comparison,
            enrichment_status=job.enrichment_status,
            enrichment_progress=job.enrichment_progress,
            enrichment_message=job.enrichment_message,
            pending_competitors=job.pending_competitors,
            social_urls=job.social_urls,
            competitor_progress=job.competitor_progress,
        )


class AuditAcceptedResponse(BaseModel):
    success: bool = True
    analysis_id: str
    status: str
    message: str = "Analysis started"
    analysis: AuditJobSnapshot


class AuditStatusResponse(BaseModel):
    success: bool = True
    analysis: AuditJobSnapshot
