"""
app/domain/audit_job.py

Persisted audit job record and the nested models it carries.

The whole record round-trips through the job store as one JSON document,
so every nested type is a pydantic model rather than a dataclass.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class AuditJobStatus:
    PENDING = "pending"
    CRAWLING = "crawling"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STATUSES: frozenset[str] = frozenset({AuditJobStatus.COMPLETE, AuditJobStatus.FAILED})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    AuditJobStatus.PENDING: frozenset({AuditJobStatus.CRAWLING, AuditJobStatus.FAILED}),
    AuditJobStatus.CRAWLING: frozenset({AuditJobStatus.ANALYZING, AuditJobStatus.FAILED}),
    AuditJobStatus.ANALYZING: frozenset({AuditJobStatus.COMPLETE, AuditJobStatus.FAILED}),
    AuditJobStatus.COMPLETE: frozenset(),
    AuditJobStatus.FAILED: frozenset(),
}


class EnrichmentStatus:
    ANALYZING_COMPETITORS = "analyzing_competitors"
    COMPLETE = "complete"
    FAILED = "failed"


class CompetitorProgressStatus:
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


Severity = Literal["critical", "warning", "info"]
Confidence = Literal["high", "medium", "low"]


class _JobModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CategoryScores(_JobModel):
    """
    Six 0-10 messaging category scores.
    """

    first_impression: int = Field(default=5, ge=0, le=10)
    differentiation: int = Field(default=5, ge=0, le=10)
    customer_clarity: int = Field(default=5, ge=0, le=10)
    story_structure: int = Field(default=5, ge=0, le=10)
    trust_signals: int = Field(default=5, ge=0, le=10)
    button_clarity: int = Field(default=5, ge=0, le=10)

    def average(self) -> float:
        values = list(self.model_dump().values())
        return sum(values) / len(values)


class CompetitorRecord(_JobModel):
    """
    Scored result of analyzing one competitor homepage.

    `domain` is the identity key used when merging records across batches.
    """

    domain: str
    url: str
    score: int = Field(ge=0, le=100)
    category_scores: CategoryScores | None = None
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    headline: str | None = None
    source: Literal["ai", "heuristic"] = "ai"


class CompetitorComparison(_JobModel):
    competitors: list[str] = Field(default_factory=list)
    your_score: int = 0
    average_score: int = 0
    gaps: list[str] = Field(default_factory=list)
    detailed_scores: list[CompetitorRecord] = Field(default_factory=list)
    timed_out: bool = False


class CompetitorProgressEntry(_JobModel):
    domain: str
    status: str = CompetitorProgressStatus.PENDING
    preliminary_score: int | None = None
    early_findings: list[str] = Field(default_factory=list, max_length=2)


class CompetitorProgress(_JobModel):
    total: int = 0
    completed: int = 0
    competitors: list[CompetitorProgressEntry] = Field(default_factory=list)


class SuggestedCompetitor(_JobModel):
    domain: str
    confidence: Confidence = "medium"
    reason: str = ""


class Finding(_JobModel):
    """
    Before/after phrase rewrite suggestion attached to an issue.
    """

    phrase: str = ""
    problem: str = ""
    rewrite: str = ""
    location: str = ""
    page_url: str = ""


class PreviewIssue(_JobModel):
    title: str
    description: str
    severity: Severity = "warning"
    findings: list[Finding] = Field(default_factory=list)


class SpaWarning(_JobModel):
    is_spa: bool = True
    indicators: list[str] = Field(default_factory=list)
    message: str = ""


class SiteSnapshot(_JobModel):
    title: str = ""
    description: str = ""
    h1: str | None = None
    has_linkedin: bool = False
    pages_found: list[str] = Field(default_factory=list)
    spa_warning: SpaWarning | None = None


class VoiceSummary(_JobModel):
    current_tone: str = ""
    authentic_voice: str = ""


class AuditPreview(_JobModel):
    """
    Free preview shown before payment.
    """

    differentiation_score: int = Field(ge=0, le=100)
    pages_scanned: int = 0
    top_issues: list[PreviewIssue] = Field(default_factory=list)
    site_snapshot: SiteSnapshot = Field(default_factory=SiteSnapshot)
    teaser_finding: Finding | None = None
    voice_summary: VoiceSummary | None = None
    category_scores: CategoryScores | None = None


class PageIssue(_JobModel):
    phrase: str = ""
    problem: str = ""
    rewrite: str = ""
    location: str = ""


class PageAnalysis(_JobModel):
    url: str = ""
    title: str = "Page"
    score: int = Field(default=70, ge=0, le=100)
    issues: list[PageIssue] = Field(default_factory=list)


class ProofPoint(_JobModel):
    quote: str = ""
    source: str = ""
    suggested_use: str = ""


class VoiceAnalysis(_JobModel):
    current_tone: str = "Corporate/generic"
    authentic_voice: str = "Unable to determine"
    examples: list[str] = Field(default_factory=list)


class FullResults(_JobModel):
    """
    Paid report body. Only attached once the job is complete.
    """

    page_by_page: list[PageAnalysis] = Field(default_factory=list)
    proof_points: list[ProofPoint] = Field(default_factory=list)
    voice_analysis: VoiceAnalysis = Field(default_factory=VoiceAnalysis)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditJob(_JobModel):
    """
    One analysis run, as persisted in the job store.
    """

    id: str
    url: str
    email: str | None = None
    status: str = AuditJobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    message: str = "Starting analysis..."
    pages_found: int = 0
    pages_crawled: int = 0
    current_url: str = ""
    crawled_pages: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
    paid: bool = False
    paid_at: datetime | None = None
    preview: AuditPreview | None = None
    full_results: FullResults | None = None
    competitor_comparison: CompetitorComparison | None = None
    suggested_competitors: list[SuggestedCompetitor] = Field(default_factory=list)

    enrichment_status: str | None = None
    enrichment_progress: int | None = None
    enrichment_message: str | None = None
    pending_competitors: list[str] = Field(default_factory=list)
    social_urls: list[str] = Field(default_factory=list)
    competitor_progress: CompetitorProgress | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
