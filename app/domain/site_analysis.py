"""
app/domain/site_analysis.py

Output contract of the scoring adapter.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.domain.audit_job import (
    CategoryScores,
    Finding,
    PageAnalysis,
    ProofPoint,
    Severity,
    SuggestedCompetitor,
    VoiceAnalysis,
)


class RankedIssue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    description: str
    severity: Severity = "warning"
    findings: list[Finding] = Field(default_factory=list)


class SiteAnalysis(BaseModel):
    """
    Scored messaging analysis of the crawled target site.

    `differentiation_score` is 0-100 where higher means better differentiated.
    """

    model_config = ConfigDict(extra="ignore")

    differentiation_score: int = Field(ge=0, le=100)
    category_scores: CategoryScores | None = None
    top_issues: list[RankedIssue] = Field(default_factory=list)
    page_analysis: list[PageAnalysis] = Field(default_factory=list)
    proof_points: list[ProofPoint] = Field(default_factory=list)
    voice_analysis: VoiceAnalysis = Field(default_factory=VoiceAnalysis)
    suggested_competitors: list[SuggestedCompetitor] = Field(default_factory=list)
