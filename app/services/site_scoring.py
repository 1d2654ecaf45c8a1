"""
Scoring adapter: turns a crawl into a SiteAnalysis.

The reasoning service is asked first; an unusable reply or a transport
error falls back to the rule-based analysis, which has the same shape.
"""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import urlparse

from app.config import get_llm_settings
from app.domain.audit_job import (
    CategoryScores,
    Finding,
    PageAnalysis,
    PageIssue,
    ProofPoint,
    SuggestedCompetitor,
    VoiceAnalysis,
)
from app.domain.crawl import CrawlResult
from app.domain.site_analysis import RankedIssue, SiteAnalysis
from app.logging_utils import log_event
from app.services.heuristic_scoring import category_scores_from_score
from app.services.llm_factory import get_llm_adapter
from app.services.messaging_rules import detect_industry, phrase_rewrites
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import SitePromptBuilder
from llm_synthesis.retry import LLMRetryExhaustedError, generate_with_retry
from llm_synthesis.schema import SiteAnalysisOutput
from llm_synthesis.validator import LLMOutputValidationError, validate_site_analysis

logger = logging.getLogger(__name__)

FALLBACK_PAGE_LIMIT = 10
FALLBACK_ISSUES_PER_PAGE = 3
FALLBACK_FINDINGS_LIMIT = 5

_FIXED_FALLBACK_ISSUES = (
    ("Missing specific proof points", "Your claims need specific numbers, names, and examples to be believable.", "critical"),
    ("Generic value proposition", "Your homepage doesn't clearly state what makes you different from competitors.", "critical"),
    ("Weak headline structure", "Your headlines describe what you do, not why it matters to the buyer.", "warning"),
    ("No clear ideal customer", "Visitors can't tell if they're the right fit for your services.", "warning"),
    ("Buried social proof", "Testimonials and case studies are hidden instead of front and center.", "warning"),
    ("Generic CTAs", '"Contact Us" and "Learn More" don\'t give visitors a reason to click.', "warning"),
    ("Missing trust signals", "No visible certifications, awards, or third-party validation on key pages.", "info"),
    ("Features before benefits", "You lead with what you do instead of the outcomes you deliver.", "info"),
    ("No competitive positioning", "Nothing explains why someone should choose you over alternatives.", "info"),
)


class SiteScorer(Protocol):
    def score(self, crawl: CrawlResult, url: str) -> SiteAnalysis:
        ...


def rule_based_analysis(crawl: CrawlResult, url: str) -> SiteAnalysis:
    """
    Offline analysis: commodity-phrase matches per page with industry-specific
    rewrites, plus a fixed list of common messaging issues.
    """

    pages = crawl.pages[:FALLBACK_PAGE_LIMIT]
    rewrites = phrase_rewrites(detect_industry(page.content for page in crawl.pages))

    total_matches = 0
    page_analysis: list[PageAnalysis] = []
    findings: list[Finding] = []
    for page in pages:
        lowered = page.content.lower()
        issues: list[PageIssue] = []
        for phrase, rewrite in rewrites.items():
            if phrase not in lowered:
                continue
            total_matches += 1
            issue = PageIssue(
                phrase=f'"{phrase}"',
                problem=rewrite.problem,
                rewrite=rewrite.rewrite,
                location="Found in page content",
            )
            issues.append(issue)
            if len(findings) < FALLBACK_FINDINGS_LIMIT:
                findings.append(Finding(**issue.model_dump(), page_url=page.url))
        page_analysis.append(
            PageAnalysis(
                url=page.url,
                title=page.title or "Page",
                score=max(10, 70 - len(issues) * 15),
                issues=issues[:FALLBACK_ISSUES_PER_PAGE],
            )
        )

    top_issues: list[RankedIssue] = []
    if total_matches:
        top_issues.append(
            RankedIssue(
                title="Commodity language detected",
                description=(
                    f"Found {total_matches} generic phrases across your site "
                    "that appear on competitor websites."
                ),
                severity="critical",
                findings=findings,
            )
        )
    top_issues.extend(
        RankedIssue(title=title, description=description, severity=severity)
        for title, description, severity in _FIXED_FALLBACK_ISSUES
    )

    score = max(10, 65 - total_matches * 5)
    hostname = urlparse(url).hostname or "this site"
    return SiteAnalysis(
        differentiation_score=score,
        category_scores=category_scores_from_score(score),
        top_issues=top_issues[:10],
        page_analysis=page_analysis,
        proof_points=[
            ProofPoint(
                quote="Look for testimonials buried in your content",
                source="Case studies or project pages",
                suggested_use="Move to homepage above the fold",
            ),
            ProofPoint(
                quote="Find specific numbers (project count, years, savings)",
                source="About page or capability pages",
                suggested_use="Use in headlines instead of vague claims",
            ),
        ],
        voice_analysis=VoiceAnalysis(
            current_tone=f"{hostname} uses professional but generic language typical of the industry",
            authentic_voice="Look at social media posts or internal communications for more authentic voice",
            examples=[
                'Website: "We are committed to excellence"',
                "Authentic: Use real stories and specific outcomes",
                "Recommendation: Write like you talk to clients in person",
            ],
        ),
    )


def analysis_from_output(output: SiteAnalysisOutput) -> SiteAnalysis:
    category_scores = (
        CategoryScores.model_validate(output.category_scores.model_dump())
        if output.category_scores is not None
        else category_scores_from_score(output.differentiation_score)
    )
    return SiteAnalysis(
        differentiation_score=output.differentiation_score,
        category_scores=category_scores,
        top_issues=[RankedIssue.model_validate(issue.model_dump()) for issue in output.top_issues],
        page_analysis=[PageAnalysis.model_validate(page.model_dump()) for page in output.page_analysis],
        proof_points=[ProofPoint.model_validate(point.model_dump()) for point in output.proof_points],
        voice_analysis=VoiceAnalysis.model_validate(output.voice_analysis.model_dump()),
        suggested_competitors=[
            SuggestedCompetitor.model_validate(item.model_dump()) for item in output.suggested_competitors
        ],
    )


class LLMSiteScorer:
    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter | None = None,
        prompt_builder: SitePromptBuilder | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or SitePromptBuilder()
        self._max_retries = max_retries if max_retries is not None else get_llm_settings().max_retries

    def score(self, crawl: CrawlResult, url: str) -> SiteAnalysis:
        prompt = self._prompt_builder.build_site_analysis_prompt(
            url,
            [{"url": page.url, "title": page.title, "content": page.content} for page in crawl.pages],
            company_name=crawl.company_name,
        )
        try:
            output = generate_with_retry(
                self._adapter or get_llm_adapter(),
                prompt,
                validate_site_analysis,
                max_retries=self._max_retries,
            )
        except (LLMRetryExhaustedError, LLMOutputValidationError) as exc:
            log_event(logger, logging.WARNING, "site_scoring_fallback", url=url, reason="unusable_reply", error=str(exc))
            return rule_based_analysis(crawl, url)
        except Exception:
            logger.exception("Site scoring request failed for %s", url)
            log_event(logger, logging.WARNING, "site_scoring_fallback", url=url, reason="request_failed")
            return rule_based_analysis(crawl, url)
        return analysis_from_output(output)
