"""
Deep analysis of one competitor homepage.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.config import AuditPipelineSettings, get_audit_pipeline_settings, get_llm_settings
from app.domain.audit_job import CategoryScores, CompetitorRecord
from app.logging_utils import log_event
from app.scraping.crawler import WebsiteCrawler
from app.services.competitor_comparison import competitor_domain
from app.services.heuristic_scoring import (
    CompetitorAssessment,
    floor_weaknesses,
    score_competitor_heuristically,
)
from app.services.llm_factory import get_llm_adapter
from app.services.timeouts import GAVE_UP, run_with_timeout
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import SitePromptBuilder
from llm_synthesis.retry import LLMRetryExhaustedError, generate_with_retry
from llm_synthesis.validator import LLMOutputValidationError, validate_competitor_deep

logger = logging.getLogger(__name__)

COMPETITOR_MAX_TOKENS = 1000

# (strength keywords, weakness keywords that contradict them)
CONTRADICTION_GROUPS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("proof", "specific", "evidence", "data", "numbers", "claims"),
        ("limited", "missing", "lack", "no proof", "not specific", "generic claims"),
    ),
    (
        ("clear", "obvious", "direct"),
        ("unclear", "confusing", "vague"),
    ),
    (
        ("customer", "audience", "target"),
        ("no customer", "no audience", "unclear audience"),
    ),
    (
        ("trust", "credibility", "testimonial"),
        ("no trust", "lacks credibility", "missing testimonial"),
    ),
)


def competitor_url(domain: str) -> str:
    candidate = domain.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    return candidate


def drop_contradictions(strengths: Sequence[str], weaknesses: Sequence[str]) -> list[str]:
    """
    Drop weaknesses that claim the absence of something a strength claims.
    """

    strengths_text = " ".join(strength.lower() for strength in strengths)
    kept: list[str] = []
    for weakness in weaknesses:
        lowered = weakness.lower()
        contradicted = any(
            any(keyword in strengths_text for keyword in strength_keywords)
            and any(keyword in lowered for keyword in weakness_keywords)
            for strength_keywords, weakness_keywords in CONTRADICTION_GROUPS
        )
        if contradicted:
            log_event(logger, logging.DEBUG, "competitor_weakness_filtered", weakness=weakness)
            continue
        kept.append(weakness)
    return kept


class CompetitorAnalyzer:
    """
    Worker for one competitor: crawl the homepage, score it and return a
    record, or None when the site could not be fetched in time.
    """

    def __init__(
        self,
        *,
        crawler: WebsiteCrawler | None = None,
        adapter: BaseLLMAdapter | None = None,
        prompt_builder: SitePromptBuilder | None = None,
        settings: AuditPipelineSettings | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._crawler = crawler or WebsiteCrawler()
        self._adapter = adapter
        self._prompt_builder = prompt_builder or SitePromptBuilder()
        self._settings = settings or get_audit_pipeline_settings()
        self._max_retries = max_retries if max_retries is not None else get_llm_settings().max_retries

    def analyze(self, domain: str) -> CompetitorRecord | None:
        url = competitor_url(domain)
        crawl = run_with_timeout(
            self._crawler.crawl,
            url,
            1,
            timeout_seconds=self._settings.competitor_crawl_timeout_seconds,
            thread_name_prefix="competitor-crawl",
        )
        if crawl is GAVE_UP:
            log_event(logger, logging.WARNING, "competitor_crawl_timed_out", domain=domain)
            return None
        if not crawl.pages:
            log_event(logger, logging.WARNING, "competitor_crawl_empty", domain=domain, errors=crawl.errors)
            return None

        page = crawl.pages[0]
        assessment, source = self._assess(url, page.content)
        return CompetitorRecord(
            domain=competitor_domain(domain) or domain,
            url=url,
            score=assessment.score,
            category_scores=assessment.category_scores,
            strengths=assessment.strengths,
            weaknesses=assessment.weaknesses,
            headline=page.h1 or page.title or None,
            source=source,
        )

    def _assess(self, url: str, content: str) -> tuple[CompetitorAssessment, str]:
        try:
            return self._assess_with_llm(url, content), "ai"
        except (LLMRetryExhaustedError, LLMOutputValidationError) as exc:
            log_event(logger, logging.WARNING, "competitor_ai_unusable", url=url, error=str(exc))
        except Exception:
            logger.exception("Competitor AI analysis failed for %s", url)
        return (
            score_competitor_heuristically(content, good_score_threshold=self._settings.good_score_threshold),
            "heuristic",
        )

    def _assess_with_llm(self, url: str, content: str) -> CompetitorAssessment:
        adapter = self._adapter or get_llm_adapter()
        output = generate_with_retry(
            adapter,
            self._prompt_builder.build_competitor_prompt(url, content),
            validate_competitor_deep,
            max_retries=self._max_retries,
            max_tokens=COMPETITOR_MAX_TOKENS,
        )
        score = output.overall_score()
        weaknesses = drop_contradictions(output.strengths, output.weaknesses)
        if not weaknesses:
            weaknesses = floor_weaknesses(score, self._settings.good_score_threshold)
        return CompetitorAssessment(
            score=score,
            category_scores=CategoryScores.model_validate(output.category_scores.model_dump()),
            strengths=list(output.strengths),
            weaknesses=weaknesses,
        )
