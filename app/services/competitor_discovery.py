"""
Fallback competitor discovery for sites where scoring suggested none.
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from app.domain.audit_job import SuggestedCompetitor
from app.domain.crawl import CrawlResult
from app.logging_utils import log_event
from app.services.llm_factory import get_llm_adapter
from llm_synthesis.adapter import BaseLLMAdapter
from llm_synthesis.prompt_builder import SitePromptBuilder
from llm_synthesis.validator import validate_domain_list

logger = logging.getLogger(__name__)

DISCOVERY_MAX_TOKENS = 500
DISCOVERY_LIMIT = 5
DISCOVERY_REASON = "Identified from homepage content"


class CompetitorDiscoveryService:
    """
    One bounded reasoning call over the homepage. Never raises: any call or
    parse failure yields an empty list.
    """

    def __init__(
        self,
        *,
        adapter: BaseLLMAdapter | None = None,
        prompt_builder: SitePromptBuilder | None = None,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or SitePromptBuilder()

    def discover(self, crawl: CrawlResult, url: str) -> list[SuggestedCompetitor]:
        homepage = crawl.homepage
        if homepage is None:
            return []

        hostname = urlparse(url).hostname or url
        prompt = self._prompt_builder.build_discovery_prompt(
            hostname,
            homepage.content,
            homepage.meta.description,
        )
        try:
            adapter = self._adapter or get_llm_adapter()
            domains = validate_domain_list(
                adapter.generate(prompt, max_tokens=DISCOVERY_MAX_TOKENS),
                limit=DISCOVERY_LIMIT,
            )
        except Exception as exc:
            log_event(logger, logging.WARNING, "competitor_discovery_failed", url=url, error=str(exc))
            return []

        log_event(logger, logging.INFO, "competitors_discovered", url=url, count=len(domains))
        return [
            SuggestedCompetitor(domain=domain, confidence="medium", reason=DISCOVERY_REASON)
            for domain in domains
        ]
