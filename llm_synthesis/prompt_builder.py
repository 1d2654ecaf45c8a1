"""Structured prompt builders for messaging analysis."""

import json
from typing import Dict, List, Optional

from llm_synthesis.adapter import (
    COMPETITOR_ANALYSIS_MARKER,
    DISCOVERY_MARKER,
    SITE_ANALYSIS_MARKER,
)

SITE_PAGE_CONTENT_LIMIT = 3000
COMPETITOR_CONTENT_LIMIT = 6000
DISCOVERY_CONTENT_LIMIT = 2000

_SITE_EXAMPLE_OUTPUT = json.dumps(
    {
        "differentiationScore": 42,
        "categoryScores": {
            "firstImpression": 5,
            "differentiation": 3,
            "customerClarity": 6,
            "storyStructure": 4,
            "trustSignals": 5,
            "buttonClarity": 7,
        },
        "topIssues": [
            {
                "title": "Headline could belong to any competitor",
                "description": "The hero promises quality and service without saying for whom.",
                "severity": "critical",
                "findings": [
                    {
                        "phrase": "quality solutions for your business",
                        "problem": "No audience, no outcome",
                        "rewrite": "Precision-machined parts for medical device OEMs, shipped in 10 days",
                        "location": "Homepage hero",
                        "pageUrl": "https://example.com",
                    }
                ],
            }
        ],
        "pageAnalysis": [
            {
                "url": "https://example.com/about",
                "title": "About",
                "score": 55,
                "issues": [
                    {
                        "phrase": "committed to excellence",
                        "problem": "Unprovable claim",
                        "rewrite": "98.7% on-time delivery since 2019",
                        "location": "Intro paragraph",
                    }
                ],
            }
        ],
        "proofPoints": [
            {
                "quote": "Founded in 1987",
                "source": "https://example.com/about",
                "suggestedUse": "Move into the homepage hero",
            }
        ],
        "voiceAnalysis": {
            "currentTone": "Formal and generic",
            "authenticVoice": "Practical engineers who explain trade-offs",
            "examples": ["We rebuilt the line in a weekend so the client never missed a shipment"],
        },
        "suggestedCompetitors": [
            {"domain": "competitor.com", "confidence": "high", "reason": "Same niche and region"}
        ],
    },
    indent=2,
)

_SITE_INSTRUCTIONS = """\
You are a B2B messaging strategist auditing a company website.

STRICT RULES:
- Quote phrases from the provided pages verbatim; never invent copy.
- Return strictly valid JSON matching the example shape below.
- Do NOT include any text outside the JSON object.
- Do NOT wrap the JSON in markdown code fences.
"""

_COMPETITOR_INSTRUCTIONS = """\
You are a messaging analyst scoring a competitor homepage.

Score each category from 0 to 10:
- firstImpression: is it clear within 5 seconds what they do and for whom?
- differentiation: could this copy belong to any competitor?
- customerClarity: is the target customer explicit?
- storyStructure: does the page move from problem to solution to proof?
- trustSignals: are there specific numbers, names, certifications, testimonials?
- buttonClarity: do calls to action say what happens next?

List 2-3 strengths and 2-3 weaknesses. Every item MUST quote the page text
verbatim inside double quotes. Do not contradict yourself: a strength and a
weakness must not describe the same aspect.

Return ONLY a JSON object of the form:
{"categoryScores": {"firstImpression": 0, "differentiation": 0,
"customerClarity": 0, "storyStructure": 0, "trustSignals": 0,
"buttonClarity": 0}, "strengths": ["..."], "weaknesses": ["..."]}
"""

_DISCOVERY_INSTRUCTIONS = """\
Based on this company's homepage, name up to 5 direct competitors: companies
selling a similar offer to a similar customer.

Return ONLY a JSON array of domains, for example ["competitor1.com", "competitor2.com"].
Do not include the company itself.
"""


class SitePromptBuilder:
    """Builds the deterministic prompts sent to the reasoning service.

    Each prompt carries a task marker so a single adapter (including the
    mock) can tell the three request kinds apart.
    """

    def build_site_analysis_prompt(
        self,
        url: str,
        pages: List[Dict[str, str]],
        company_name: Optional[str] = None,
    ) -> str:
        """Build the full-site analysis prompt.

        Args:
            url: The audited website.
            pages: Crawled pages as dicts with ``url``, ``title`` and
                ``content`` keys.
            company_name: Name extracted during the crawl, if any.

        Returns:
            A fully formatted prompt string ready for LLM consumption.
        """
        sections = self._format_pages(pages)
        company_line = f"Company: {company_name}\n" if company_name else ""

        return (
            f"{SITE_ANALYSIS_MARKER}\n"
            f"{_SITE_INSTRUCTIONS}\n"
            f"# WEBSITE\n\n"
            f"URL: {url}\n{company_line}Pages analysed: {len(pages)}\n\n"
            f"{sections}\n"
            f"# TASK\n\n"
            f"1. differentiationScore: 0-100, how distinct the messaging is from "
            f"commodity competitors.\n"
            f"2. categoryScores: six 0-10 scores (firstImpression, differentiation, "
            f"customerClarity, storyStructure, trustSignals, buttonClarity).\n"
            f"3. topIssues: the 10 most important messaging issues, each with "
            f"severity critical|warning|info and findings quoting the page.\n"
            f"4. pageAnalysis: one entry per page with a 0-100 score and issues.\n"
            f"5. proofPoints: 3-5 concrete proof points already on the site that "
            f"deserve more prominence.\n"
            f"6. voiceAnalysis: current tone versus the authentic voice visible in "
            f"the best passages.\n"
            f"7. suggestedCompetitors: 5 likely direct competitors (domain only, "
            f"confidence high|medium|low, short reason).\n\n"
            f"# EXAMPLE OUTPUT\n\n"
            f"```json\n{_SITE_EXAMPLE_OUTPUT}\n```\n"
        )

    def build_competitor_prompt(self, url: str, content: str) -> str:
        """Build the per-competitor deep-analysis prompt."""
        return (
            f"{COMPETITOR_ANALYSIS_MARKER}\n"
            f"{_COMPETITOR_INSTRUCTIONS}\n"
            f"# COMPETITOR\n\n"
            f"URL: {url}\n\n"
            f"{content[:COMPETITOR_CONTENT_LIMIT]}\n"
        )

    def build_discovery_prompt(
        self,
        hostname: str,
        content: str,
        description: Optional[str] = None,
    ) -> str:
        """Build the competitor-discovery prompt from homepage data."""
        description_line = f"Description: {description}\n" if description else ""
        return (
            f"{DISCOVERY_MARKER}\n"
            f"{_DISCOVERY_INSTRUCTIONS}\n"
            f"Website: {hostname}\n"
            f"{description_line}\n"
            f"Homepage content:\n{content[:DISCOVERY_CONTENT_LIMIT]}\n"
        )

    def _format_pages(self, pages: List[Dict[str, str]]) -> str:
        parts = []
        for page in pages:
            title = page.get("title") or "Untitled"
            body = (page.get("content") or "")[:SITE_PAGE_CONTENT_LIMIT]
            parts.append(f"## {title}\nURL: {page.get('url', '')}\n\n{body}\n")
        return "\n".join(parts)
