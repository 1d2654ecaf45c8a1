"""
tests/fakes.py

Builders and in-process fakes shared by the test modules.

Nothing here touches the network: crawls, scoring and the reasoning
service are replaced by deterministic stand-ins.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence

from app.domain.audit_job import CompetitorRecord, SuggestedCompetitor
from app.domain.crawl import CrawledPage, CrawlProgressCallback, CrawlResult, PageMeta
from app.domain.site_analysis import RankedIssue, SiteAnalysis
from app.services.competitor_comparison import competitor_domain
from llm_synthesis.adapter import BaseLLMAdapter


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_page(
    url: str,
    content: str = "We help regional manufacturers ship parts faster.",
    *,
    title: str = "Example Co | Precision parts",
    h1: str | None = "Precision parts in 5 days",
    description: str | None = "Precision parts for regional manufacturers",
) -> CrawledPage:
    return CrawledPage(
        url=url,
        title=title,
        content=content,
        h1=h1,
        meta=PageMeta(description=description),
    )


def make_crawl(base_url: str, paths: Sequence[str] = ("", "/about", "/services"), **kwargs) -> CrawlResult:
    return CrawlResult(
        pages=[make_page(f"{base_url}{path}") for path in paths],
        **kwargs,
    )


def make_analysis(
    score: int = 62,
    *,
    suggestions: Sequence[SuggestedCompetitor] = (),
    issues: int = 2,
) -> SiteAnalysis:
    return SiteAnalysis(
        differentiation_score=score,
        top_issues=[
            RankedIssue(title=f"Issue {index}", description=f"Description {index}")
            for index in range(1, issues + 1)
        ],
        suggested_competitors=list(suggestions),
    )


def make_record(domain: str, score: int = 60, **kwargs) -> CompetitorRecord:
    return CompetitorRecord(domain=domain, url=f"https://{domain}", score=score, **kwargs)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeCrawler:
    """
    Crawl adapter returning canned results keyed by domain.

    Tracks every call and the peak number of concurrent crawls.
    """

    def __init__(
        self,
        results: dict[str, CrawlResult] | None = None,
        *,
        delays: dict[str, float] | None = None,
        error: Exception | None = None,
        default: Callable[[str], CrawlResult] | None = None,
    ) -> None:
        self.results = results or {}
        self.delays = delays or {}
        self.error = error
        self.default = default or (lambda url: make_crawl(url.rstrip("/"), paths=("",)))
        self.calls: list[str] = []
        self.max_active = 0
        self._active = 0
        self._lock = threading.Lock()

    def crawl(
        self,
        url: str,
        max_pages: int,
        on_progress: CrawlProgressCallback | None = None,
    ) -> CrawlResult:
        key = competitor_domain(url)
        with self._lock:
            self.calls.append(key)
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            delay = self.delays.get(key, 0.0)
            if delay:
                time.sleep(delay)
            if self.error is not None:
                raise self.error
            result = self.results.get(key) or self.default(url)
            if on_progress is not None:
                for index, page in enumerate(result.pages[:max_pages], start=1):
                    on_progress(index, len(result.pages), page.url)
            return result
        finally:
            with self._lock:
                self._active -= 1


class FakeScorer:
    def __init__(
        self,
        analysis: SiteAnalysis | None = None,
        *,
        error: Exception | None = None,
        on_score: Callable[[], None] | None = None,
    ) -> None:
        self.analysis = analysis or make_analysis()
        self.error = error
        self.on_score = on_score
        self.calls = 0

    def score(self, crawl: CrawlResult, url: str) -> SiteAnalysis:
        self.calls += 1
        if self.on_score is not None:
            self.on_score()
        if self.error is not None:
            raise self.error
        return self.analysis


class FakeDiscovery:
    def __init__(self, suggestions: Sequence[SuggestedCompetitor] = ()) -> None:
        self.suggestions = list(suggestions)
        self.calls = 0

    def discover(self, crawl: CrawlResult, url: str) -> list[SuggestedCompetitor]:
        self.calls += 1
        return list(self.suggestions)


class ScriptedLLMAdapter(BaseLLMAdapter):
    """
    Returns queued replies in order; the last reply repeats. An Exception
    in the queue is raised instead of returned.
    """

    def __init__(self, *replies: str | Exception) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []
        self._lock = threading.Lock()

    def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        with self._lock:
            self.prompts.append(prompt)
            reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingExecutor:
    """
    Task executor that queues tasks instead of running them.
    """

    def __init__(self) -> None:
        self.tasks: list[tuple[Callable[..., None], tuple]] = []
        self._lock = threading.Lock()

    def submit(self, task: Callable[..., None], *args, **kwargs) -> None:
        with self._lock:
            self.tasks.append((task, args))

    def run_all(self) -> None:
        while self.tasks:
            task, args = self.tasks.pop(0)
            task(*args)


class ManualClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
