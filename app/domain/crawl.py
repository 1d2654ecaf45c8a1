"""
app/domain/crawl.py

Ephemeral crawl models. A crawl result lives for one pipeline run and is
only summarized into the job, never stored whole.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urlparse

from app.domain.audit_job import SpaWarning

CrawlProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class PageMeta:
    description: str | None = None
    og_title: str | None = None
    og_description: str | None = None


@dataclass(frozen=True)
class CrawledPage:
    """
    Text content and metadata of one fetched HTML page.
    """

    url: str
    title: str
    content: str
    h1: str | None = None
    links: list[str] = field(default_factory=list)
    meta: PageMeta = field(default_factory=PageMeta)

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"


@dataclass
class CrawlResult:
    pages: list[CrawledPage] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    linkedin_url: str | None = None
    spa_warning: SpaWarning | None = None
    company_name: str | None = None

    @property
    def homepage(self) -> CrawledPage | None:
        return self.pages[0] if self.pages else None
