"""
Website crawler built on requests and BeautifulSoup.

Breadth-first over same-host links, seeded with the priority paths that
usually carry positioning copy (about, services, case studies, ...).
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from app.config import CrawlerSettings, get_crawler_settings
from app.domain.crawl import CrawledPage, CrawlProgressCallback, CrawlResult
from app.logging_utils import log_event
from app.scraping.html_parsers import (
    HTMLParsingLayer,
    detect_spa,
    extract_company_name,
    is_error_page,
    normalize_page_url,
    should_skip_url,
    spa_warning,
)
from app.scraping.url_safety import is_private_url

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

PRIORITY_PATHS = (
    "/about",
    "/about-us",
    "/who-we-are",
    "/services",
    "/capabilities",
    "/what-we-do",
    "/contact",
    "/contact-us",
    "/case-studies",
    "/projects",
    "/portfolio",
    "/work",
    "/testimonials",
    "/clients",
    "/customers",
    "/team",
    "/leadership",
    "/our-team",
    "/why-us",
    "/why-choose-us",
    "/process",
    "/how-we-work",
)


class PageFetchError(RuntimeError):
    pass


class WebsiteCrawler:
    """
    Crawl adapter: `crawl(url, max_pages, on_progress) -> CrawlResult`.

    Page-level failures are collected in `CrawlResult.errors`; the crawl
    itself only returns zero pages when nothing could be fetched.

    One crawler is shared by concurrent competitor workers, so each thread
    gets its own session from `session_factory`. An explicit `session` is
    used as-is by every thread.
    """

    def __init__(
        self,
        *,
        settings: CrawlerSettings | None = None,
        session: requests.Session | None = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.settings = settings or get_crawler_settings()
        self._shared_session = session
        self._session_factory = session_factory
        self._thread_state = threading.local()
        self.request_headers = {
            "User-Agent": self.settings.user_agent,
            "Accept": "text/html,application/xhtml+xml",
        }

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._thread_state, "session", None)
        if session is None:
            session = self._session_factory()
            self._thread_state.session = session
        return session

    def crawl(
        self,
        url: str,
        max_pages: int,
        on_progress: CrawlProgressCallback | None = None,
    ) -> CrawlResult:
        result = CrawlResult()
        if self._is_blocked(url):
            log_event(logger, logging.WARNING, "crawl_rejected_private_url", url=url)
            result.errors.append("Cannot crawl private/internal URLs")
            return result

        start = urlparse(url)
        origin = f"{start.scheme}://{start.netloc}"
        queue: deque[str] = deque([normalize_page_url(f"{origin}{start.path}") or origin])
        queued: set[str] = set(queue)
        for path in PRIORITY_PATHS:
            candidate = f"{origin}{path}"
            if candidate not in queued:
                queue.append(candidate)
                queued.add(candidate)

        visited: set[str] = set()
        while queue and len(result.pages) < max_pages:
            page_url = normalize_page_url(queue.popleft())
            if page_url in visited or should_skip_url(page_url):
                continue
            visited.add(page_url)

            try:
                html = self.fetch_html(page_url)
            except (PageFetchError, requests.RequestException) as exc:
                result.errors.append(f"Failed to fetch: {page_url}")
                log_event(logger, logging.DEBUG, "page_fetch_failed", page_url=page_url, error=str(exc))
                continue

            soup = HTMLParsingLayer.soup(html)
            if not result.pages:
                html, soup = self._inspect_homepage(page_url, html, soup, result)

            title = HTMLParsingLayer.extract_title(soup)
            content = HTMLParsingLayer.extract_text(soup)
            if is_error_page(content, title):
                log_event(logger, logging.INFO, "error_page_skipped", page_url=page_url)
                continue

            page = CrawledPage(
                url=page_url,
                title=title,
                h1=HTMLParsingLayer.extract_h1(soup),
                content=content,
                links=HTMLParsingLayer.extract_links(soup, page_url),
                meta=HTMLParsingLayer.extract_meta(soup),
            )
            result.pages.append(page)
            if result.linkedin_url is None:
                result.linkedin_url = HTMLParsingLayer.find_linkedin(soup)

            for link in page.links:
                if link not in visited and link not in queued:
                    queue.append(link)
                    queued.add(link)

            if on_progress is not None:
                on_progress(len(result.pages), len(visited) + len(queue), page_url)

            if self.settings.polite_delay_seconds > 0:
                time.sleep(self.settings.polite_delay_seconds)

        log_event(
            logger,
            logging.INFO,
            "crawl_finished",
            url=url,
            pages=len(result.pages),
            errors=len(result.errors),
            spa=result.spa_warning is not None,
        )
        return result

    def fetch_html(self, url: str) -> str:
        """
        Fetch one HTML page. Raises PageFetchError for blocked hosts, non-HTML
        responses and exhausted retries.
        """

        if self._is_blocked(url):
            raise PageFetchError(f"Blocked private URL: {url}")
        response = self._request_with_retry(url)
        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type.lower():
            raise PageFetchError(f"Non-HTML content type={content_type!r} url={url}")
        return response.text

    def _inspect_homepage(
        self,
        page_url: str,
        html: str,
        soup: BeautifulSoup,
        result: CrawlResult,
    ) -> tuple[str, BeautifulSoup]:
        is_spa, indicators = detect_spa(html, soup)
        if not is_spa:
            result.company_name = extract_company_name(
                og_site_name=HTMLParsingLayer.extract_og_site_name(soup),
                title=HTMLParsingLayer.extract_title(soup),
                footer_text=HTMLParsingLayer.extract_footer_text(soup),
            )
            return html, soup

        log_event(logger, logging.INFO, "spa_detected", page_url=page_url, indicators=indicators)
        rendered = self._render(page_url)
        if rendered is None:
            result.spa_warning = spa_warning(indicators, rendered=False)
            return html, soup

        rendered_html = str(rendered.get("html") or "")
        metadata = rendered.get("metadata") or {}
        result.company_name = extract_company_name(
            og_site_name=metadata.get("ogSiteName"),
            title=metadata.get("title"),
            footer_text=metadata.get("footerText"),
        )
        rendered_soup = HTMLParsingLayer.soup(rendered_html)
        still_spa, rendered_indicators = detect_spa(rendered_html, rendered_soup)
        if still_spa:
            result.spa_warning = spa_warning(rendered_indicators, rendered=True)
        return rendered_html, rendered_soup

    def _render(self, url: str) -> dict[str, Any] | None:
        """
        Ask the headless render service for the JavaScript-rendered page.
        Returns None when the service is not configured or fails.
        """

        if not self.settings.render_service_url or not self.settings.render_service_api_key:
            return None
        try:
            response = self.session.post(
                f"{self.settings.render_service_url.rstrip('/')}/render",
                json={"url": url, "waitFor": 3000, "timeout": 30000},
                headers={"X-API-Key": self.settings.render_service_api_key},
                timeout=self.settings.render_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            log_event(logger, logging.WARNING, "render_service_failed", url=url, error=str(exc))
            return None
        if not isinstance(payload, dict) or not payload.get("success"):
            return None
        return payload

    def _is_blocked(self, url: str) -> bool:
        return not self.settings.allow_private_hosts and is_private_url(url)

    def _request_with_retry(self, url: str) -> requests.Response:
        last_error: Exception | None = None

        for attempt in range(self.settings.max_retries + 1):
            try:
                response = self.session.get(
                    url,
                    headers=self.request_headers,
                    timeout=self.settings.page_timeout_seconds,
                    allow_redirects=True,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise PageFetchError(f"HTTP {status_code} for {url}") from exc

            if attempt >= self.settings.max_retries:
                break

            backoff_seconds = self.settings.backoff_initial_seconds * (
                self.settings.backoff_multiplier**attempt
            )
            time.sleep(backoff_seconds)

        raise PageFetchError(f"Failed to fetch {url} after retries: {last_error}")
