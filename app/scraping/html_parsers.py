"""
BeautifulSoup-based extraction of page text, headings, metadata and links.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from app.domain.audit_job import SpaWarning
from app.domain.crawl import PageMeta

SKIP_PATTERNS = [
    re.compile(pattern, flags=re.IGNORECASE)
    for pattern in (
        r"/wp-json/",
        r"/wp-admin/",
        r"/wp-content/uploads/",
        r"/wp-includes/",
        r"/feed/?$",
        r"/comments/feed/?$",
        r"/trackback/?$",
        r"/xmlrpc\.php",
        r"/wp-login\.php",
        r"/cart/?$",
        r"/checkout/?$",
        r"/my-account/?$",
        r"/add-to-cart",
        r"\?add-to-cart=",
        r"\?replytocom=",
        r"/page/\d+/?$",
        r"\.(pdf|jpg|jpeg|png|gif|svg|webp|mp4|mp3|zip|doc|docx|xls|xlsx)$",
    )
]

ERROR_TITLE_PATTERNS = [
    re.compile(pattern, flags=re.IGNORECASE)
    for pattern in (
        r"404",
        r"not found",
        r"error",
        r"sorry",
        r"page.*not.*found",
        r"cannot.*find",
        r"doesn.*exist",
        r"unavailable",
    )
]
ERROR_PHRASES = (
    "page not found",
    "page you requested",
    "page cannot be found",
    "404 error",
    "we couldn't find",
    "we can't find",
    "doesn't exist",
    "does not exist",
    "sorry, we can't",
    "sorry, something went wrong",
    "this page isn't available",
    "oops!",
    "the page you're looking for",
    "no longer available",
    "has been removed",
    "has been moved",
    "broken link",
)
ERROR_PAGE_MAX_CHARS = 2000

NAV_H1_WORDS = ("about", "home", "contact", "blog", "news", "careers", "login", "sign up", "menu", "navigation")
LINKEDIN_REGEX = re.compile(r"^https?://(?:www\.)?linkedin\.com/company/", flags=re.IGNORECASE)
COPYRIGHT_REGEX = re.compile(
    r"©\s*\d{4}\s+([A-Z][A-Za-z0-9\s&]+?)(?:\.|,|All|Inc|LLC|Ltd|Corp)",
    flags=re.IGNORECASE,
)
EMPTY_APP_ROOT_REGEX = re.compile(r'<div id="(app|root|__next)"[^>]*>(\s*)</div>')
ANGULAR_REGEX = re.compile(r"angular[.\-]", flags=re.IGNORECASE)

SPA_MESSAGE = (
    "This site appears to use JavaScript rendering. Some content may not be captured "
    "in the analysis. Results may be incomplete."
)
SPA_RENDERED_MESSAGE = (
    "This site uses JavaScript rendering. We used a headless browser but some content "
    "may still be incomplete."
)


class HTMLParsingLayer:
    """
    Deterministic parser utilities for HTML documents.
    """

    @staticmethod
    def soup(html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "html.parser")

    @classmethod
    def extract_text(cls, soup: BeautifulSoup) -> str:
        """
        Visible body text without scripts, styles or repeated page chrome.
        """

        body = soup.body or soup
        clone = BeautifulSoup(str(body), "html.parser")
        for node in clone.find_all(["script", "style", "noscript", "nav", "footer", "header", "template"]):
            node.decompose()
        return cls._clean_text(clone.get_text(" ", strip=True))

    @classmethod
    def extract_title(cls, soup: BeautifulSoup) -> str:
        if soup.title is not None:
            title = cls._clean_text(soup.title.get_text(" ", strip=True))
            if title:
                return title
        h1 = soup.find("h1")
        if h1 is not None:
            text = cls._clean_text(h1.get_text(" ", strip=True))
            if text:
                return text
        return "Untitled"

    @classmethod
    def extract_h1(cls, soup: BeautifulSoup) -> str | None:
        """
        Main hero headline, preferring H1s outside header/nav/footer that do
        not look like navigation labels.
        """

        def in_chrome(node: Tag) -> bool:
            return node.find_parent(["header", "nav", "footer"]) is not None

        all_h1 = [node for node in soup.find_all("h1")]
        candidates = [
            cls._clean_text(node.get_text(" ", strip=True)) for node in all_h1 if not in_chrome(node)
        ]
        candidates = [text for text in candidates if text]
        if not candidates:
            candidates = [cls._clean_text(node.get_text(" ", strip=True)) for node in all_h1]
            candidates = [text for text in candidates if text]
        if not candidates:
            return None

        def looks_like_nav(text: str) -> bool:
            lowered = text.lower()
            return len(text) < 20 and any(word in lowered for word in NAV_H1_WORDS)

        valid = [text for text in candidates if not looks_like_nav(text) and len(text) > 5]
        if valid:
            return valid[0]
        return max(candidates, key=len)

    @staticmethod
    def extract_meta(soup: BeautifulSoup) -> PageMeta:
        def content_of(**attrs: str) -> str | None:
            node = soup.find("meta", attrs=attrs)
            if node is None:
                return None
            value = (node.get("content") or "").strip()
            return value or None

        return PageMeta(
            description=content_of(name="description"),
            og_title=content_of(property="og:title"),
            og_description=content_of(property="og:description"),
        )

    @staticmethod
    def extract_og_site_name(soup: BeautifulSoup) -> str | None:
        node = soup.find("meta", attrs={"property": "og:site_name"})
        if node is None:
            return None
        value = (node.get("content") or "").strip()
        return value or None

    @classmethod
    def extract_footer_text(cls, soup: BeautifulSoup) -> str | None:
        footer = soup.find("footer")
        if footer is not None:
            text = cls._clean_text(footer.get_text(" ", strip=True))
            if 0 < len(text) < 2000:
                return text
        copyright_node = soup.find(string=re.compile("©"))
        if copyright_node is not None:
            return cls._clean_text(str(copyright_node))[:200]
        return None

    @classmethod
    def extract_links(cls, soup: BeautifulSoup, base_url: str) -> list[str]:
        """
        Same-host links normalized to origin + path, junk paths removed.
        """

        base_host = urlparse(base_url).hostname
        links: list[str] = []
        seen: set[str] = set()
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
                continue
            try:
                absolute = urlparse(urljoin(base_url, href))
            except ValueError:
                continue
            if absolute.scheme not in {"http", "https"} or absolute.hostname != base_host:
                continue
            normalized = normalize_page_url(f"{absolute.scheme}://{absolute.netloc}{absolute.path}")
            if should_skip_url(normalized) or normalized in seen:
                continue
            seen.add(normalized)
            links.append(normalized)
        return links

    @staticmethod
    def find_linkedin(soup: BeautifulSoup) -> str | None:
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if LINKEDIN_REGEX.match(href):
                return href
        return None

    @staticmethod
    def _clean_text(value: str) -> str:
        return re.sub(r"\s+", " ", value).strip()


def normalize_page_url(url: str) -> str:
    return url.rstrip("/")


def should_skip_url(url: str) -> bool:
    return any(pattern.search(url) for pattern in SKIP_PATTERNS)


def is_error_page(content: str, title: str) -> bool:
    if any(pattern.search(title) for pattern in ERROR_TITLE_PATTERNS):
        return True
    if len(content) < ERROR_PAGE_MAX_CHARS:
        lowered = content.lower()
        return any(phrase in lowered for phrase in ERROR_PHRASES)
    return False


def detect_spa(html: str, soup: BeautifulSoup) -> tuple[bool, list[str]]:
    """
    Return (is_spa, indicators) for a page that may need JavaScript to render.
    """

    indicators: list[str] = []
    if "__NEXT_DATA__" in html or "_next/static" in html:
        indicators.append("Next.js detected (may be SSR - checking content)")
    if "ng-app" in html or "ng-controller" in html or ANGULAR_REGEX.search(html):
        indicators.append("Angular detected")
    if "data-reactroot" in html or "__REACT_DEVTOOLS" in html:
        indicators.append("React SPA detected")
    if "data-v-" in html or "__VUE__" in html:
        indicators.append("Vue.js detected")
    if "ember-view" in html or "EmberENV" in html:
        indicators.append("Ember detected")

    if soup.body is not None:
        body = BeautifulSoup(str(soup.body), "html.parser")
        for node in body.find_all(["script", "style", "link", "meta"]):
            node.decompose()
        if len(HTMLParsingLayer._clean_text(body.get_text(" ", strip=True))) < 200:
            indicators.append("Very little visible content without JavaScript")

    if "<noscript" in html and "javascript" in html.lower():
        indicators.append("Site requires JavaScript to display content")
    if EMPTY_APP_ROOT_REGEX.search(html):
        indicators.append("Empty app container (content rendered by JavaScript)")

    minimal_content = any("Very little" in item or "Empty app" in item for item in indicators)
    framework = any(
        name in item for item in indicators for name in ("Angular", "React SPA", "Vue", "Ember")
    )
    return minimal_content or (framework and len(indicators) >= 2), indicators


def spa_warning(indicators: list[str], *, rendered: bool) -> SpaWarning:
    return SpaWarning(
        is_spa=True,
        indicators=indicators,
        message=SPA_RENDERED_MESSAGE if rendered else SPA_MESSAGE,
    )


def extract_company_name(
    *,
    og_site_name: str | None = None,
    title: str | None = None,
    footer_text: str | None = None,
) -> str | None:
    """
    Company name from og:site_name, then the page title, then a footer copyright line.
    """

    if og_site_name and 1 < len(og_site_name) < 100:
        return og_site_name

    if title:
        clean_title = re.split(r"[|\-–—]", title)[0].strip()
        lowered = clean_title.lower()
        if 1 < len(clean_title) < 50 and "home" not in lowered and "welcome" not in lowered:
            return clean_title

    if footer_text:
        match = COPYRIGHT_REGEX.search(footer_text)
        if match:
            name = match.group(1).strip()
            if 1 < len(name) < 50:
                return name
    return None
