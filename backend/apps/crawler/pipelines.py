# apps/crawler/pipelines.py

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urljoin, urlparse, urlunparse

from django.conf import settings

from .analyzer import RobotsRules
from .classifier import (
    CommentDescriptor,
    FormDescriptor,
    detect_comment_sections,
    detect_forms,
    parse_html,
)
from .contacts import ContactInfo, extract_contacts
from .http_client import CrawlResponse, HttpClient, HttpClientConfig
from .rate_limit import DomainRateLimiters

logger = logging.getLogger(__name__)


PAGE_TIMEOUT = 15.0
MAX_ROBOTS_CRAWL_DELAY = 30.0
DEFAULT_PORTS = {"http": 80, "https": 443}

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class PageResult:
    """Everything learned from one crawled page."""
    url: str
    title: str = ""
    forms: list[FormDescriptor] = field(default_factory=list)
    comments: list[CommentDescriptor] = field(default_factory=list)
    contacts: ContactInfo = field(default_factory=ContactInfo)
    links: list[str] = field(default_factory=list)

    @property
    def has_form(self) -> bool:
        return bool(self.forms)

    @property
    def has_comments(self) -> bool:
        return bool(self.comments)


@dataclass
class PipelineStats:
    """Tracks stats during a crawl run."""
    pages_visited: int = 0
    pages_successful: int = 0
    pages_skipped: int = 0
    robots_blocked: int = 0
    links_discovered: int = 0
    forms_found: int = 0
    comments_found: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "pages_visited": self.pages_visited,
            "pages_successful": self.pages_successful,
            "pages_skipped": self.pages_skipped,
            "robots_blocked": self.robots_blocked,
            "links_discovered": self.links_discovered,
            "forms_found": self.forms_found,
            "comments_found": self.comments_found,
            "error_count": len(self.errors),
        }


def normalize_url(url: str, base_url: str | None = None) -> str | None:
    """
    Absolute URL with lowercased scheme and host, no fragment, no default
    port and "/" for an empty path. None for non-http(s) URLs.
    """
    try:
        absolute = urljoin(base_url, url.strip()) if base_url else url.strip()
        parsed = urlparse(absolute)
        scheme = parsed.scheme.lower()
        if scheme not in DEFAULT_PORTS or not parsed.hostname:
            return None

        host = parsed.hostname.lower()
        port = parsed.port
    except ValueError:
        return None

    netloc = host if port in (None, DEFAULT_PORTS[scheme]) else f"{host}:{port}"
    return urlunparse((scheme, netloc, parsed.path or "/", parsed.params, parsed.query, ""))


def url_origin(url: str) -> tuple[str, str, int] | None:
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme not in DEFAULT_PORTS or not parsed.hostname:
        return None
    try:
        port = parsed.port or DEFAULT_PORTS[scheme]
    except ValueError:
        return None
    return scheme, parsed.hostname.lower(), port


class PageCrawler:
    """
    Breadth-first crawl of a single site:
    1. Seed the queue with the start URL and sitemap URLs
    2. Skip anything off-origin, already seen or disallowed by robots.txt
    3. Wait on the per-host rate limiter, then fetch
    4. Classify forms/comments and extract contacts from HTML pages
    5. Queue same-origin links

    Synchronous; the worker runs it in a thread.
    """

    def __init__(
        self,
        max_pages: int = 20,
        robots: RobotsRules | None = None,
        http_client: HttpClient | None = None,
        rate_limiters: DomainRateLimiters | None = None,
        min_delay: float | None = None,
        max_delay: float | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.max_pages = max_pages
        self.robots = robots or RobotsRules()
        self.http_client = http_client or HttpClient(HttpClientConfig(timeout=PAGE_TIMEOUT))

        # robots.txt Crawl-delay raises the campaign's floor, never lowers it
        crawl_delay = self.robots.crawl_delay()
        if crawl_delay:
            crawl_delay = min(crawl_delay, MAX_ROBOTS_CRAWL_DELAY)
            if min_delay is None:
                min_delay = getattr(settings, "CRAWL_DEFAULT_MIN_DELAY", 2.0)
            if max_delay is None:
                max_delay = getattr(settings, "CRAWL_DEFAULT_MAX_DELAY", 4.0)
            if crawl_delay > min_delay:
                min_delay = crawl_delay
                max_delay = max(max_delay, crawl_delay)

        self.rate_limiters = rate_limiters or DomainRateLimiters(min_delay, max_delay)
        self.on_progress = on_progress

        self.stats = PipelineStats()
        self.visited: set[str] = set()
        self.queued: set[str] = set()
        self.queue: deque[str] = deque()

    def crawl(self, start_url: str, initial_urls: list[str] | None = None) -> list[PageResult]:
        start = normalize_url(start_url)
        if start is None:
            logger.warning(f"Not crawling invalid URL: {start_url}")
            return []

        origin = url_origin(start)
        results: list[PageResult] = []

        for url in [start, *(initial_urls or [])]:
            self._enqueue(url)

        while self.queue and len(self.visited) < self.max_pages:
            url = self.queue.popleft()

            if url in self.visited:
                continue
            if url_origin(url) != origin:
                continue
            if not self.robots.can_fetch(url):
                logger.info(f"Skipping {url} - disallowed by robots.txt")
                self.stats.robots_blocked += 1
                continue

            self.visited.add(url)
            self.stats.pages_visited += 1
            self._report(f"Crawling: {url} ({len(self.visited)}/{self.max_pages})")

            try:
                page = self._process_url(url, origin)
            except Exception as e:
                logger.error(f"Failed to crawl {url}: {e}")
                self.stats.errors.append(f"{url}: {e}")
                continue

            if page is None:
                self.stats.pages_skipped += 1
                continue

            results.append(page)
            self.stats.pages_successful += 1
            self.stats.forms_found += len(page.forms)
            self.stats.comments_found += len(page.comments)

            for link in page.links:
                if self._enqueue(link):
                    self.stats.links_discovered += 1

        logger.info(f"Crawl complete for {start}: {self.stats.to_dict()}")
        return results

    def _enqueue(self, url: str) -> bool:
        normalized = normalize_url(url)
        if normalized is None or normalized in self.visited or normalized in self.queued:
            return False
        self.queued.add(normalized)
        self.queue.append(normalized)
        return True

    def _report(self, message: str) -> None:
        logger.debug(message)
        if self.on_progress is not None:
            try:
                self.on_progress(message, len(self.visited), self.max_pages)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def _process_url(self, url: str, origin: tuple[str, str, int]) -> PageResult | None:
        """Fetch and analyze a single URL. None for anything that isn't a 2xx HTML page."""
        self.rate_limiters.wait_if_needed(url)

        response = self._fetch(url)

        final_url = normalize_url(response.url) or url
        if final_url != url:
            if url_origin(final_url) != origin:
                logger.info(f"Skipping {url} - redirected off-site to {response.url}")
                return None
            if final_url in self.visited:
                return None
            self.visited.add(final_url)

        if not response.ok or not response.is_html:
            logger.debug(
                f"Skipping {url} (status={response.status_code}, "
                f"type={response.content_type or '-'}, error={response.error or '-'})"
            )
            return None

        return self.parse_page(final_url, response.text, origin)

    def _fetch(self, url: str) -> CrawlResponse:
        return self.http_client.get(url, timeout=PAGE_TIMEOUT)

    @staticmethod
    def parse_page(url: str, html: str, origin: tuple[str, str, int] | None = None) -> PageResult:
        soup = parse_html(html)
        origin = origin or url_origin(url)

        title = ""
        if soup.title is not None:
            title = soup.title.get_text(strip=True)
        if not title:
            h1 = soup.find("h1")
            title = h1.get_text(" ", strip=True) if h1 is not None else ""

        return PageResult(
            url=url,
            title=title[:512],
            forms=detect_forms(soup, url),
            comments=detect_comment_sections(soup, url),
            contacts=extract_contacts(soup),
            links=extract_links(soup, url, origin),
        )


def extract_links(soup, page_url: str, origin: tuple[str, str, int] | None) -> list[str]:
    """Same-origin links without fragments, in document order."""
    links: list[str] = []
    seen: set[str] = set()

    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
            continue

        normalized = normalize_url(href, page_url)
        if normalized is None or url_origin(normalized) != origin:
            continue
        if normalized not in seen:
            seen.add(normalized)
            links.append(normalized)

    return links


def crawl_pages(
    start_url: str,
    max_pages: int = 20,
    robots: RobotsRules | None = None,
    initial_urls: list[str] | None = None,
    min_delay: float | None = None,
    max_delay: float | None = None,
    on_progress: ProgressCallback | None = None,
    http_client: HttpClient | None = None,
    rate_limiters: DomainRateLimiters | None = None,
) -> list[PageResult]:
    """
    Convenience function to run a crawl.
    Used by the work coordinator.
    """
    crawler = PageCrawler(
        max_pages=max_pages,
        robots=robots,
        http_client=http_client,
        rate_limiters=rate_limiters,
        min_delay=min_delay,
        max_delay=max_delay,
        on_progress=on_progress,
    )
    return crawler.crawl(start_url, initial_urls)
