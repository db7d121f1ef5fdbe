# apps/crawler/analyzer.py

"""
Domain analysis - robots.txt rules and sitemap URL discovery.
"""

import logging
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse
from urllib.robotparser import RobotFileParser

from bs4 import BeautifulSoup
from django.conf import settings

from .http_client import HttpClient, HttpClientConfig
from .rate_limit import RateLimiter

logger = logging.getLogger(__name__)


ROBOTS_TIMEOUT = 10.0
SITEMAP_HEAD_TIMEOUT = 5.0
SITEMAP_TIMEOUT = 15.0

COMMON_SITEMAP_PATHS = [
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap1.xml",
    "/post-sitemap.xml",
    "/page-sitemap.xml",
    "/wp-sitemap.xml",
]

MAX_SITEMAP_URLS = 500
MAX_NESTED_SITEMAPS = 5
MAX_SEED_URLS = 100


class RobotsRules:
    """Parsed robots.txt. An absent or unreadable file allows everything."""

    def __init__(self, content: str | None = None, url: str = "", agent: str | None = None):
        self.content = content
        self.url = url
        self.agent = agent or getattr(settings, "CRAWL_ROBOTS_AGENT", "ContactScout")
        self._parser: RobotFileParser | None = None

        if content is not None:
            self._parser = RobotFileParser(url)
            self._parser.parse(content.splitlines())

    @property
    def present(self) -> bool:
        return self._parser is not None

    def can_fetch(self, url: str) -> bool:
        if self._parser is None:
            return True
        return self._parser.can_fetch(self.agent, url)

    def sitemaps(self) -> list[str]:
        if self._parser is None:
            return []
        return list(self._parser.site_maps() or [])

    def crawl_delay(self) -> float | None:
        if self._parser is None:
            return None
        delay = self._parser.crawl_delay(self.agent)
        return float(delay) if delay is not None else None


@dataclass
class DomainAnalysis:
    robots_txt: str | None = None
    robots: RobotsRules = field(default_factory=RobotsRules)
    sitemaps: list[str] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


def analyze_domain(
    url: str,
    http_client: HttpClient | None = None,
    rate_limiter: RateLimiter | None = None,
) -> DomainAnalysis:
    """
    Read robots.txt and sitemaps for the site at url.
    Returns seed URLs for the crawler; never raises.
    """
    http_client = http_client or HttpClient(HttpClientConfig())

    try:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid domain URL: {url}")
        base_url = f"{parsed.scheme}://{parsed.netloc}"

        robots_txt, robots = fetch_robots(base_url, http_client, rate_limiter)
        sitemaps = discover_sitemaps(base_url, robots, http_client, rate_limiter)
        urls = extract_sitemap_urls(sitemaps, base_url, http_client, rate_limiter)

        logger.info(
            f"Analyzed {base_url}: robots={'yes' if robots.present else 'no'}, "
            f"sitemaps={len(sitemaps)}, urls={len(urls)}"
        )
        return DomainAnalysis(
            robots_txt=robots_txt,
            robots=robots,
            sitemaps=sitemaps,
            urls=urls[:MAX_SEED_URLS],
        )

    except Exception as e:
        logger.error(f"Domain analysis failed for {url}: {e}")
        return DomainAnalysis(error=str(e))


def fetch_robots(
    base_url: str,
    http_client: HttpClient,
    rate_limiter: RateLimiter | None = None,
) -> tuple[str | None, RobotsRules]:
    robots_url = f"{base_url}/robots.txt"
    _wait(rate_limiter, robots_url)

    response = http_client.get(robots_url, timeout=ROBOTS_TIMEOUT, retry=False)
    if not response.ok:
        if response.error:
            logger.debug(f"Failed to fetch robots.txt for {base_url}: {response.error}")
        return None, RobotsRules(url=robots_url)

    return response.text, RobotsRules(response.text, url=robots_url)


def discover_sitemaps(
    base_url: str,
    robots: RobotsRules,
    http_client: HttpClient,
    rate_limiter: RateLimiter | None = None,
) -> list[str]:
    """Sitemaps from robots.txt directives plus conventional paths that exist."""
    sitemaps: list[str] = []

    for sitemap_url in robots.sitemaps():
        if sitemap_url not in sitemaps:
            sitemaps.append(sitemap_url)

    for path in COMMON_SITEMAP_PATHS:
        sitemap_url = f"{base_url}{path}"
        if sitemap_url in sitemaps:
            continue
        _wait(rate_limiter, sitemap_url)
        if http_client.head(sitemap_url, timeout=SITEMAP_HEAD_TIMEOUT).ok:
            sitemaps.append(sitemap_url)

    return sitemaps


def extract_sitemap_urls(
    sitemap_urls: list[str],
    base_url: str,
    http_client: HttpClient,
    rate_limiter: RateLimiter | None = None,
) -> list[str]:
    """
    Page URLs listed in the given sitemaps. Sitemap indexes are expanded one
    level (first 5 children); nested indexes are not followed. Stops
    accumulating at 500 URLs.
    """
    collected: list[str] = []
    seen: set[str] = set()

    def add(urls: list[str]) -> None:
        for page_url in urls:
            if len(collected) >= MAX_SITEMAP_URLS:
                return
            normalized = _absolute_url(page_url, base_url)
            if normalized and normalized not in seen:
                seen.add(normalized)
                collected.append(normalized)

    for sitemap_url in sitemap_urls:
        if len(collected) >= MAX_SITEMAP_URLS:
            break

        kind, locs = _read_sitemap(sitemap_url, http_client, rate_limiter)
        if kind == "urlset":
            add(locs)
        elif kind == "sitemapindex":
            for nested_url in locs[:MAX_NESTED_SITEMAPS]:
                if len(collected) >= MAX_SITEMAP_URLS:
                    break
                nested_kind, nested_locs = _read_sitemap(nested_url, http_client, rate_limiter)
                if nested_kind == "urlset":
                    add(nested_locs)
                elif nested_kind == "sitemapindex":
                    logger.debug(f"Not expanding nested sitemap index {nested_url}")

    return collected


def parse_sitemap(xml: str) -> tuple[str | None, list[str]]:
    """Return ("urlset" | "sitemapindex" | None, <loc> values)."""
    soup = BeautifulSoup(xml or "", "xml")

    index = soup.find("sitemapindex")
    if index is not None:
        return "sitemapindex", _locs(index, "sitemap")

    urlset = soup.find("urlset")
    if urlset is not None:
        return "urlset", _locs(urlset, "url")

    return None, []


def _read_sitemap(
    sitemap_url: str,
    http_client: HttpClient,
    rate_limiter: RateLimiter | None,
) -> tuple[str | None, list[str]]:
    _wait(rate_limiter, sitemap_url)
    response = http_client.get(sitemap_url, timeout=SITEMAP_TIMEOUT)
    if not response.ok:
        return None, []

    try:
        return parse_sitemap(response.text)
    except Exception as e:
        logger.warning(f"Failed to parse sitemap {sitemap_url}: {e}")
        return None, []


def _locs(parent, child_name: str) -> list[str]:
    locs = []
    for child in parent.find_all(child_name, recursive=False):
        loc = child.find("loc")
        if loc is not None and loc.get_text(strip=True):
            locs.append(loc.get_text(strip=True))
    return locs


def _absolute_url(url: str, base_url: str) -> str | None:
    absolute = urljoin(base_url + "/", url.strip())
    parsed = urlparse(absolute)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return absolute.split("#")[0]


def _wait(rate_limiter: RateLimiter | None, url: str) -> None:
    if rate_limiter is not None:
        rate_limiter.wait_if_needed(url)
