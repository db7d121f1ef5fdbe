# apps/crawler/http_client.py

import httpx
import time
import logging
from dataclasses import dataclass

from django.conf import settings

logger = logging.getLogger(__name__)


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ContactScout/1.0)"


@dataclass
class CrawlResponse:
    """Standardized response from HTTP client."""
    url: str
    status_code: int | None
    content: bytes
    text: str
    headers: dict[str, str]
    duration_ms: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").split(";")[0].strip().lower()

    @property
    def is_html(self) -> bool:
        return self.content_type in ("text/html", "application/xhtml+xml")


@dataclass
class HttpClientConfig:
    """Configuration for the HTTP client."""
    timeout: float = 15.0
    max_retries: int = 2
    retry_delay: float = 1.0
    retry_backoff: float = 2.0  # Exponential backoff multiplier
    user_agent: str | None = None
    verify_ssl: bool = True
    follow_redirects: bool = True
    max_redirects: int = 10

    # Default headers
    default_headers: dict[str, str] | None = None


class HttpClient:
    """
    HTTP client wrapper with retries and an identifying User-Agent.
    Pass `transport` to swap the network out (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.config = config or HttpClientConfig()
        self.transport = transport
        self._sleep = time.sleep

    @property
    def user_agent(self) -> str:
        return self.config.user_agent or getattr(settings, "CRAWL_USER_AGENT", DEFAULT_USER_AGENT)

    def _get_headers(self, extra_headers: dict | None = None) -> dict[str, str]:
        headers = {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "User-Agent": self.user_agent,
        }

        if self.config.default_headers:
            headers.update(self.config.default_headers)

        if extra_headers:
            headers.update(extra_headers)

        return headers

    def _should_retry(self, status_code: int | None, attempt: int) -> bool:
        """Determine if request should be retried."""
        if attempt >= self.config.max_retries:
            return False
        if status_code is None:  # Connection error
            return True
        # Retry on server errors and rate limits
        return status_code >= 500 or status_code == 429

    def _client(self, timeout: float) -> httpx.Client:
        return httpx.Client(
            timeout=timeout,
            follow_redirects=self.config.follow_redirects,
            max_redirects=self.config.max_redirects,
            verify=self.config.verify_ssl,
            transport=self.transport,
        )

    def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: dict | None = None,
        timeout: float | None = None,
        retry: bool = True,
    ) -> CrawlResponse:
        """
        Fetch a URL with retries and error handling.
        Never raises; failures come back with status_code=None and `error` set.
        """
        timeout = timeout or self.config.timeout
        max_retries = self.config.max_retries if retry else 0
        attempt = 0
        last_error = None
        start_time = time.time()

        while attempt <= max_retries:
            start_time = time.time()

            try:
                with self._client(timeout) as client:
                    response = client.request(
                        method=method,
                        url=url,
                        headers=self._get_headers(headers),
                    )

                duration_ms = int((time.time() - start_time) * 1000)

                if retry and self._should_retry(response.status_code, attempt):
                    attempt += 1
                    delay = self.config.retry_delay * (self.config.retry_backoff ** (attempt - 1))
                    logger.warning(
                        f"Retry {attempt}/{max_retries} for {url} "
                        f"(status={response.status_code}), waiting {delay:.1f}s"
                    )
                    self._sleep(delay)
                    continue

                return CrawlResponse(
                    url=str(response.url),
                    status_code=response.status_code,
                    content=response.content,
                    text=response.text if method != "HEAD" else "",
                    headers={k.lower(): v for k, v in response.headers.items()},
                    duration_ms=duration_ms,
                )

            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
                logger.debug(f"Timeout fetching {url}: {e}")

            except httpx.TransportError as e:
                last_error = f"Connection error: {e}"
                logger.debug(f"Connection error for {url}: {e}")

            except httpx.HTTPError as e:
                last_error = f"HTTP error: {e}"
                logger.warning(f"HTTP error for {url}: {e}")

            attempt += 1
            if attempt <= max_retries:
                delay = self.config.retry_delay * (self.config.retry_backoff ** (attempt - 1))
                logger.info(f"Retrying {url} in {delay:.1f}s (attempt {attempt})")
                self._sleep(delay)

        duration_ms = int((time.time() - start_time) * 1000)
        return CrawlResponse(
            url=url,
            status_code=None,
            content=b"",
            text="",
            headers={},
            duration_ms=duration_ms,
            error=last_error,
        )

    def get(self, url: str, **kwargs) -> CrawlResponse:
        return self.fetch(url, method="GET", **kwargs)

    def head(self, url: str, **kwargs) -> CrawlResponse:
        """HEAD request without retries, used for existence checks."""
        kwargs.setdefault("retry", False)
        return self.fetch(url, method="HEAD", **kwargs)
