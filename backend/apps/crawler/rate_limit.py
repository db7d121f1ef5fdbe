# apps/crawler/rate_limit.py

import time
import random
import logging
import threading
from urllib.parse import urlparse

import redis
from django.conf import settings

logger = logging.getLogger(__name__)


def get_redis_client() -> redis.Redis | None:
    """Redis client from Django settings, or None when REDIS_URL is empty."""
    redis_url = getattr(settings, "REDIS_URL", "")
    if not redis_url:
        return None
    return redis.from_url(redis_url)


class RateLimiter:
    """
    Per-host politeness delay.
    Each request waits a random delay in [min_delay, max_delay] measured from
    the previous request to the same host. With Redis the last-request
    timestamp is shared between worker processes.
    """

    def __init__(
        self,
        min_delay: float | None = None,
        max_delay: float | None = None,
        redis_client: redis.Redis | None = None,
    ):
        if min_delay is None:
            min_delay = getattr(settings, "CRAWL_DEFAULT_MIN_DELAY", 2.0)
        if max_delay is None:
            max_delay = getattr(settings, "CRAWL_DEFAULT_MAX_DELAY", 4.0)
        self.min_delay = max(0.0, float(min_delay))
        self.max_delay = max(self.min_delay, float(max_delay))
        self.redis = redis_client
        self._last_request: dict[str, float] = {}
        self._lock = threading.Lock()
        self._sleep = time.sleep
        self._clock = time.time

    def _get_domain(self, url: str) -> str:
        parsed = urlparse(url)
        return parsed.netloc.lower()

    def _get_key(self, domain: str) -> str:
        return f"ratelimit:{domain}"

    def _random_delay(self) -> float:
        return random.uniform(self.min_delay, self.max_delay)

    def _last_seen(self, domain: str) -> float | None:
        if self.redis is not None:
            try:
                value = self.redis.get(self._get_key(domain))
                if value is not None:
                    return float(value)
            except redis.RedisError as e:
                logger.error(f"Redis error in rate limiter: {e}")
                # Fail open: fall back to the local timestamp
        return self._last_request.get(domain)

    def record(self, url: str) -> None:
        """Record a request to the URL's host."""
        domain = self._get_domain(url)
        now = self._clock()
        self._last_request[domain] = now

        if self.redis is not None:
            try:
                ttl = max(1, int(self.max_delay * 2) + 1)
                self.redis.set(self._get_key(domain), now, ex=ttl)
            except redis.RedisError as e:
                logger.error(f"Redis error recording request: {e}")

    def wait_if_needed(self, url: str) -> float:
        """
        Wait out the remainder of a random delay since the last request to
        this host, then record the request. Returns the time slept.
        """
        domain = self._get_domain(url)

        with self._lock:
            last = self._last_seen(domain)
            wait_time = 0.0
            if last is not None:
                elapsed = self._clock() - last
                wait_time = max(0.0, self._random_delay() - elapsed)

            if wait_time > 0:
                logger.debug(f"Rate limited for {domain}, waiting {wait_time:.2f}s")
                self._sleep(wait_time)

            self.record(url)

        return wait_time


class DomainRateLimiters:
    """
    One limiter per host, all sharing the same Redis connection.
    Delay bounds come from the campaign configuration.
    """

    def __init__(
        self,
        min_delay: float | None = None,
        max_delay: float | None = None,
        redis_client: redis.Redis | None = None,
    ):
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.redis = redis_client if redis_client is not None else get_redis_client()
        self._limiters: dict[str, RateLimiter] = {}

    def get_limiter(self, domain: str) -> RateLimiter:
        """Get or create rate limiter for domain."""
        if domain not in self._limiters:
            self._limiters[domain] = RateLimiter(
                min_delay=self.min_delay,
                max_delay=self.max_delay,
                redis_client=self.redis,
            )
        return self._limiters[domain]

    def wait_if_needed(self, url: str) -> float:
        domain = urlparse(url).netloc.lower()
        return self.get_limiter(domain).wait_if_needed(url)
