# apps/automation/browser_pool.py

"""
Browser process and context pooling for form/comment submission.

One ContextPool per worker process. It owns every Playwright browser and
context it creates and hands them out to the submitters.
"""

import re
import time
import signal
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from django.conf import settings
from playwright.async_api import async_playwright

from apps.common.exceptions import PoolExhausted

logger = logging.getLogger(__name__)


DANGEROUS_PATTERNS = [
    re.compile(r"\.(exe|msi|bat|cmd|scr|dll|vbs|ps1)(\?|#|$)", re.IGNORECASE),
    re.compile(r"\.(zip|rar|7z|tar|gz|dmg|pkg|deb|rpm)(\?|#|$)", re.IGNORECASE),
    re.compile(r"^\s*javascript:", re.IGNORECASE),
    re.compile(r"^\s*vbscript:", re.IGNORECASE),
    re.compile(r"^\s*data:text/html", re.IGNORECASE),
    re.compile(r"^\s*data:application", re.IGNORECASE),
]

BLOCKED_RESOURCE_TYPES = {"media", "font", "websocket"}

LAUNCH_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-extensions",
    "--disable-notifications",
    "--disable-background-networking",
    "--disable-default-apps",
    "--disable-sync",
    "--block-new-web-contents",
]

STORAGE_RESET_SCRIPT = """
() => {
    try { window.localStorage.clear(); } catch (e) {}
    try { window.sessionStorage.clear(); } catch (e) {}
}
"""

NAVIGATION_TIMEOUT = 45.0


def is_url_safe(url: str | None) -> bool:
    if not url:
        return False
    return not any(pattern.search(url) for pattern in DANGEROUS_PATTERNS)


@dataclass
class BrowserProfile:
    """The single context profile every submission uses."""
    viewport: dict = field(default_factory=lambda: {"width": 1366, "height": 768})
    locale: str = "en-US"
    timezone_id: str = "UTC"
    user_agent: str | None = None  # None keeps the browser's own UA

    @classmethod
    def from_settings(cls) -> "BrowserProfile":
        return cls(
            viewport=dict(getattr(settings, "BROWSER_VIEWPORT", {"width": 1366, "height": 768})),
            locale=getattr(settings, "BROWSER_LOCALE", "en-US"),
            timezone_id=getattr(settings, "BROWSER_TIMEZONE", "UTC"),
            user_agent=getattr(settings, "BROWSER_USER_AGENT", None),
        )

    def context_options(self) -> dict:
        options = {
            "viewport": self.viewport,
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "accept_downloads": False,
            "java_script_enabled": True,
            "ignore_https_errors": False,
        }
        if self.user_agent:
            options["user_agent"] = self.user_agent
        return options


@dataclass
class NavigationResult:
    success: bool
    error: str | None = None
    status: int | None = None


@dataclass(eq=False)
class _BrowserSlot:
    browser: Any
    open_contexts: int = 0


@dataclass(eq=False)
class PooledContext:
    """A browser context checked out of the pool."""
    context: Any
    slot: _BrowserSlot
    fresh: bool = False

    async def new_page(self):
        page = await self.context.new_page()
        page.on("popup", _close_popup)
        return page


async def _close_popup(popup) -> None:
    logger.info("Blocked popup window")
    try:
        await popup.close()
    except Exception as e:
        logger.debug(f"Popup already gone: {e}")


async def _guard_request(route) -> None:
    """Abort dangerous downloads/schemes and heavy resource types."""
    request = route.request
    url = request.url

    if not is_url_safe(url):
        logger.warning(f"Blocked dangerous URL: {url}")
        await route.abort("blockedbyclient")
        return

    if request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort("blockedbyclient")
        return

    await route.continue_()


class ContextPool:
    """
    Caps browser processes at max_browsers and contexts per process at
    contexts_per_browser. Released contexts go back to an idle list (up to
    max_idle_contexts) unless they were fresh.
    """

    def __init__(
        self,
        max_browsers: int | None = None,
        contexts_per_browser: int | None = None,
        max_idle_contexts: int | None = None,
        headless: bool | None = None,
        profile: BrowserProfile | None = None,
        acquire_timeout: float = 120.0,
        acquire_poll_interval: float = 0.5,
        launcher: Callable[[], Awaitable[Any]] | None = None,
    ):
        self.max_browsers = max_browsers or getattr(settings, "BROWSER_MAX_PROCESSES", 5)
        self.contexts_per_browser = contexts_per_browser or getattr(settings, "BROWSER_CONTEXTS_PER_PROCESS", 2)
        if max_idle_contexts is None:
            max_idle_contexts = self.max_browsers * self.contexts_per_browser
        self.max_idle_contexts = max_idle_contexts
        self.headless = headless if headless is not None else getattr(settings, "BROWSER_HEADLESS", True)
        self.profile = profile or BrowserProfile.from_settings()
        self.acquire_timeout = acquire_timeout
        self.acquire_poll_interval = acquire_poll_interval

        self._launcher = launcher
        self._playwright = None
        self._slots: list[_BrowserSlot] = []
        self._idle: list[PooledContext] = []
        self._in_use: set[PooledContext] = set()
        self._lock = asyncio.Lock()
        self._closed = False

    # === Stats ===

    @property
    def browser_count(self) -> int:
        return len(self._slots)

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def in_use_count(self) -> int:
        return len(self._in_use)

    def stats(self) -> dict:
        return {
            "browsers": self.browser_count,
            "idle_contexts": self.idle_count,
            "in_use_contexts": self.in_use_count,
            "max_browsers": self.max_browsers,
            "contexts_per_browser": self.contexts_per_browser,
        }

    # === Acquire / release ===

    async def acquire_context(self, fresh: bool = False) -> PooledContext:
        """
        An idle context unless fresh is requested, else a new context on a
        browser with spare capacity, else a new browser while under the cap.
        Waits with backoff when everything is busy.
        """
        deadline = time.monotonic() + self.acquire_timeout
        interval = self.acquire_poll_interval

        while True:
            if self._closed:
                raise PoolExhausted("Context pool is closed")

            async with self._lock:
                pooled = await self._try_acquire(fresh)
            if pooled is not None:
                self._in_use.add(pooled)
                return pooled

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise PoolExhausted(
                    f"No browser context available after {self.acquire_timeout:.0f}s "
                    f"({self.in_use_count} in use)"
                )
            await asyncio.sleep(min(interval, remaining))
            interval = min(interval * 1.5, 5.0)

    async def fresh_context(self) -> PooledContext:
        """A brand-new isolated context: empty cookies and storage."""
        return await self.acquire_context(fresh=True)

    async def release_context(self, pooled: PooledContext) -> None:
        """Wipe session state and return the context to the idle list, or close it."""
        self._in_use.discard(pooled)

        keep = not pooled.fresh and not self._closed and len(self._idle) < self.max_idle_contexts
        if keep:
            try:
                for page in list(pooled.context.pages):
                    await self.close_page(page)
                await pooled.context.clear_cookies()
            except Exception as e:
                logger.warning(f"Failed to reset context, closing it: {e}")
                keep = False

        if keep:
            self._idle.append(pooled)
        else:
            await self._close_context(pooled)

    @asynccontextmanager
    async def context(self, fresh: bool = False):
        pooled = await (self.fresh_context() if fresh else self.acquire_context())
        try:
            yield pooled
        finally:
            await self.release_context(pooled)

    async def close_page(self, page) -> None:
        """Clear the page's storage, then close it. Never raises."""
        try:
            if not page.is_closed():
                try:
                    await page.evaluate(STORAGE_RESET_SCRIPT)
                except Exception as e:
                    logger.debug(f"Storage reset skipped: {e}")
                await page.close()
        except Exception as e:
            logger.debug(f"Page close failed: {e}")

    # === Navigation ===

    async def safe_navigate(
        self,
        page,
        url: str,
        timeout: float = NAVIGATION_TIMEOUT,
        wait_until: str = "domcontentloaded",
    ) -> NavigationResult:
        """Navigate unless the URL is unsafe. Never raises."""
        if not is_url_safe(url):
            logger.warning(f"Refused to navigate to dangerous URL: {url}")
            return NavigationResult(success=False, error="Dangerous URL blocked")

        try:
            response = await page.goto(url, timeout=timeout * 1000, wait_until=wait_until)
        except Exception as e:
            return NavigationResult(success=False, error=f"Navigation failed: {e}")

        status = response.status if response is not None else None
        if status is not None and status >= 400:
            return NavigationResult(success=False, error=f"HTTP {status}", status=status)
        return NavigationResult(success=True, status=status)

    # === Shutdown ===

    async def close(self) -> None:
        """Close every context and browser, then stop Playwright."""
        if self._closed:
            return
        self._closed = True

        for pooled in list(self._idle) + list(self._in_use):
            await self._close_context(pooled)
        self._idle.clear()
        self._in_use.clear()

        for slot in self._slots:
            try:
                await slot.browser.close()
            except Exception as e:
                logger.debug(f"Browser close failed: {e}")
        self._slots.clear()

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug(f"Playwright stop failed: {e}")
            self._playwright = None

        logger.info("Context pool closed")

    def install_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """
        Close the pool on SIGINT/SIGTERM. With a stop_event, the first signal
        only sets it so the owner can finish its cycle and close the pool
        itself; a second signal closes the pool immediately.
        """
        def handle(sig):
            if stop_event is not None and not stop_event.is_set():
                logger.info(f"Received {sig.name}, finishing current cycle")
                stop_event.set()
                return None
            logger.warning(f"Received {sig.name}, closing browser pool")
            return loop.create_task(self.close())

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle, sig)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handlers not supported for {sig}")

    # === Internals ===

    async def _try_acquire(self, fresh: bool) -> PooledContext | None:
        if self._idle and not fresh:
            return self._idle.pop()

        slot = next((s for s in self._slots if s.open_contexts < self.contexts_per_browser), None)

        if slot is None and fresh and self._idle:
            # Trade an idle context for a fresh one
            await self._close_context(self._idle.pop(0))
            slot = next((s for s in self._slots if s.open_contexts < self.contexts_per_browser), None)

        if slot is None and len(self._slots) < self.max_browsers:
            slot = _BrowserSlot(browser=await self._launch_browser())
            self._slots.append(slot)
            logger.info(f"Launched browser {len(self._slots)}/{self.max_browsers}")

        if slot is None:
            return None

        context = await slot.browser.new_context(**self.profile.context_options())
        await context.route("**/*", _guard_request)
        slot.open_contexts += 1
        return PooledContext(context=context, slot=slot, fresh=fresh)

    async def _launch_browser(self):
        if self._launcher is not None:
            return await self._launcher()

        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)

    async def _close_context(self, pooled: PooledContext) -> None:
        try:
            await pooled.context.close()
        except Exception as e:
            logger.debug(f"Context close failed: {e}")
        pooled.slot.open_contexts = max(0, pooled.slot.open_contexts - 1)
