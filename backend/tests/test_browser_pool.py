import signal
import asyncio

import pytest

from apps.automation.browser_pool import ContextPool, _guard_request, is_url_safe
from apps.common.exceptions import PoolExhausted


def make_pool(launcher, **kwargs):
    kwargs.setdefault("max_browsers", 1)
    kwargs.setdefault("contexts_per_browser", 2)
    kwargs.setdefault("acquire_timeout", 0.2)
    kwargs.setdefault("acquire_poll_interval", 0.01)
    return ContextPool(launcher=launcher, **kwargs)


class FakeRequest:
    def __init__(self, url, resource_type="document"):
        self.url = url
        self.resource_type = resource_type


class FakeRoute:
    def __init__(self, url, resource_type="document"):
        self.request = FakeRequest(url, resource_type)
        self.outcome = None

    async def abort(self, reason=None):
        self.outcome = ("abort", reason)

    async def continue_(self):
        self.outcome = ("continue", None)


class RecordingLoop:
    """Records signal handlers instead of installing them."""

    def __init__(self, loop):
        self.loop = loop
        self.handlers = {}

    def add_signal_handler(self, sig, callback, *args):
        self.handlers[sig] = (callback, args)

    def create_task(self, coro):
        return self.loop.create_task(coro)

    def fire(self, sig):
        callback, args = self.handlers[sig]
        return callback(*args)


class TestUrlSafety:
    def test_dangerous_urls(self):
        assert not is_url_safe("https://acme.co/setup.exe")
        assert not is_url_safe("https://acme.co/files/archive.zip?v=2")
        assert not is_url_safe("javascript:alert(1)")
        assert not is_url_safe("")
        assert is_url_safe("https://acme.co/contact")

    @pytest.mark.asyncio
    async def test_guard_request(self):
        download = FakeRoute("https://acme.co/tool.msi")
        font = FakeRoute("https://acme.co/font.woff2", resource_type="font")
        page = FakeRoute("https://acme.co/contact")

        for route in (download, font, page):
            await _guard_request(route)

        assert download.outcome == ("abort", "blockedbyclient")
        assert font.outcome == ("abort", "blockedbyclient")
        assert page.outcome == ("continue", None)


class TestContextPool:
    @pytest.mark.asyncio
    async def test_launches_lazily_and_reuses_contexts(self, fake_launcher):
        pool = make_pool(fake_launcher)
        assert pool.browser_count == 0

        first = await pool.acquire_context()
        assert pool.browser_count == 1
        assert first.context.routes == ["**/*"]

        await pool.release_context(first)
        assert pool.idle_count == 1
        assert first.context.cookies_cleared == 1

        second = await pool.acquire_context()
        assert second is first
        await pool.close()

    @pytest.mark.asyncio
    async def test_fresh_contexts_are_closed_on_release(self, fake_launcher):
        pool = make_pool(fake_launcher)

        async with pool.context(fresh=True) as pooled:
            page = await pooled.new_page()
            assert "popup" in page.handlers

        assert pooled.context.closed
        assert page.closed
        assert pool.idle_count == 0
        assert pool.in_use_count == 0
        await pool.close()

    @pytest.mark.asyncio
    async def test_exhaustion_raises(self, fake_launcher):
        pool = make_pool(fake_launcher, contexts_per_browser=1, acquire_timeout=0.05)
        await pool.acquire_context()

        with pytest.raises(PoolExhausted):
            await pool.acquire_context()
        assert pool.browser_count == 1
        await pool.close()

    @pytest.mark.asyncio
    async def test_waiter_gets_released_context(self, fake_launcher):
        pool = make_pool(fake_launcher, contexts_per_browser=1, acquire_timeout=2.0)
        held = await pool.acquire_context()

        async def release_soon():
            await asyncio.sleep(0.05)
            await pool.release_context(held)

        asyncio.ensure_future(release_soon())
        pooled = await pool.acquire_context()

        assert pooled is held
        await pool.close()

    @pytest.mark.asyncio
    async def test_browser_cap(self, fake_launcher):
        pool = make_pool(fake_launcher, max_browsers=2, contexts_per_browser=1)
        await pool.acquire_context(fresh=True)
        await pool.acquire_context(fresh=True)

        assert pool.stats()["browsers"] == 2
        assert len(fake_launcher.browsers) == 2
        await pool.close()

    @pytest.mark.asyncio
    async def test_close_shuts_everything(self, fake_launcher):
        pool = make_pool(fake_launcher)
        pooled = await pool.acquire_context()
        await pool.close()

        assert pooled.context.closed
        assert all(browser.closed for browser in fake_launcher.browsers)
        with pytest.raises(PoolExhausted):
            await pool.acquire_context()

    @pytest.mark.asyncio
    async def test_signal_handlers_close_pool(self, fake_launcher):
        pool = make_pool(fake_launcher)
        pooled = await pool.acquire_context()
        loop = RecordingLoop(asyncio.get_running_loop())

        pool.install_signal_handlers(loop)
        assert set(loop.handlers) == {signal.SIGINT, signal.SIGTERM}

        await loop.fire(signal.SIGTERM)

        assert pooled.context.closed

    @pytest.mark.asyncio
    async def test_first_signal_sets_stop_event(self, fake_launcher):
        pool = make_pool(fake_launcher)
        pooled = await pool.acquire_context()
        stop = asyncio.Event()
        loop = RecordingLoop(asyncio.get_running_loop())

        pool.install_signal_handlers(loop, stop)

        assert loop.fire(signal.SIGINT) is None
        assert stop.is_set()
        assert not pooled.context.closed

        await loop.fire(signal.SIGINT)
        assert pooled.context.closed


class TestSafeNavigate:
    @pytest.mark.asyncio
    async def test_refuses_dangerous_urls(self, fake_launcher, make_page):
        pool = make_pool(fake_launcher)
        page = make_page()

        result = await pool.safe_navigate(page, "https://acme.co/setup.exe")

        assert result.success is False
        assert result.error == "Dangerous URL blocked"
        assert page.url == "about:blank"

    @pytest.mark.asyncio
    async def test_http_errors_and_exceptions(self, fake_launcher, make_page):
        pool = make_pool(fake_launcher)

        not_found = await pool.safe_navigate(make_page(status=404), "https://acme.co/missing")
        crashed = await pool.safe_navigate(
            make_page(goto_error=RuntimeError("net::ERR_CONNECTION_RESET")),
            "https://acme.co/",
        )

        assert not_found.error == "HTTP 404"
        assert not_found.status == 404
        assert crashed.success is False
        assert crashed.error.startswith("Navigation failed")
