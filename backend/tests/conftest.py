"""
Pytest fixtures shared across the ContactScout test suite.
"""

import pytest

from apps.campaigns.models import Campaign, Domain
from apps.common.enums import CampaignStatus, DomainStatus


# === Model Fixtures ===

@pytest.fixture
def campaign(db):
    return Campaign.objects.create(
        name="Spring outreach",
        status=CampaignStatus.RUNNING,
        submit_forms=True,
        sender_name="Jane Sender",
        sender_email="jane@sender.io",
        sender_phone="+1 555 123 4567",
        sender_website="https://sender.io",
        message_subject="Partnership",
        message_template="Hi {domain} team, this is {name}.",
        crawl_min_delay=0,
        crawl_max_delay=0,
    )


@pytest.fixture
def make_domain(campaign):
    def make(url="https://shop.test", status=DomainStatus.PENDING, owner=None):
        return Domain.objects.create(campaign=owner or campaign, url=url, status=status)
    return make


# === Playwright Fakes ===

class FakeResponse:
    def __init__(self, status=200):
        self.status = status


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    async def count(self):
        return 1 if self.selector in self.page.present else 0

    async def wait_for(self, state="visible", timeout=None):
        if self.selector not in self.page.present:
            raise TimeoutError(f"Timeout waiting for {self.selector}")

    async def fill(self, value, timeout=None):
        self.page.filled[self.selector] = value

    async def click(self, timeout=None):
        self.page.clicked.append(self.selector)
        if self.page.on_click is not None:
            self.page.on_click(self.page)


class FakePage:
    """
    Just enough of playwright's Page for the submitters. `present` holds the
    selectors that exist on the page; `on_click` mutates the page after a
    submit click.
    """

    def __init__(self, body_text="", present=None, status=200, on_click=None, goto_error=None):
        self.url = "about:blank"
        self.body_text = body_text
        self.present = set(present or [])
        self.status = status
        self.on_click = on_click
        self.goto_error = goto_error
        self.filled: dict[str, str] = {}
        self.clicked: list[str] = []
        self.handlers: dict[str, object] = {}
        self.evaluated: list[str] = []
        self.closed = False

    def locator(self, selector):
        return FakeLocator(self, selector)

    def on(self, event, handler):
        self.handlers[event] = handler

    async def goto(self, url, timeout=None, wait_until=None):
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        return FakeResponse(self.status)

    async def inner_text(self, selector):
        return self.body_text

    async def content(self):
        return f"<html><body>{self.body_text}</body></html>"

    async def wait_for_load_state(self, state=None, timeout=None):
        return None

    async def wait_for_timeout(self, timeout):
        return None

    async def evaluate(self, script):
        self.evaluated.append(script)

    def is_closed(self):
        return self.closed

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, browser, page_factory):
        self.browser = browser
        self.page_factory = page_factory
        self.pages: list[FakePage] = []
        self.routes: list[str] = []
        self.cookies_cleared = 0
        self.closed = False

    async def new_page(self):
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def route(self, pattern, handler):
        self.routes.append(pattern)

    async def clear_cookies(self):
        self.cookies_cleared += 1

    async def close(self):
        for page in self.pages:
            page.closed = True
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory):
        self.page_factory = page_factory
        self.contexts: list[FakeContext] = []
        self.closed = False

    async def new_context(self, **options):
        context = FakeContext(self, self.page_factory)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeLauncher:
    """Async callable handed to ContextPool(launcher=...)."""

    def __init__(self, page_factory=None):
        self.page_factory = page_factory or FakePage
        self.browsers: list[FakeBrowser] = []

    async def __call__(self):
        browser = FakeBrowser(lambda: self.page_factory())
        self.browsers.append(browser)
        return browser


@pytest.fixture
def fake_launcher():
    return FakeLauncher()


@pytest.fixture
def make_page():
    return FakePage
