# apps/automation/submitters.py

"""
Form and comment submitters. Both drive a page from the ContextPool and
return a SubmissionResult; nothing is raised past submit().
"""

import logging
from dataclasses import dataclass, field

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from apps.common.enums import SubmissionStatus
from apps.crawler.classifier import CommentDescriptor, FormDescriptor

from .browser_pool import ContextPool
from .field_mapping import FieldRole, field_role, field_selector, resolve_field_value
from .templates import render_message, template_context

logger = logging.getLogger(__name__)


CAPTCHA_SELECTORS = [
    ".g-recaptcha",
    "#recaptcha",
    "[data-sitekey]",
    "iframe[src*='recaptcha']",
    "iframe[src*='hcaptcha']",
    ".h-captcha",
    ".cf-turnstile",
    "iframe[src*='challenges.cloudflare.com']",
]

FORM_SUBMIT_SELECTORS = [
    "button[type='submit']",
    "input[type='submit']",
    "button:has-text('Submit')",
    "button:has-text('Send')",
    "button:has-text('Contact')",
    "input[type='button'][value*='Send' i]",
    "button",
]

COMMENT_SUBMIT_SELECTORS = [
    "#submit",
    "input[name='submit']",
    "button[type='submit']",
    "input[type='submit']",
    "button:has-text('Post Comment')",
    "button:has-text('Submit')",
    "button",
]

FORM_SUCCESS_KEYWORDS = [
    "thank you",
    "thanks for",
    "message sent",
    "message has been sent",
    "successfully",
    "received your message",
    "received",
    "we will contact",
    "we'll get back",
    "we will get back",
]

FORM_ERROR_KEYWORDS = [
    "error",
    "failed",
    "invalid",
    "required field",
    "please fill",
    "is required",
]

COMMENT_SUCCESS_KEYWORDS = [
    "awaiting moderation",
    "your comment is awaiting",
    "comment submitted",
    "comment posted",
    "thank you for your comment",
    "thanks for your comment",
]

COMMENT_ERROR_KEYWORDS = [
    "comments are closed",
    "duplicate comment",
    "posting comments too quickly",
    "please fill the required fields",
    "please type your comment",
    "error",
]


@dataclass
class SenderData:
    name: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    subject: str = "Contact Inquiry"
    message: str = ""

    @classmethod
    def from_campaign(cls, campaign, page_url: str = "") -> "SenderData":
        """Sender identity from the campaign with the message template rendered for page_url."""
        sender = cls(
            name=campaign.sender_name or "",
            email=campaign.sender_email or "",
            phone=campaign.sender_phone or "",
            website=campaign.sender_website or "",
            subject=campaign.message_subject or "Contact Inquiry",
        )
        sender.message = render_message(campaign.message_template, **template_context(sender, page_url))
        return sender

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "website": self.website,
            "subject": self.subject,
            "message": self.message,
        }


@dataclass
class SubmissionResult:
    success: bool
    status: str
    message: str = ""
    filled_fields: dict[str, str] = field(default_factory=dict)

    @classmethod
    def failed(cls, message: str, filled_fields: dict | None = None) -> "SubmissionResult":
        return cls(success=False, status=SubmissionStatus.FAILED, message=message, filled_fields=filled_fields or {})


class BaseSubmitter:
    submit_selectors: list[str] = []
    descriptor_class = FormDescriptor

    def __init__(
        self,
        pool: ContextPool,
        fresh_context: bool = True,
        navigation_timeout: float = 45.0,
        settle_timeout: float = 15.0,
        field_timeout: float = 3.0,
        settle_delay: float = 2.0,
    ):
        self.pool = pool
        self.fresh_context = fresh_context
        self.navigation_timeout = navigation_timeout
        self.settle_timeout = settle_timeout
        self.field_timeout = field_timeout
        self.settle_delay = settle_delay

    async def submit(self, url: str, descriptor, sender: SenderData) -> SubmissionResult:
        """Open url, fill the described form and submit it. Never raises."""
        if isinstance(descriptor, dict):
            descriptor = self.descriptor_class.from_dict(descriptor)

        try:
            return await self._run(url, descriptor, sender)
        except Exception as e:
            logger.warning(f"{self.__class__.__name__} failed on {url}: {e}")
            return SubmissionResult.failed(str(e) or e.__class__.__name__)

    async def _run(self, url: str, descriptor, sender: SenderData) -> SubmissionResult:
        async with self.pool.context(fresh=self.fresh_context) as pooled:
            page = None
            try:
                page = await pooled.new_page()
                navigation = await self.pool.safe_navigate(page, url, timeout=self.navigation_timeout)
                if not navigation.success:
                    return SubmissionResult.failed(navigation.error or "Navigation failed")
                return await self._fill_and_submit(page, url, descriptor, sender)
            finally:
                if page is not None:
                    await self.pool.close_page(page)

    async def _fill_and_submit(self, page, url: str, descriptor, sender: SenderData) -> SubmissionResult:
        raise NotImplementedError

    # === Page helpers ===

    async def _scope(self, page, selector: str | None) -> str | None:
        """The form's selector if it is on the page. Submit and field lookups never leave it."""
        if selector and await page.locator(selector).count() > 0:
            return selector
        return None

    async def _has_captcha(self, page) -> bool:
        for selector in CAPTCHA_SELECTORS:
            if await page.locator(selector).count() > 0:
                return True
        return False

    async def _fill_fields(self, page, scope: str, fields, sender: SenderData) -> dict[str, str]:
        """Fill every mappable field; returns {field key: role} for the ones filled."""
        filled = {}

        for f in fields:
            value = resolve_field_value(f, sender)
            if not value:
                continue

            locator = page.locator(field_selector(f, scope)).first
            try:
                await locator.wait_for(state="visible", timeout=self.field_timeout * 1000)
                await locator.fill(value, timeout=self.field_timeout * 1000)
                filled[f.key] = field_role(f).value
            except Exception as e:
                logger.debug(f"Could not fill field {f.key} on {page.url}: {e}")

        return filled

    async def _find_submit_button(self, page, scope: str):
        for selector in self.submit_selectors:
            locator = page.locator(f"{scope} {selector}").first
            if await locator.count() > 0:
                return locator
        return None

    async def _body_text(self, page) -> str:
        try:
            return (await page.inner_text("body")).lower()
        except Exception:
            return (await page.content()).lower()

    async def _click_and_settle(self, page, button) -> None:
        await button.click(timeout=10_000)
        try:
            await page.wait_for_load_state("networkidle", timeout=self.settle_timeout * 1000)
        except PlaywrightTimeoutError:
            logger.debug(f"Network did not settle on {page.url}")
        if self.settle_delay:
            await page.wait_for_timeout(self.settle_delay * 1000)


class FormSubmitter(BaseSubmitter):
    submit_selectors = FORM_SUBMIT_SELECTORS
    descriptor_class = FormDescriptor

    async def _fill_and_submit(self, page, url: str, descriptor: FormDescriptor, sender: SenderData) -> SubmissionResult:
        if descriptor.is_iframe:
            return SubmissionResult.failed("Form is an embedded iframe")

        scope = await self._scope(page, descriptor.selector)
        if scope is None:
            logger.info(f"Form {descriptor.selector} not found on {url}")
            return SubmissionResult.failed("Submit button not found")

        if await self._has_captcha(page):
            return SubmissionResult.failed("CAPTCHA detected")

        filled = await self._fill_fields(page, scope, descriptor.fields, sender)

        button = await self._find_submit_button(page, scope)
        if button is None:
            return SubmissionResult.failed("Submit button not found", filled)

        before = await self._body_text(page)
        await self._click_and_settle(page, button)
        after = await self._body_text(page)

        for keyword in FORM_SUCCESS_KEYWORDS:
            if keyword in after and keyword not in before:
                return SubmissionResult(
                    success=True,
                    status=SubmissionStatus.SUCCESS,
                    message=f'Found success indicator: "{keyword}"',
                    filled_fields=filled,
                )

        for keyword in FORM_ERROR_KEYWORDS:
            if keyword in after and keyword not in before:
                return SubmissionResult.failed(f'Found error indicator: "{keyword}"', filled)

        return SubmissionResult(
            success=True,
            status=SubmissionStatus.SUBMITTED,
            message="Form submitted, no clear success/error indicator",
            filled_fields=filled,
        )


class CommentSubmitter(BaseSubmitter):
    submit_selectors = COMMENT_SUBMIT_SELECTORS
    descriptor_class = CommentDescriptor

    async def _fill_and_submit(self, page, url: str, descriptor: CommentDescriptor, sender: SenderData) -> SubmissionResult:
        if descriptor.is_embed or not descriptor.fields:
            return SubmissionResult.failed("Comment widget is an embedded iframe")

        scope = await self._scope(page, descriptor.selector)
        if scope is None:
            logger.info(f"Comment form {descriptor.selector} not found on {url}")
            return SubmissionResult.failed("Submit button not found")

        if await self._has_captcha(page):
            return SubmissionResult.failed("CAPTCHA detected")

        filled = await self._fill_fields(page, scope, descriptor.fields, sender)
        roles = set(filled.values())
        if FieldRole.MESSAGE.value not in roles:
            return SubmissionResult.failed("Comment field not found", filled)
        if FieldRole.EMAIL.value not in roles:
            return SubmissionResult.failed("Email field not found", filled)

        button = await self._find_submit_button(page, scope)
        if button is None:
            return SubmissionResult.failed("Submit button not found", filled)

        before_url = page.url
        before = await self._body_text(page)
        await self._click_and_settle(page, button)
        after_url = page.url
        after = await self._body_text(page)

        for keyword in COMMENT_SUCCESS_KEYWORDS:
            if keyword in after and keyword not in before:
                return SubmissionResult(
                    success=True,
                    status=SubmissionStatus.SUCCESS,
                    message=f'Found success indicator: "{keyword}"',
                    filled_fields=filled,
                )

        for keyword in COMMENT_ERROR_KEYWORDS:
            if keyword in after and keyword not in before:
                return SubmissionResult.failed(f'Found error indicator: "{keyword}"', filled)

        if "#comment-" in after_url or after_url != before_url:
            return SubmissionResult(
                success=True,
                status=SubmissionStatus.SUCCESS,
                message=f"Redirected to {after_url}",
                filled_fields=filled,
            )

        return SubmissionResult(
            success=True,
            status=SubmissionStatus.SUBMITTED,
            message="Comment submitted, no clear success/error indicator",
            filled_fields=filled,
        )
