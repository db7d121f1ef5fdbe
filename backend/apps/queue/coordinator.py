# apps/queue/coordinator.py

"""
Work coordinator - claims PENDING domains and runs them through
analyze -> crawl -> persist -> submit forms -> submit comments -> finalize.

Many workers may run against the same database; a domain is only ever
processed by the worker whose conditional PENDING -> PROCESSING update won.
"""

import time
import asyncio
import logging
from typing import Callable

from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import close_old_connections

from apps.automation.browser_pool import ContextPool
from apps.automation.retry import RETRY_DELAY, submit_comment_with_retry, submit_form_with_retry
from apps.automation.submitters import CommentSubmitter, FormSubmitter, SenderData
from apps.campaigns.logger import BaseCampaignLogger, CampaignLogger
from apps.campaigns.models import Campaign, Domain, PageDiscovery
from apps.campaigns.selectors import get_domain_by_id, get_pending_domain_ids, has_successful_submission
from apps.campaigns.services import (
    claim_domain,
    log_submission,
    mark_domain_completed,
    mark_domain_failed,
    record_analysis,
    refresh_campaign_completion,
    reset_stuck_domains,
    touch_domain,
    upsert_extracted_contact,
    upsert_page_discovery,
)
from apps.common.enums import LogLevel, SubmissionType
from apps.crawler.analyzer import analyze_domain
from apps.crawler.classifier import FormCandidate, prioritize
from apps.crawler.pipelines import PageResult, crawl_pages

logger = logging.getLogger(__name__)


CLAIM_ATTEMPTS = 6
ALL_FORMS_FAILED = "All form submissions failed"


class WorkCoordinator:
    """
    One per worker process. Owns the browser ContextPool and hands it to
    the submitters.
    """

    def __init__(
        self,
        pool: ContextPool | None = None,
        form_submitter=None,
        comment_submitter=None,
        logger_factory: Callable[..., BaseCampaignLogger] = CampaignLogger,
        analyze: Callable = analyze_domain,
        crawl: Callable = crawl_pages,
        claim_attempts: int = CLAIM_ATTEMPTS,
        stuck_threshold_minutes: int | None = None,
        watchdog_interval: float | None = None,
        retry_delay: float = RETRY_DELAY,
    ):
        self.pool = pool or ContextPool()
        self.form_submitter = form_submitter
        self.comment_submitter = comment_submitter
        self.logger_factory = logger_factory
        self.analyze = analyze
        self.crawl = crawl
        self.claim_attempts = claim_attempts
        self.stuck_threshold_minutes = stuck_threshold_minutes or getattr(
            settings, "STUCK_DOMAIN_THRESHOLD_MINUTES", 15
        )
        self.watchdog_interval = watchdog_interval if watchdog_interval is not None else getattr(
            settings, "WATCHDOG_INTERVAL", 60
        )
        self.retry_delay = retry_delay
        self.counters = {"processed": 0, "idle_cycles": 0, "reset": 0}

    # === Claiming ===

    async def claim_next_domain(self) -> Domain | None:
        """
        Oldest PENDING domain of a RUNNING campaign, claimed for this worker.
        Candidates lost to other workers are skipped on re-selection.
        """
        lost: set[int] = set()

        for _ in range(self.claim_attempts):
            candidates = await sync_to_async(get_pending_domain_ids)(exclude_ids=lost, limit=1)
            if not candidates:
                return None

            domain_id = candidates[0]
            if await sync_to_async(claim_domain)(domain_id):
                return await sync_to_async(get_domain_by_id)(domain_id)

            logger.debug(f"Lost claim on domain {domain_id}, re-selecting")
            lost.add(domain_id)

        logger.info(f"Gave up claiming after {self.claim_attempts} lost races")
        return None

    async def process_next_domain(self) -> bool:
        """Claim and process one domain. Returns whether work happened."""
        domain = await self.claim_next_domain()
        if domain is None:
            return False

        await self.process_domain(domain)
        self.counters["processed"] += 1
        return True

    # === Processing ===

    async def process_domain(self, domain: Domain) -> str:
        """
        Run every stage for a claimed domain. Errors mark the domain FAILED
        and are not propagated. Returns the final domain status.
        """
        campaign = domain.campaign
        clog = self.logger_factory(campaign.id, domain.id)
        await self._log(clog, LogLevel.INFO, f"Processing domain: {domain.url}")

        try:
            status = await self._run_stages(domain, campaign, clog)
        except Exception as e:
            logger.exception(f"Domain {domain.id} ({domain.url}) failed")
            message = str(e) or e.__class__.__name__
            await self._log(clog, LogLevel.ERROR, f"Failed: {message}")
            await sync_to_async(mark_domain_failed)(domain, message)
            status = "failed"

        if await sync_to_async(refresh_campaign_completion)(campaign.id):
            await self._log(clog.for_domain(None), LogLevel.SUCCESS, "Campaign COMPLETED")

        return status

    async def _run_stages(self, domain: Domain, campaign: Campaign, clog: BaseCampaignLogger) -> str:
        # Step 1: analyze
        await self._log(clog, LogLevel.STEP, "Step 1: Analyzing...")
        analysis = await sync_to_async(self.analyze, thread_sensitive=False)(domain.url)
        if analysis.error:
            await self._log(clog, LogLevel.WARNING, f"Analysis incomplete: {analysis.error}")
        await sync_to_async(record_analysis)(domain, analysis.robots_txt, len(analysis.sitemaps))

        # Step 2: crawl
        await self._log(clog, LogLevel.STEP, "Step 2: Crawling...")
        pages: list[PageResult] = await sync_to_async(self.crawl, thread_sensitive=False)(
            domain.url,
            max_pages=campaign.max_pages_per_domain,
            robots=analysis.robots,
            initial_urls=analysis.urls,
            min_delay=campaign.crawl_min_delay,
            max_delay=campaign.crawl_max_delay,
            on_progress=_crawl_progress(domain),
        )
        await self._log(clog, LogLevel.SUCCESS, f"Found {len(pages)} pages")

        await sync_to_async(touch_domain)(domain)

        # Step 3: persist
        saved = await sync_to_async(_persist_pages)(domain, campaign, pages)
        forms_found = any(page.has_form for _, page in saved)
        comments_found = any(page.has_comments for _, page in saved)

        # Step 4: forms
        forms_succeeded = forms_failed = 0
        if campaign.submit_forms and forms_found:
            await self._log(clog, LogLevel.STEP, "Step 3: Submitting forms...")
            forms_succeeded, forms_failed = await self._submit_forms(domain, campaign, saved, clog)

        # Step 5: comments
        if campaign.submit_comments and comments_found:
            await self._log(clog, LogLevel.STEP, "Step 4: Submitting comments...")
            await self._submit_comments(domain, campaign, saved, clog)

        # Step 6: finalize
        if campaign.submit_forms and forms_found and forms_succeeded == 0 and forms_failed > 0:
            await sync_to_async(mark_domain_failed)(domain, ALL_FORMS_FAILED, len(pages))
            await self._log(clog, LogLevel.ERROR, f"{ALL_FORMS_FAILED}: {domain.url}")
            return "failed"

        await sync_to_async(mark_domain_completed)(domain, len(pages))
        await self._log(clog, LogLevel.SUCCESS, f"Domain complete: {domain.url}")
        return "completed"

    async def _submit_forms(self, domain: Domain, campaign: Campaign, saved, clog: BaseCampaignLogger) -> tuple[int, int]:
        candidates = prioritize(
            FormCandidate(page_url=page.url, form=form, page=row)
            for row, page in saved
            for form in page.forms
            if not form.is_iframe
        )
        if not candidates:
            await self._log(clog, LogLevel.INFO, "Only embedded iframe forms found, nothing to submit")
            return 0, 0

        # Best-scoring form per page
        per_page: dict[str, FormCandidate] = {}
        for candidate in candidates:
            per_page.setdefault(candidate.page_url, candidate)

        target = campaign.target_forms_count or len(per_page)
        submitter = self.form_submitter or FormSubmitter(
            self.pool, fresh_context=campaign.fresh_context_per_submission,
        )
        succeeded = failed = 0

        for candidate in per_page.values():
            if succeeded >= target:
                break
            url = candidate.page_url

            if await sync_to_async(has_successful_submission)(campaign.id, url, SubmissionType.FORM):
                await self._log(clog, LogLevel.INFO, f"Skipping {url}: form already submitted")
                continue

            await sync_to_async(touch_domain)(domain)
            sender = SenderData.from_campaign(campaign, url)
            result = await submit_form_with_retry(submitter, url, candidate.form, sender, delay=self.retry_delay)
            await sync_to_async(log_submission)(
                candidate.page,
                SubmissionType.FORM,
                result.status,
                result.message,
                _submitted_data(sender, result, candidate.form.plugin_type),
            )

            if result.success:
                succeeded += 1
                await self._log(clog, LogLevel.SUCCESS, f"Form {result.status} on {url}: {result.message}")
            else:
                failed += 1
                await self._log(clog, LogLevel.WARNING, f"Form failed on {url}: {result.message}")

        return succeeded, failed

    async def _submit_comments(self, domain: Domain, campaign: Campaign, saved, clog: BaseCampaignLogger) -> tuple[int, int]:
        # Fillable comment forms before opaque widgets
        candidates = []
        for row, page in saved:
            if page.comments:
                section = sorted(page.comments, key=lambda c: c.is_embed)[0]
                candidates.append((row, page.url, section))

        target = campaign.target_comments_count or len(candidates)
        submitter = self.comment_submitter or CommentSubmitter(
            self.pool, fresh_context=campaign.fresh_context_per_submission,
        )
        succeeded = failed = 0

        for row, url, section in candidates:
            if succeeded >= target:
                break

            if await sync_to_async(has_successful_submission)(campaign.id, url, SubmissionType.COMMENT):
                await self._log(clog, LogLevel.INFO, f"Skipping {url}: comment already posted")
                continue

            await sync_to_async(touch_domain)(domain)
            sender = SenderData.from_campaign(campaign, url)
            result = await submit_comment_with_retry(submitter, url, section, sender, delay=self.retry_delay)
            await sync_to_async(log_submission)(
                row,
                SubmissionType.COMMENT,
                result.status,
                result.message,
                _submitted_data(sender, result, section.type),
            )

            if result.success:
                succeeded += 1
                await self._log(clog, LogLevel.SUCCESS, f"Comment {result.status} on {url}: {result.message}")
            else:
                failed += 1
                await self._log(clog, LogLevel.WARNING, f"Comment failed on {url}: {result.message}")

        return succeeded, failed

    # === Recovery ===

    def reset_stuck_domains(self, threshold_minutes: int | None = None) -> int:
        """Return abandoned PROCESSING domains to PENDING."""
        return reset_stuck_domains(threshold_minutes or self.stuck_threshold_minutes)

    # === Worker loop ===

    async def run(
        self,
        batch_size: int | None = None,
        poll_interval: float | None = None,
        stop_event: asyncio.Event | None = None,
        once: bool = False,
    ) -> dict:
        """
        Poll until stop_event is set: sweep stuck domains, then process up to
        batch_size domains concurrently. Sleeps poll_interval when idle.
        """
        batch_size = batch_size or getattr(settings, "WORKER_BATCH_SIZE", 4)
        poll_interval = poll_interval if poll_interval is not None else getattr(settings, "WORKER_POLL_INTERVAL", 3)
        stop_event = stop_event or asyncio.Event()
        last_sweep: float | None = None

        logger.info(f"Worker started (batch_size={batch_size}, poll_interval={poll_interval}s)")

        try:
            while not stop_event.is_set():
                worked = False
                try:
                    await sync_to_async(close_old_connections)()

                    now = time.monotonic()
                    if last_sweep is None or now - last_sweep >= self.watchdog_interval:
                        self.counters["reset"] += await sync_to_async(self.reset_stuck_domains)()
                        last_sweep = now

                    results = await asyncio.gather(
                        *(self.process_next_domain() for _ in range(batch_size)),
                        return_exceptions=True,
                    )
                    for result in results:
                        if isinstance(result, BaseException):
                            logger.error(f"Domain task failed: {result!r}")
                    worked = any(result is True for result in results)

                except Exception:
                    logger.exception("Worker cycle failed")

                if once:
                    break
                if not worked:
                    self.counters["idle_cycles"] += 1
                    await _wait_for_stop(stop_event, poll_interval)
        finally:
            await self.close()
            logger.info(
                f"Worker stopped: processed={self.counters['processed']}, "
                f"idle_cycles={self.counters['idle_cycles']}, reset={self.counters['reset']}"
            )

        return dict(self.counters)

    async def close(self) -> None:
        await self.pool.close()

    async def _log(self, clog: BaseCampaignLogger, level: str, message: str) -> None:
        await sync_to_async(clog.log)(level, message)


def _persist_pages(domain: Domain, campaign: Campaign, pages: list[PageResult]) -> list[tuple[PageDiscovery, PageResult]]:
    saved = []
    for page in pages:
        row = upsert_page_discovery(
            domain,
            url=page.url,
            title=page.title,
            forms=[form.to_dict() for form in page.forms],
            comments=[section.to_dict() for section in page.comments],
        )
        saved.append((row, page))

        if campaign.extract_contacts and page.contacts.found:
            upsert_extracted_contact(domain, page.contacts.email, page.contacts.phone, page.url)
    return saved


def _submitted_data(sender: SenderData, result, plugin_type: str) -> dict:
    return {
        "sender": {"name": sender.name, "email": sender.email, "subject": sender.subject},
        "plugin_type": plugin_type,
        "fields": result.filled_fields,
    }


def _crawl_progress(domain: Domain):
    def report(message: str, current: int, total: int) -> None:
        if current % 5 == 0:
            logger.info(f"[domain {domain.id}] Crawl: {current}/{total}")
    return report


async def _wait_for_stop(stop_event: asyncio.Event, timeout: float) -> None:
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        pass
