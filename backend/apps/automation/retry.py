# apps/automation/retry.py

"""
Retry helpers for browser submissions. Only transient failures (timeouts,
dropped connections, crashed pages) are retried.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from apps.common.enums import SubmissionStatus
from apps.common.exceptions import SubmissionError

from .submitters import SubmissionResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


MAX_ATTEMPTS = 2  # First try plus one retry
RETRY_DELAY = 2.0

RETRYABLE_ERRORS = [
    "timeout",
    "network",
    "connection",
    "econnreset",
    "econnrefused",
    "socket",
    "navigation failed",
    "page crashed",
    "target closed",
    "context destroyed",
    "browser has been closed",
    "no response received",
    "net::err",
    "err_network",
    "err_connection",
    "err_timed_out",
]


def should_retry(message: str | None) -> bool:
    """Check if an error message looks transient."""
    if not message:
        return False
    lower = message.lower()
    return any(error in lower for error in RETRYABLE_ERRORS)


def is_transient(error: BaseException) -> bool:
    """SubmissionErrors carry their own verdict; anything else is judged by its message."""
    if isinstance(error, SubmissionError):
        return error.transient
    return should_retry(str(error))


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = MAX_ATTEMPTS,
    delay: float = RETRY_DELAY,
    retry_if: Callable[[BaseException], bool] | None = None,
) -> T:
    """
    Await fn() up to max_attempts times, sleeping delay seconds between
    attempts. Exceptions rejected by retry_if are raised at once; otherwise
    the last exception is re-raised.
    """
    last_exception: BaseException | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return await fn()
        except Exception as e:
            last_exception = e
            if retry_if is not None and not retry_if(e):
                raise
            if attempt < max_attempts:
                logger.info(f"Attempt {attempt} failed ({e}), retrying in {delay:.1f}s")
                await asyncio.sleep(delay)

    raise last_exception


async def _submit_with_retry(submit, url, descriptor, sender, max_attempts: int, delay: float):
    last_result: SubmissionResult | None = None

    async def attempt():
        nonlocal last_result
        result = await submit(url, descriptor, sender)
        if not result.success:
            last_result = result
            raise SubmissionError(result.message, transient=should_retry(result.message))
        return result

    try:
        return await with_retry(attempt, max_attempts=max_attempts, delay=delay, retry_if=is_transient)
    except SubmissionError as e:
        if e.transient:
            logger.warning(f"Giving up on {url} after {max_attempts} attempts: {e}")
        return last_result or SubmissionResult.failed(str(e))
    except Exception as e:
        logger.error(f"Unexpected submission error on {url}: {e}")
        return SubmissionResult(success=False, status=SubmissionStatus.FAILED, message=str(e))


async def submit_form_with_retry(
    submitter,
    url: str,
    descriptor,
    sender,
    max_attempts: int = MAX_ATTEMPTS,
    delay: float = RETRY_DELAY,
):
    """FormSubmitter.submit with one retry on transient failures. Never raises."""
    return await _submit_with_retry(submitter.submit, url, descriptor, sender, max_attempts, delay)


async def submit_comment_with_retry(
    submitter,
    url: str,
    descriptor,
    sender,
    max_attempts: int = MAX_ATTEMPTS,
    delay: float = RETRY_DELAY,
):
    """CommentSubmitter.submit with one retry on transient failures. Never raises."""
    return await _submit_with_retry(submitter.submit, url, descriptor, sender, max_attempts, delay)
