import pytest

from apps.automation.retry import (
    is_transient,
    should_retry,
    submit_comment_with_retry,
    submit_form_with_retry,
    with_retry,
)
from apps.automation.submitters import SenderData, SubmissionResult
from apps.common.enums import SubmissionStatus
from apps.common.exceptions import SubmissionError


class ScriptedSubmitter:
    """Returns (or raises) the scripted outcomes in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def submit(self, url, descriptor, sender):
        self.calls += 1
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def failed(message):
    return SubmissionResult.failed(message)


SENDER = SenderData(name="Jane", email="jane@sender.io", message="Hello")


class TestShouldRetry:
    @pytest.mark.parametrize("message", [
        "read ECONNRESET",
        "Navigation failed: net::ERR_NAME_NOT_RESOLVED",
        "Timeout 45000ms exceeded",
        "Target closed",
    ])
    def test_transient(self, message):
        assert should_retry(message)

    @pytest.mark.parametrize("message", [
        "Submit button not found",
        "CAPTCHA detected",
        'Found error indicator: "invalid"',
        "",
        None,
    ])
    def test_structural(self, message):
        assert not should_retry(message)


class TestSubmitWithRetry:
    @pytest.mark.asyncio
    async def test_transient_failure_is_retried_once(self):
        submitter = ScriptedSubmitter(failed("read ECONNRESET"))

        result = await submit_form_with_retry(submitter, "https://acme.co/contact", {}, SENDER, delay=0)

        assert submitter.calls == 2
        assert result.success is False
        assert result.status == SubmissionStatus.FAILED
        assert "ECONNRESET" in result.message

    @pytest.mark.asyncio
    async def test_retry_can_recover(self):
        ok = SubmissionResult(success=True, status=SubmissionStatus.SUCCESS, message="sent")
        submitter = ScriptedSubmitter(failed("Timeout 45000ms exceeded"), ok)

        result = await submit_form_with_retry(submitter, "https://acme.co/contact", {}, SENDER, delay=0)

        assert submitter.calls == 2
        assert result is ok

    @pytest.mark.asyncio
    async def test_structural_failure_is_not_retried(self):
        submitter = ScriptedSubmitter(failed("Submit button not found"))

        result = await submit_form_with_retry(submitter, "https://acme.co/", {}, SENDER, delay=0)

        assert submitter.calls == 1
        assert result.message == "Submit button not found"

    @pytest.mark.asyncio
    async def test_structural_failure_keeps_filled_fields(self):
        partial = SubmissionResult.failed("Submit button not found", {"name": "name", "email": "email"})
        submitter = ScriptedSubmitter(partial)

        result = await submit_form_with_retry(submitter, "https://acme.co/", {}, SENDER, delay=0)

        assert submitter.calls == 1
        assert result is partial

    @pytest.mark.asyncio
    async def test_exceptions_become_failed_results(self):
        submitter = ScriptedSubmitter(RuntimeError("browser exploded"))

        result = await submit_comment_with_retry(submitter, "https://acme.co/post", {}, SENDER, delay=0)

        assert result.status == SubmissionStatus.FAILED
        assert result.message == "browser exploded"


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_reraises_last_exception(self):
        attempts = []

        async def always_fails():
            attempts.append(1)
            raise ValueError(f"attempt {len(attempts)}")

        with pytest.raises(ValueError, match="attempt 3"):
            await with_retry(always_fails, max_attempts=3, delay=0)
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_retry_if_rejects_structural_errors(self):
        attempts = []

        async def no_button():
            attempts.append(1)
            raise SubmissionError("Submit button not found", transient=False)

        with pytest.raises(SubmissionError):
            await with_retry(no_button, max_attempts=3, delay=0, retry_if=is_transient)
        assert len(attempts) == 1

    def test_is_transient(self):
        assert is_transient(SubmissionError("anything", transient=True))
        assert not is_transient(SubmissionError("net::ERR_CONNECTION_RESET", transient=False))
        assert is_transient(RuntimeError("Timeout 30000ms exceeded"))
        assert not is_transient(RuntimeError("browser exploded"))
