"""
Tests for the retry wrapper and error classification
"""
import logging
import time
from unittest.mock import MagicMock

import pytest

from sora_batch.batch.retry import retry_async
from sora_batch.schemas.batch import BATCH_DEFAULTS
from sora_batch.utils.api_client import raise_for_api_error
from sora_batch.utils.errors import (
    APIError,
    AuthenticationError,
    BatchValidationError,
    PollTimeoutError,
    should_retry,
)

DEFAULT_PATTERNS = list(BATCH_DEFAULTS["retry_on_errors"])


class FlakyWork:
    """Fails with the queued errors, then returns 'done'"""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.attempts = []

    async def __call__(self, attempt):
        self.attempts.append(attempt)
        if self.errors:
            raise self.errors.pop(0)
        return "done"


class TestShouldRetry:
    """String-based error classification"""

    def test_matches_case_insensitively(self):
        """Test patterns match regardless of case"""
        assert should_retry(RuntimeError("RATE_LIMIT reached"), ["rate_limit"])
        assert should_retry(RuntimeError("Request Timeout"), ["timeout"])

    def test_status_codes_in_message(self):
        """Test status code substrings trigger a retry"""
        assert should_retry(APIError("API error: 503 - unavailable"), DEFAULT_PATTERNS)
        assert should_retry(APIError("429 Too Many Requests"), DEFAULT_PATTERNS)

    def test_unmatched_error(self):
        """Test errors matching no pattern are not retried"""
        assert not should_retry(AuthenticationError("Authentication failed"), DEFAULT_PATTERNS)
        assert not should_retry(ValueError("invalid size"), DEFAULT_PATTERNS)

    def test_permanent_error_with_trigger_text_is_retried(self):
        """Test classification is purely textual"""
        error = AuthenticationError("Authentication failed (request id 5000)")
        assert should_retry(error, DEFAULT_PATTERNS)

    @pytest.mark.parametrize("status,body", [
        (429, None),
        (500, {"error": {"message": "The server had an error while processing your request."}}),
        (503, {"error": {"message": "Service unavailable, please retry"}}),
    ])
    def test_client_errors_match_default_patterns(self, status, body):
        """Test rate limits and server errors from the API client are retryable by default"""
        response = MagicMock(status_code=status, text="")
        if body is None:
            response.json.side_effect = ValueError("not json")
        else:
            response.json.return_value = body

        with pytest.raises(APIError) as exc_info:
            raise_for_api_error(response)

        assert str(status) in str(exc_info.value)
        assert should_retry(exc_info.value, DEFAULT_PATTERNS)

    def test_poll_timeout_matched_by_default(self):
        """Test poll exhaustion carries the 'timeout' trigger"""
        error = PollTimeoutError("Video generation timeout: no result after 120 attempts (30 minutes)")
        assert should_retry(error, DEFAULT_PATTERNS)

    def test_empty_patterns(self):
        """Test no patterns means no retries"""
        assert not should_retry(RuntimeError("429"), [])


class TestRetryAsync:
    """Bounded retry loop"""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        """Test work is called once when it succeeds"""
        work = FlakyWork()

        result = await retry_async(work, max_retries=2, retry_delay_ms=10, retry_patterns=DEFAULT_PATTERNS)

        assert result == "done"
        assert work.attempts == [1]

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        """Test two 429 failures then success under max_retries=2"""
        work = FlakyWork(APIError("429 Too Many Requests"), APIError("429 Too Many Requests"))
        retries = []

        start = time.monotonic()
        result = await retry_async(
            work,
            max_retries=2,
            retry_delay_ms=100,
            retry_patterns=DEFAULT_PATTERNS,
            on_retry=lambda attempt, error: retries.append(attempt),
        )
        elapsed = time.monotonic() - start

        assert result == "done"
        assert work.attempts == [1, 2, 3]
        assert retries == [2, 3]
        assert elapsed >= 0.2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        """Test the last error is raised once attempts run out"""
        work = FlakyWork(APIError("503 first"), APIError("503 second"), APIError("503 third"))

        with pytest.raises(APIError, match="503 third"):
            await retry_async(work, max_retries=2, retry_delay_ms=10, retry_patterns=DEFAULT_PATTERNS)

        assert work.attempts == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_non_retryable_error_raised_immediately(self):
        """Test zero retries for an unmatched error regardless of max_retries"""
        work = FlakyWork(ValueError("content policy violation"))

        with pytest.raises(ValueError):
            await retry_async(work, max_retries=5, retry_delay_ms=10, retry_patterns=DEFAULT_PATTERNS)

        assert work.attempts == [1]

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        """Test max_retries=0 allows a single attempt"""
        work = FlakyWork(APIError("429"))

        with pytest.raises(APIError):
            await retry_async(work, max_retries=0, retry_delay_ms=10, retry_patterns=DEFAULT_PATTERNS)

        assert work.attempts == [1]

    @pytest.mark.asyncio
    async def test_logs_each_retry(self, caplog):
        """Test each retry is logged as a warning"""
        work = FlakyWork(APIError("rate_limit"))

        with caplog.at_level(logging.WARNING, logger="sora_batch.batch.retry"):
            await retry_async(work, max_retries=1, retry_delay_ms=10, retry_patterns=DEFAULT_PATTERNS)

        assert "Retry attempt 1/1" in caplog.text


class TestErrorTypes:
    """Error taxonomy details"""

    def test_validation_error_collects_messages(self):
        """Test BatchValidationError keeps its message list"""
        error = BatchValidationError("bad config", errors=["Job 1: prompt required", "Job 2: bad size"])

        assert isinstance(error, ValueError)
        assert error.errors == ["Job 1: prompt required", "Job 2: bad size"]

    def test_validation_error_defaults_to_message(self):
        """Test the message is the only error when none are given"""
        assert BatchValidationError("bad config").errors == ["bad config"]

    def test_api_error_status_code(self):
        """Test API errors carry the HTTP status"""
        assert APIError("boom", status_code=502).status_code == 502
        assert isinstance(PollTimeoutError("x"), TimeoutError)
