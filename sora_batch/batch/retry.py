"""
Retry Wrapper - re-runs a failing job attempt after a fixed delay

Features:
- Retries only errors whose message matches a trigger pattern
- Fixed delay between attempts, at most max_retries + 1 attempts in total
- Observer hook called before each retry wait
- The last error is re-raised unchanged once retries run out
"""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from sora_batch.utils.errors import should_retry

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def retry_async(
    work: Callable[[int], Awaitable[T]],
    *,
    max_retries: int,
    retry_delay_ms: int,
    retry_patterns: Iterable[str],
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """
    Run `work` until it succeeds, retrying errors that match a trigger pattern.

    `work` receives the 1-based attempt number. With max_retries=2 there are
    at most 3 attempts. Errors that do not match a pattern, and the error of
    the last allowed attempt, are re-raised unchanged.

    Args:
        work: Coroutine function to run
        max_retries: Retries after the first attempt
        retry_delay_ms: Fixed delay between attempts
        retry_patterns: Case-insensitive trigger substrings
        on_retry: Called with (next attempt, error) before each retry wait
    """
    patterns = list(retry_patterns)
    attempt = 1

    while True:
        try:
            return await work(attempt)
        except Exception as e:
            if attempt > max_retries or not should_retry(e, patterns):
                raise

            logger.warning(
                f"Retry attempt {attempt}/{max_retries} needed. Error: {e}. "
                f"Retrying in {retry_delay_ms}ms..."
            )
            attempt += 1
            if on_retry:
                on_retry(attempt, e)
            await asyncio.sleep(retry_delay_ms / 1000)
