"""
Error types for Sora Batch

Provides:
- A small exception taxonomy for configuration, API and I/O failures
- The retry classifier used by the batch retry wrapper

Retry classification is deliberately string based: an error is retryable when
its message contains one of the configured trigger substrings. A permanent
error whose message happens to contain a trigger is retried too.
"""
from typing import Iterable, List, Optional


class SoraBatchError(Exception):
    """Base class for all Sora Batch errors"""


class BatchValidationError(SoraBatchError, ValueError):
    """Malformed batch configuration; fails the whole batch before any job starts"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class APIError(SoraBatchError):
    """Non-success response from the video API"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """401 from the API"""


class AccessDeniedError(APIError):
    """403 from the API"""


class NotFoundError(APIError):
    """404 from the API"""


class RateLimitError(APIError):
    """429 from the API"""


class VideoGenerationError(SoraBatchError):
    """Remote job reached a failed or cancelled terminal state"""

    def __init__(self, message: str, video_id: Optional[str] = None):
        super().__init__(message)
        self.video_id = video_id


class PollTimeoutError(SoraBatchError, TimeoutError):
    """Poll attempts exhausted before the remote job reached a terminal state"""


class DownloadError(SoraBatchError, OSError):
    """Artifact could not be fetched from the API"""


def should_retry(error: BaseException, patterns: Iterable[str]) -> bool:
    """
    Classify an error as retryable

    Args:
        error: The exception raised by an attempt
        patterns: Trigger substrings (case-insensitive)

    Returns:
        True if the error message contains any trigger substring
    """
    message = str(error).lower()
    return any(pattern.lower() in message for pattern in patterns if pattern)
