"""
Structured logging configuration for Sora Batch

Provides centralized logging with context (batch, job index, attempt) and
optional JSON formatting. Logs go to stderr so that JSON reports printed on
stdout stay machine readable.
"""
import logging
import logging.handlers
import sys
import json
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone
from contextvars import ContextVar


# Context variables for adding metadata to all logs
current_batch: ContextVar[Optional[str]] = ContextVar('current_batch', default=None)
current_job: ContextVar[Optional[int]] = ContextVar('current_job', default=None)
current_attempt: ContextVar[Optional[int]] = ContextVar('current_attempt', default=None)


class ContextFilter(logging.Filter):
    """Injects batch, job and attempt into every log record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.batch = current_batch.get()
        record.job = current_job.get()
        record.attempt = current_attempt.get()
        return True


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if getattr(record, 'batch', None):
            log_data['batch'] = record.batch

        if getattr(record, 'job', None) is not None:
            log_data['job'] = record.job

        if getattr(record, 'attempt', None) is not None:
            log_data['attempt'] = record.attempt

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if hasattr(record, 'video_id'):
            log_data['video_id'] = record.video_id

        if hasattr(record, 'cost'):
            log_data['cost'] = record.cost

        return json.dumps(log_data)


class ColoredFormatter(logging.Formatter):
    """Formats log records with colors for console output"""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
            )

        context_parts = []
        if getattr(record, 'batch', None):
            context_parts.append(f"batch={record.batch}")

        if getattr(record, 'job', None) is not None:
            context_parts.append(f"job={record.job}")

        if getattr(record, 'attempt', None) is not None:
            context_parts.append(f"attempt={record.attempt}")

        formatted = super().format(record)
        record.levelname = levelname

        if context_parts:
            formatted = f"{formatted} [{', '.join(context_parts)}]"

        return formatted


def setup_logging(
    level: str = "INFO",
    format_type: str = "colored",
    log_file: Optional[Path] = None,
) -> None:
    """
    Setup structured logging for Sora Batch

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Formatter type ("colored", "json", "simple")
        log_file: Optional path for a rotating JSON log file
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, level.upper()))

    context_filter = ContextFilter()
    console_handler.addFilter(context_filter)

    if format_type == "json":
        formatter = JSONFormatter()
    elif format_type == "colored":
        formatter = ColoredFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:  # simple
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        # 10 MB max, 5 backups
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)


def set_context(
    batch: Optional[str] = None,
    job: Optional[int] = None,
    attempt: Optional[int] = None,
) -> None:
    """
    Set logging context for the current task

    Args:
        batch: Batch identifier (usually the config file name)
        job: 1-based job index
        attempt: 1-based attempt number
    """
    if batch is not None:
        current_batch.set(batch)

    if job is not None:
        current_job.set(job)

    if attempt is not None:
        current_attempt.set(attempt)


def clear_context() -> None:
    """Clear all logging context"""
    current_batch.set(None)
    current_job.set(None)
    current_attempt.set(None)
