"""
Batch execution engine

Components for running many video jobs under a concurrency cap, with retry
and an overall deadline.
"""
from sora_batch.batch.concurrency import ConcurrencyLimiter
from sora_batch.batch.retry import retry_async
from sora_batch.batch.job_executor import JobExecutor
from sora_batch.batch.batch_progress_tracker import BatchProgressTracker
from sora_batch.batch.batch_runner import BatchRunner, PlannedJob

__all__ = [
    'ConcurrencyLimiter',
    'retry_async',
    'JobExecutor',
    'BatchProgressTracker',
    'BatchRunner',
    'PlannedJob',
]
