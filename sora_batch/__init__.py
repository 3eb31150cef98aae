"""
Sora Batch - batch video generation with the Sora 2 API

Runs many text-to-video, image-to-video and remix jobs under a concurrency
cap, with per-job retry, an overall deadline and cost accounting.
"""

__version__ = "1.0.0"

from sora_batch.batch.batch_runner import BatchRunner
from sora_batch.models.outcomes import BatchReport, CostEstimate, JobOutcome, JobStatus
from sora_batch.schemas import BatchConfig, JobSpec, RetryPolicy, load_batch_config, merge_batch_config
from sora_batch.utils.cost_estimator import estimate_batch_cost

__all__ = [
    "__version__",
    "BatchRunner",
    "BatchReport",
    "CostEstimate",
    "JobOutcome",
    "JobStatus",
    "BatchConfig",
    "JobSpec",
    "RetryPolicy",
    "load_batch_config",
    "merge_batch_config",
    "estimate_batch_cost",
]
