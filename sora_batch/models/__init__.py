"""Result models for Sora Batch"""

from sora_batch.models.outcomes import (
    BatchReport,
    CostBreakdownItem,
    CostEstimate,
    GeneratedVideo,
    JobOutcome,
    JobStatus,
)

__all__ = [
    "BatchReport",
    "CostBreakdownItem",
    "CostEstimate",
    "GeneratedVideo",
    "JobOutcome",
    "JobStatus",
]
