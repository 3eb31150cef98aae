"""
Cost estimation for Sora Batch

Estimates costs before running a batch based on its configuration, and totals
the cost of a finished batch from measured video durations.
"""
from collections import OrderedDict
from typing import Iterable, Optional

from sora_batch.models.outcomes import CostBreakdownItem, CostEstimate, JobOutcome, JobStatus
from sora_batch.schemas.batch import BatchConfig, JobKind
from sora_batch.utils.video_pricing import calculate_cost


class CostEstimator:
    """
    Estimates batch execution costs

    Uses the requested duration of each job at the price of its effective
    model and resolution, and reports a band around the nominal total to
    account for variation in billed durations.
    """

    MIN_FACTOR = 0.9
    MAX_FACTOR = 1.2

    # Breakdown order
    KINDS = (JobKind.TEXT_TO_VIDEO, JobKind.IMAGE_TO_VIDEO, JobKind.REMIX)

    def __init__(self, config: BatchConfig):
        """
        Initialize cost estimator

        Args:
            config: Batch configuration (merged or as loaded)
        """
        self.config = config

    def estimate(self) -> CostEstimate:
        """
        Estimate costs for the batch

        Returns:
            CostEstimate with per-kind breakdown
        """
        counts = OrderedDict((kind.value, 0) for kind in self.KINDS)
        costs = OrderedDict((kind.value, 0.0) for kind in self.KINDS)

        for job in self.config.jobs:
            params = self.config.resolve_job(job)
            kind = JobKind(params.kind).value
            counts[kind] += 1
            costs[kind] += calculate_cost(params.model, params.seconds, params.size)

        nominal = sum(costs.values())
        breakdown = [
            CostBreakdownItem(kind=kind, count=counts[kind], estimated_cost=costs[kind])
            for kind in counts
            if counts[kind] > 0
        ]

        return CostEstimate(
            total_jobs=len(self.config.jobs),
            nominal_cost=nominal,
            estimated_min=nominal * self.MIN_FACTOR,
            estimated_max=nominal * self.MAX_FACTOR,
            breakdown=breakdown,
        )


def estimate_batch_cost(config: BatchConfig) -> CostEstimate:
    """Convenience wrapper around CostEstimator"""
    return CostEstimator(config).estimate()


def calculate_total_cost(outcomes: Iterable[JobOutcome], config: BatchConfig) -> float:
    """
    Total cost of a finished batch

    Only completed jobs with a measured duration count; their price comes
    from the job's effective model and resolution.

    Args:
        outcomes: Job outcomes (any order)
        config: The batch configuration the outcomes belong to

    Returns:
        Cost in USD
    """
    total = 0.0
    for outcome in outcomes:
        if outcome.status != JobStatus.COMPLETED or not outcome.video_duration:
            continue
        job = config.jobs[outcome.index - 1]
        params = config.resolve_job(job)
        total += calculate_cost(params.model, outcome.video_duration, params.size)
    return total


def format_cost(value: Optional[float]) -> str:
    """Format a cost for display"""
    if value is None:
        return "-"
    return f"${value:.2f}"
