"""
Batch Runner - Orchestrates batch video generation

Features:
- Effective per-job parameters (job > batch default > global default)
- Output paths planned and de-collided before any job starts
- Bounded concurrency with FIFO admission
- Per-job retry keyed on error-message patterns
- Global deadline with a grace window for in-flight jobs
- Deterministic report ordered by job index, with measured cost

Outcomes are recorded once per job index and never revised. Anything that
has not produced an outcome when the batch is finalized is reported as
cancelled.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

from sora_batch.batch.batch_progress_tracker import BatchProgressTracker
from sora_batch.batch.concurrency import ConcurrencyLimiter
from sora_batch.batch.job_executor import JobExecutor
from sora_batch.batch.retry import retry_async
from sora_batch.models.outcomes import BatchReport, CostEstimate, JobOutcome
from sora_batch.schemas.batch import BATCH_DEFAULTS, BatchConfig, JobParameters, JobSpec
from sora_batch.utils.api_client import VideoAPIClient
from sora_batch.utils.cost_estimator import CostEstimator, calculate_total_cost
from sora_batch.utils.errors import AuthenticationError
from sora_batch.utils.logging_config import set_context
from sora_batch.utils.paths import generate_unique_file_path, resolve_output_path
from sora_batch.utils.settings import get_settings

logger = logging.getLogger(__name__)

CANCELLED_BEFORE_START = "batch timed out before job started"
CANCELLED_UNFINISHED = "batch timed out or cancelled"

DEFAULT_GRACE_PERIOD = 5.0  # seconds


@dataclass(frozen=True)
class PlannedJob:
    """A job with its 1-based index, effective parameters and reserved output path"""
    index: int
    job: JobSpec
    params: JobParameters
    output_path: Path


class BatchRunner:
    """
    Orchestrates batch execution

    Example:
        config = merge_batch_config(load_batch_config("batch.json"), options)
        report = await BatchRunner(config, api_key=key).run()
    """

    def __init__(
        self,
        config: BatchConfig,
        executor: Optional[JobExecutor] = None,
        *,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        allow_any_path: bool = False,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        progress_tracker: Optional[BatchProgressTracker] = None,
        batch_name: str = "batch",
    ):
        """
        Initialize batch runner

        Args:
            config: Batch configuration (fields left unset fall back to defaults)
            executor: Job executor (built from api_key and the config if None)
            api_key: API key for the default executor (OPENAI_API_KEY if None)
            api_base: API base URL for the default executor
            allow_any_path: Allow output paths outside output_dir
            grace_period: Seconds to wait for in-flight jobs after the deadline
            progress_tracker: Optional progress display
            batch_name: Name used in logs
        """
        self.config = config
        self.allow_any_path = allow_any_path
        self.grace_period = grace_period
        self.progress_tracker = progress_tracker
        self.batch_name = batch_name

        self.output_dir = config.output_dir or BATCH_DEFAULTS["output_dir"]
        self.max_concurrent = config.max_concurrent or BATCH_DEFAULTS["max_concurrent"]
        self.timeout_ms = config.timeout or BATCH_DEFAULTS["timeout"]
        self.poll_interval_ms = config.poll_interval or BATCH_DEFAULTS["poll_interval"]
        self.max_poll_attempts = config.max_poll_attempts or BATCH_DEFAULTS["max_poll_attempts"]
        self.retry_policy = config.effective_retry_policy

        self._executor = executor
        self._api_key = api_key
        self._api_base = api_base

        # Execution state
        self._outcomes: Dict[int, JobOutcome] = {}
        self._timed_out = False
        self._finalized = False

    @property
    def timed_out(self) -> bool:
        return self._timed_out

    def _get_executor(self) -> JobExecutor:
        if self._executor is None:
            settings = get_settings()
            api_key = self._api_key or settings.api_key
            if not api_key:
                raise AuthenticationError("OPENAI_API_KEY is required to run a batch")
            client = VideoAPIClient(api_key, api_base=self._api_base or settings.api_base)
            self._executor = JobExecutor(
                client,
                poll_interval_ms=self.poll_interval_ms,
                max_poll_attempts=self.max_poll_attempts,
            )
        return self._executor

    def estimate(self) -> CostEstimate:
        """Estimate the cost of the batch without running it"""
        return CostEstimator(self.config).estimate()

    def plan_jobs(self) -> List[PlannedJob]:
        """
        Resolve parameters and reserve output paths for every job, in index order

        Returns:
            Planned jobs

        Raises:
            BatchValidationError: If an output path escapes output_dir
        """
        reserved: Set[Path] = set()
        planned = []

        for index, job in enumerate(self.config.jobs, start=1):
            path = resolve_output_path(job, index, self.output_dir, self.allow_any_path)
            path = generate_unique_file_path(path, reserved)
            reserved.add(path)
            planned.append(PlannedJob(
                index=index,
                job=job,
                params=self.config.resolve_job(job),
                output_path=path,
            ))

        return planned

    def _record(self, outcome: JobOutcome) -> bool:
        """Record an outcome unless one exists for the index or the batch is finalized"""
        if self._finalized or outcome.index in self._outcomes:
            logger.debug(f"Dropping late outcome for job {outcome.index} ({outcome.status.value})")
            return False

        self._outcomes[outcome.index] = outcome
        if self.progress_tracker:
            self.progress_tracker.job_finished(outcome)
        return True

    async def _run_job(
        self,
        planned: PlannedJob,
        executor: JobExecutor,
        limiter: ConcurrencyLimiter,
    ) -> None:
        """Run one job under the limiter; never raises for job-level errors"""
        index = planned.index
        job = planned.job
        flags = {"is_remix": job.is_remix, "is_image_to_video": job.is_image_to_video}

        async with limiter:
            if self._timed_out:
                logger.info(f"Job {index} cancelled: {CANCELLED_BEFORE_START}")
                self._record(JobOutcome.cancelled(index, job.prompt, CANCELLED_BEFORE_START, **flags))
                return

            started_at = datetime.now(timezone.utc)
            start = time.monotonic()
            attempts = 0

            def on_progress(status: str, attempt: int, max_attempts: int) -> None:
                if self.progress_tracker:
                    self.progress_tracker.job_progress(index, status, attempt, max_attempts)

            def on_retry(attempt: int, error: BaseException) -> None:
                if self.progress_tracker:
                    self.progress_tracker.job_retrying(index, attempt, error)

            async def attempt_job(attempt: int):
                nonlocal attempts
                attempts = attempt
                set_context(attempt=attempt)
                return await executor.execute(job, planned.params, planned.output_path, on_progress)

            try:
                set_context(job=index)
                logger.info(f"Starting job {index}: {job.prompt[:80]}")
                if self.progress_tracker:
                    self.progress_tracker.job_started(index, job.prompt)

                video = await retry_async(
                    attempt_job,
                    max_retries=self.retry_policy.max_retries,
                    retry_delay_ms=self.retry_policy.retry_delay_ms,
                    retry_patterns=self.retry_policy.retry_on_errors,
                    on_retry=on_retry,
                )
            except Exception as e:
                elapsed_ms = int((time.monotonic() - start) * 1000)
                logger.error(f"Job {index} failed after {attempts} attempt(s): {e}")
                self._record(JobOutcome.failed(
                    index,
                    job.prompt,
                    str(e),
                    elapsed_ms,
                    attempts=attempts,
                    started_at=started_at,
                    finished_at=datetime.now(timezone.utc),
                    **flags,
                ))
                return

            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.info(f"Job {index} completed in {elapsed_ms}ms", extra={"video_id": video.video_id})
            self._record(JobOutcome.completed(
                index,
                job.prompt,
                video,
                elapsed_ms,
                attempts=attempts,
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
                **flags,
            ))

    async def run(self) -> BatchReport:
        """
        Execute every job and build the report

        Returns:
            BatchReport with one outcome per job, ordered by index

        Raises:
            BatchValidationError: If output path planning fails (before any job starts)
            AuthenticationError: If no executor was given and no API key is available
        """
        planned = self.plan_jobs()
        executor = self._get_executor()
        limiter = ConcurrencyLimiter(self.max_concurrent)

        self._outcomes = {}
        self._timed_out = False
        self._finalized = False

        set_context(batch=self.batch_name)
        started_at = datetime.now(timezone.utc)
        logger.info(
            f"Running {len(planned)} job(s), max {self.max_concurrent} concurrent, "
            f"timeout {self.timeout_ms}ms"
        )

        if self.progress_tracker:
            self.progress_tracker.start()

        try:
            tasks = [
                asyncio.create_task(self._run_job(job, executor, limiter), name=f"job-{job.index}")
                for job in planned
            ]

            _, pending = await asyncio.wait(tasks, timeout=self.timeout_ms / 1000)

            if pending:
                self._timed_out = True
                logger.warning(
                    f"Batch deadline of {self.timeout_ms}ms reached with {len(pending)} job(s) unfinished, "
                    f"waiting {self.grace_period}s for in-flight jobs"
                )
                _, pending = await asyncio.wait(pending, timeout=self.grace_period)

            self._finalized = True

            # Unfinished tasks would only produce dropped outcomes
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

            for job in planned:
                if job.index not in self._outcomes:
                    outcome = JobOutcome.cancelled(
                        job.index,
                        job.job.prompt,
                        CANCELLED_UNFINISHED,
                        is_remix=job.job.is_remix,
                        is_image_to_video=job.job.is_image_to_video,
                    )
                    self._outcomes[job.index] = outcome
                    if self.progress_tracker:
                        self.progress_tracker.job_finished(outcome)
        finally:
            if self.progress_tracker:
                self.progress_tracker.stop()

        finished_at = datetime.now(timezone.utc)
        outcomes = list(self._outcomes.values())
        report = BatchReport.from_outcomes(
            outcomes,
            started_at=started_at,
            finished_at=finished_at,
            estimated_cost=calculate_total_cost(outcomes, self.config),
        )

        logger.info(
            f"Batch finished: {report.succeeded} succeeded, {report.failed} failed, "
            f"{report.cancelled} cancelled",
            extra={"cost": report.estimated_cost},
        )
        return report

