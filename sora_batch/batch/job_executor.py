"""
Job Executor - runs one video job to completion

Submit, poll until terminal, download. Owns no concurrency or retry logic;
those are layered above it by the batch runner. Blocking HTTP calls run in
worker threads so many jobs can interleave on one event loop.
"""
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import requests

from sora_batch.models.outcomes import GeneratedVideo
from sora_batch.schemas.batch import JobParameters, JobSpec
from sora_batch.utils.api_client import VideoAPIClient, VideoStatusResponse
from sora_batch.utils.errors import APIError, PollTimeoutError, VideoGenerationError
from sora_batch.utils.video_pricing import DEFAULT_MAX_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL_MS

logger = logging.getLogger(__name__)

# (status, attempt, max_attempts)
ProgressCallback = Callable[[str, int, int], None]


def _is_transient(error: Exception) -> bool:
    """Server errors and network failures are worth another poll"""
    if isinstance(error, APIError):
        return error.status_code is not None and error.status_code >= 500
    return isinstance(error, requests.RequestException)


class JobExecutor:
    """
    Executes a single job against the video API

    Example:
        executor = JobExecutor(VideoAPIClient(api_key), poll_interval_ms=15000)
        video = await executor.execute(job, params, Path("output/cat.mp4"))
    """

    def __init__(
        self,
        client: VideoAPIClient,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
    ):
        """
        Initialize executor

        Args:
            client: API client
            poll_interval_ms: Delay between status polls
            max_poll_attempts: Polls before giving up on a job attempt
        """
        self.client = client
        self.poll_interval_ms = poll_interval_ms
        self.max_poll_attempts = max_poll_attempts

    async def submit(self, job: JobSpec, params: JobParameters) -> VideoStatusResponse:
        """Submit the job as a remix, image-to-video or text-to-video request"""
        if job.remix_video_id:
            return await asyncio.to_thread(self.client.remix_video, job.remix_video_id, job.prompt)

        return await asyncio.to_thread(
            self.client.create_video,
            job.prompt,
            params.model,
            params.size,
            params.seconds,
            job.input_reference,
        )

    async def poll_until_terminal(
        self,
        video_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> VideoStatusResponse:
        """
        Poll a video until it completes

        Args:
            video_id: Remote video ID
            on_progress: Called once per successful poll

        Returns:
            The completed video

        Raises:
            VideoGenerationError: If the video failed or was cancelled remotely
            PollTimeoutError: If max_poll_attempts polls did not reach a terminal state
            APIError: For non-transient API errors (or a transient one on the last poll)
        """
        interval = self.poll_interval_ms / 1000
        logger.debug(f"Starting poll for video: {video_id}")

        for attempt in range(1, self.max_poll_attempts + 1):
            try:
                status = await asyncio.to_thread(self.client.get_video, video_id)
            except Exception as e:
                if _is_transient(e) and attempt < self.max_poll_attempts:
                    logger.debug(f"Poll error for {video_id} (attempt {attempt}), retrying: {e}")
                    await asyncio.sleep(interval)
                    continue
                raise

            logger.debug(f"Poll attempt {attempt}: status={status.status}")
            if on_progress:
                on_progress(status.status, attempt, self.max_poll_attempts)

            if status.is_completed:
                return status

            if status.is_failed:
                reason = status.failure_reason or status.error or status.status
                raise VideoGenerationError(f"Video generation failed: {reason}", video_id=video_id)

            if attempt < self.max_poll_attempts:
                await asyncio.sleep(interval)

        minutes = round(self.max_poll_attempts * self.poll_interval_ms / 60000)
        raise PollTimeoutError(
            f"Video generation timeout: no result after {self.max_poll_attempts} attempts ({minutes} minutes)"
        )

    async def download(self, video: VideoStatusResponse, output_path: Path) -> Path:
        """Download a completed video from its URL or the content endpoint"""
        if video.video_url:
            return await asyncio.to_thread(self.client.download_url, video.video_url, output_path)
        return await asyncio.to_thread(self.client.download_content, video.download_id, output_path)

    async def execute(
        self,
        job: JobSpec,
        params: JobParameters,
        output_path: Optional[Path] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GeneratedVideo:
        """
        Execute one job

        Args:
            job: Job specification
            params: Effective parameters
            output_path: Where to save the video (remote reference only if None)
            on_progress: Poll observer

        Returns:
            GeneratedVideo with the measured duration
        """
        created = await self.submit(job, params)
        final = await self.poll_until_terminal(created.id, on_progress)

        if job.remix_video_id:
            duration = final.duration
        else:
            duration = final.n_seconds or final.duration or params.seconds

        if output_path is None:
            return GeneratedVideo(video_id=created.id, video_url=final.video_url, duration=duration)

        saved = await self.download(final, output_path)
        logger.info(f"Video {created.id} saved to {saved}", extra={"video_id": created.id})

        return GeneratedVideo(
            video_id=created.id,
            video_url=final.video_url,
            output_path=str(saved),
            duration=duration,
        )
