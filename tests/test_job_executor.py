"""
Tests for the job executor

The API client is mocked; polling uses a 1 ms interval.
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from sora_batch.batch.job_executor import JobExecutor
from sora_batch.schemas.batch import BATCH_DEFAULTS, JobKind, JobParameters, JobSpec
from sora_batch.utils.api_client import VideoStatusResponse
from sora_batch.utils.errors import APIError, NotFoundError, PollTimeoutError, VideoGenerationError, should_retry


def text_params(seconds=8):
    return JobParameters(model="sora-2", size="1280x720", seconds=seconds, kind=JobKind.TEXT_TO_VIDEO)


def make_client(*statuses):
    client = MagicMock()
    client.create_video.return_value = VideoStatusResponse(id="video_1", status="queued")
    client.remix_video.return_value = VideoStatusResponse(id="video_2", status="queued")
    client.get_video.side_effect = list(statuses)
    client.download_url.side_effect = lambda url, dest: dest
    client.download_content.side_effect = lambda video_id, dest: dest
    return client


@pytest.fixture
def output_path(tmp_path) -> Path:
    return tmp_path / "out" / "video.mp4"


class TestExecute:
    """Submit, poll, download"""

    @pytest.mark.asyncio
    async def test_text_to_video(self, output_path):
        """Test a text job is submitted, polled and downloaded from its URL"""
        client = make_client(
            VideoStatusResponse(id="video_1", status="in_progress"),
            VideoStatusResponse(id="video_1", status="completed", video_url="https://cdn/v.mp4", n_seconds=8),
        )
        executor = JobExecutor(client, poll_interval_ms=1, max_poll_attempts=5)

        video = await executor.execute(JobSpec(prompt="A cat"), text_params(), output_path)

        client.create_video.assert_called_once_with("A cat", "sora-2", "1280x720", 8, None)
        client.download_url.assert_called_once_with("https://cdn/v.mp4", output_path)
        assert video.video_id == "video_1"
        assert video.output_path == str(output_path)
        assert video.duration == 8

    @pytest.mark.asyncio
    async def test_image_to_video_passes_reference(self, output_path):
        """Test the image reference is forwarded to the client"""
        client = make_client(VideoStatusResponse(id="video_1", status="completed"))
        executor = JobExecutor(client, poll_interval_ms=1)
        job = JobSpec(prompt="Statue smiles", input_reference="statue.png")

        await executor.execute(job, text_params(4), output_path)

        client.create_video.assert_called_once_with("Statue smiles", "sora-2", "1280x720", 4, "statue.png")

    @pytest.mark.asyncio
    async def test_remix_uses_remix_endpoint(self, output_path):
        """Test a remix job calls remix_video and reports only the remote duration"""
        client = make_client(VideoStatusResponse(id="video_2", status="succeeded"))
        executor = JobExecutor(client, poll_interval_ms=1)
        job = JobSpec(prompt="At night", remix_video_id="video_src")

        video = await executor.execute(job, text_params(4), output_path)

        client.remix_video.assert_called_once_with("video_src", "At night")
        client.create_video.assert_not_called()
        assert video.duration is None

    @pytest.mark.asyncio
    async def test_download_from_content_endpoint(self, output_path):
        """Test the first generation id is downloaded when there is no URL"""
        client = make_client(
            VideoStatusResponse(id="video_1", status="completed", generation_ids=["gen_1"]),
        )
        executor = JobExecutor(client, poll_interval_ms=1)

        await executor.execute(JobSpec(prompt="A cat"), text_params(), output_path)

        client.download_content.assert_called_once_with("gen_1", output_path)

    @pytest.mark.asyncio
    async def test_duration_falls_back_to_requested(self, output_path):
        """Test requested seconds are used when the API reports no duration"""
        client = make_client(VideoStatusResponse(id="video_1", status="completed"))
        executor = JobExecutor(client, poll_interval_ms=1)

        video = await executor.execute(JobSpec(prompt="A cat"), text_params(12), output_path)

        assert video.duration == 12

    @pytest.mark.asyncio
    async def test_without_output_path_returns_remote_reference(self):
        """Test nothing is downloaded when no path is given"""
        client = make_client(
            VideoStatusResponse(id="video_1", status="completed", video_url="https://cdn/v.mp4"),
        )
        executor = JobExecutor(client, poll_interval_ms=1)

        video = await executor.execute(JobSpec(prompt="A cat"), text_params(), None)

        client.download_url.assert_not_called()
        assert video.video_url == "https://cdn/v.mp4"
        assert video.output_path is None


class TestPolling:
    """Poll loop behavior"""

    @pytest.mark.asyncio
    async def test_failed_status_raises(self):
        """Test a failed remote job raises with its reason"""
        client = make_client(
            VideoStatusResponse(id="video_1", status="failed", failure_reason="content policy"),
        )
        executor = JobExecutor(client, poll_interval_ms=1)

        with pytest.raises(VideoGenerationError, match="Video generation failed: content policy"):
            await executor.poll_until_terminal("video_1")

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_timeout(self):
        """Test polling gives up after max_poll_attempts"""
        client = make_client(*[VideoStatusResponse(id="video_1", status="queued")] * 3)
        executor = JobExecutor(client, poll_interval_ms=1, max_poll_attempts=3)

        with pytest.raises(PollTimeoutError, match="timeout: no result after 3 attempts") as exc_info:
            await executor.poll_until_terminal("video_1")

        assert should_retry(exc_info.value, BATCH_DEFAULTS["retry_on_errors"])

        assert client.get_video.call_count == 3

    @pytest.mark.asyncio
    async def test_server_errors_are_polled_through(self):
        """Test a 5xx during polling is waited out"""
        client = make_client(
            APIError("API error: 503 - busy", status_code=503),
            requests.ConnectionError("connection reset"),
            VideoStatusResponse(id="video_1", status="completed"),
        )
        executor = JobExecutor(client, poll_interval_ms=1, max_poll_attempts=5)

        status = await executor.poll_until_terminal("video_1")

        assert status.is_completed
        assert client.get_video.call_count == 3

    @pytest.mark.asyncio
    async def test_server_error_on_last_attempt_raises(self):
        """Test a 5xx on the final poll surfaces"""
        client = make_client(APIError("API error: 500 - oops", status_code=500))
        executor = JobExecutor(client, poll_interval_ms=1, max_poll_attempts=1)

        with pytest.raises(APIError, match="500"):
            await executor.poll_until_terminal("video_1")

    @pytest.mark.asyncio
    async def test_client_errors_raise_immediately(self):
        """Test a 404 is not polled through"""
        client = make_client(NotFoundError("Video not found: video_1", status_code=404))
        executor = JobExecutor(client, poll_interval_ms=1, max_poll_attempts=5)

        with pytest.raises(NotFoundError):
            await executor.poll_until_terminal("video_1")

        assert client.get_video.call_count == 1

    @pytest.mark.asyncio
    async def test_progress_called_per_poll(self):
        """Test the observer sees each polled status"""
        client = make_client(
            VideoStatusResponse(id="video_1", status="queued"),
            VideoStatusResponse(id="video_1", status="in_progress"),
            VideoStatusResponse(id="video_1", status="completed"),
        )
        executor = JobExecutor(client, poll_interval_ms=1, max_poll_attempts=10)
        seen = []

        await executor.poll_until_terminal("video_1", lambda status, attempt, total: seen.append((status, attempt, total)))

        assert seen == [("queued", 1, 10), ("in_progress", 2, 10), ("completed", 3, 10)]
