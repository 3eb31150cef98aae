"""
Tests for Batch Progress Tracker module

Tests counters, plain output and the rich display.
"""
import io
import time

import pytest

from sora_batch.batch.batch_progress_tracker import BatchProgressTracker
from sora_batch.models.outcomes import GeneratedVideo, JobOutcome


def completed(index, output_path="output/generated_1.mp4"):
    video = GeneratedVideo(video_id=f"video_{index}", output_path=output_path, duration=4)
    return JobOutcome.completed(index, f"job {index}", video, duration_ms=100)


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def plain_tracker(stream):
    return BatchProgressTracker(total_jobs=3, batch_name="demo.json", use_rich=False, stream=stream)


class TestBatchProgressTrackerInit:
    """Tests for BatchProgressTracker initialization"""

    def test_init_basic(self):
        """Test basic initialization"""
        tracker = BatchProgressTracker(total_jobs=10, batch_name="Test Batch")

        assert tracker.total_jobs == 10
        assert tracker.batch_name == "Test Batch"
        assert tracker.succeeded == 0
        assert tracker.failed == 0
        assert tracker.cancelled == 0
        assert tracker.start_time is None
        assert tracker.running == {}

    def test_init_without_rich(self, stream):
        """Test use_rich flag configuration"""
        tracker = BatchProgressTracker(total_jobs=5, batch_name="No Rich", use_rich=False, stream=stream)

        assert tracker.use_rich is False
        assert tracker.stream is stream


class TestBatchProgressTrackerPlain:
    """Tests for plain output"""

    def test_start_prints_header(self, plain_tracker, stream):
        """Test that start() prints the batch name and job count"""
        plain_tracker.start()

        output = stream.getvalue()
        assert "demo.json" in output
        assert "Total jobs: 3" in output
        assert plain_tracker.start_time <= time.time()

    def test_job_lifecycle(self, plain_tracker, stream):
        """Test start, retry and finish events are printed"""
        plain_tracker.job_started(1, "A cat playing piano")
        plain_tracker.job_retrying(1, 2, RuntimeError("429 Too Many Requests"))
        plain_tracker.job_finished(completed(1))

        output = stream.getvalue()
        assert "[1/3] A cat playing piano" in output
        assert "retrying (attempt 2): 429 Too Many Requests" in output
        assert "[1] completed: output/generated_1.mp4" in output
        assert plain_tracker.running == {}

    def test_counters(self, plain_tracker):
        """Test each status increments its own counter"""
        plain_tracker.job_finished(completed(1))
        plain_tracker.job_finished(JobOutcome.failed(2, "job 2", "boom", duration_ms=5))
        plain_tracker.job_finished(JobOutcome.cancelled(3, "job 3", "batch timed out or cancelled"))

        assert (plain_tracker.succeeded, plain_tracker.failed, plain_tracker.cancelled) == (1, 1, 1)
        assert plain_tracker.finished == 3

    def test_failure_shows_error(self, plain_tracker, stream):
        """Test failed jobs print their error"""
        plain_tracker.job_finished(JobOutcome.failed(2, "job 2", "Video generation failed: policy", duration_ms=5))

        assert "[2] failed: Video generation failed: policy" in stream.getvalue()

    def test_progress_updates_running_status(self, plain_tracker):
        """Test poll updates are kept per running job"""
        plain_tracker.job_started(2, "job 2")
        plain_tracker.job_progress(2, "in_progress", 3, 120)

        assert plain_tracker.running[2] == "in_progress (poll 3/120)"

    def test_stop_prints_summary(self, plain_tracker, stream):
        """Test that stop() prints a summary"""
        plain_tracker.start()
        plain_tracker.job_finished(completed(1))
        plain_tracker.job_finished(JobOutcome.failed(2, "job 2", "boom", duration_ms=5))
        plain_tracker.stop()

        output = stream.getvalue()
        assert "Batch Execution Summary" in output
        assert "Succeeded: 1" in output
        assert "Failed: 1" in output

    def test_stop_without_start(self, plain_tracker, stream):
        """Test stop() before start() prints nothing"""
        plain_tracker.stop()

        assert stream.getvalue() == ""


class TestBatchProgressTrackerRich:
    """Tests for the rich display"""

    def test_progress_advances(self):
        """Test finished jobs advance the progress bar"""
        tracker = BatchProgressTracker(total_jobs=2, batch_name="demo")
        tracker.start()
        try:
            tracker.job_started(1, "job 1")
            tracker.job_progress(1, "queued", 1, 10)
            tracker.job_finished(completed(1))

            assert tracker.progress.tasks[0].completed == 1
            assert tracker.progress.tasks[0].total == 2
        finally:
            tracker.stop()

        assert tracker.succeeded == 1
        assert not tracker.live.is_started

    def test_display_lists_running_jobs(self):
        """Test the display can be rendered with running jobs"""
        tracker = BatchProgressTracker(total_jobs=2, batch_name="demo")
        tracker.start()
        try:
            tracker.job_started(2, "job 2")
            display = tracker._generate_display()
        finally:
            tracker.stop()

        assert len(display.renderables) == 3
