"""
Tests for result models
"""
from datetime import datetime, timedelta

from sora_batch.models.outcomes import BatchReport, GeneratedVideo, JobOutcome, JobStatus


class TestJobOutcome:
    """Tests for JobOutcome constructors and serialization"""

    def test_completed(self):
        """Test a completed outcome carries the artifact"""
        video = GeneratedVideo(video_id="video_1", video_url="https://cdn/v.mp4", output_path="/out/v.mp4", duration=8)

        outcome = JobOutcome.completed(1, "A cat", video, duration_ms=1500, attempts=2)

        assert outcome.status == JobStatus.COMPLETED
        assert outcome.output_path == "/out/v.mp4"
        assert outcome.video_duration == 8
        assert outcome.attempts == 2
        assert outcome.error is None

    def test_cancelled_stores_reason(self):
        """Test the cancellation reason is reported as the error"""
        outcome = JobOutcome.cancelled(2, "A dog", "batch timed out before job started")

        assert outcome.status == JobStatus.CANCELLED
        assert outcome.error == "batch timed out before job started"
        assert outcome.duration_ms is None

    def test_to_dict_omits_absent_fields(self):
        """Test None fields are left out"""
        data = JobOutcome.failed(3, "A bird", "boom", duration_ms=10).to_dict()

        assert data == {
            "index": 3,
            "prompt": "A bird",
            "status": "failed",
            "error": "boom",
            "duration_ms": 10,
            "is_remix": False,
            "is_image_to_video": False,
            "attempts": 0,
        }


class TestBatchReport:
    """Tests for BatchReport"""

    def test_from_outcomes_sorts_and_counts(self):
        """Test results are ordered by index and counted by status"""
        started = datetime(2025, 10, 1, 12, 0, 0)
        finished = started + timedelta(seconds=90)
        outcomes = [
            JobOutcome.cancelled(3, "c", "batch timed out or cancelled"),
            JobOutcome.completed(1, "a", GeneratedVideo(video_id="v1"), duration_ms=10),
            JobOutcome.failed(2, "b", "boom", duration_ms=10),
        ]

        report = BatchReport.from_outcomes(outcomes, started, finished, estimated_cost=0.123456)

        assert [o.index for o in report.results] == [1, 2, 3]
        assert (report.total, report.succeeded, report.failed, report.cancelled) == (3, 1, 1, 1)
        assert report.total_duration_ms == 90_000
        assert not report.all_succeeded

        data = report.to_dict()
        assert data["estimated_cost"] == 0.1235
        assert data["started_at"] == "2025-10-01T12:00:00"
        assert [r["status"] for r in data["results"]] == ["completed", "failed", "cancelled"]
