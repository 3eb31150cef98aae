"""
Immutable result models for Sora Batch

These models enable:
- One recorded outcome per job that is never revised
- Deterministic reports (outcomes ordered by job index)
- JSON serialization of reports and cost estimates
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class JobStatus(str, Enum):
    """Terminal job status"""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GeneratedVideo:
    """Result of executing one job: the remote video and where it was saved"""

    video_id: str
    video_url: Optional[str] = None
    output_path: Optional[str] = None
    duration: Optional[float] = None  # measured seconds, when reported


@dataclass(frozen=True)
class JobOutcome:
    """
    Immutable terminal result of one job

    `index` is 1-based. Completed outcomes carry the artifact location, failed
    outcomes the raw error message and cancelled outcomes the reason.
    """

    index: int
    prompt: str
    status: JobStatus
    output_path: Optional[str] = None
    video_url: Optional[str] = None
    video_id: Optional[str] = None
    video_duration: Optional[float] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None
    is_remix: bool = False
    is_image_to_video: bool = False
    attempts: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def completed(
        cls,
        index: int,
        prompt: str,
        video: GeneratedVideo,
        duration_ms: int,
        **kwargs: Any,
    ) -> JobOutcome:
        return cls(
            index=index,
            prompt=prompt,
            status=JobStatus.COMPLETED,
            output_path=video.output_path,
            video_url=video.video_url,
            video_id=video.video_id,
            video_duration=video.duration,
            duration_ms=duration_ms,
            **kwargs,
        )

    @classmethod
    def failed(cls, index: int, prompt: str, error: str, duration_ms: int, **kwargs: Any) -> JobOutcome:
        return cls(
            index=index,
            prompt=prompt,
            status=JobStatus.FAILED,
            error=error,
            duration_ms=duration_ms,
            **kwargs,
        )

    @classmethod
    def cancelled(cls, index: int, prompt: str, reason: str, **kwargs: Any) -> JobOutcome:
        return cls(
            index=index,
            prompt=prompt,
            status=JobStatus.CANCELLED,
            error=reason,
            **kwargs,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict, omitting absent fields"""
        data: Dict[str, Any] = {
            "index": self.index,
            "prompt": self.prompt,
            "status": self.status.value,
            "output_path": self.output_path,
            "video_url": self.video_url,
            "video_id": self.video_id,
            "video_duration": self.video_duration,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "is_remix": self.is_remix,
            "is_image_to_video": self.is_image_to_video,
            "attempts": self.attempts,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass(frozen=True)
class BatchReport:
    """Aggregate result of a batch run"""

    total: int
    succeeded: int
    failed: int
    cancelled: int
    results: List[JobOutcome]
    started_at: datetime
    finished_at: datetime
    total_duration_ms: int
    estimated_cost: float

    @classmethod
    def from_outcomes(
        cls,
        outcomes: List[JobOutcome],
        started_at: datetime,
        finished_at: datetime,
        estimated_cost: float,
    ) -> BatchReport:
        """Build a report from outcomes (sorted by index here)"""
        ordered = sorted(outcomes, key=lambda o: o.index)
        return cls(
            total=len(ordered),
            succeeded=sum(1 for o in ordered if o.status == JobStatus.COMPLETED),
            failed=sum(1 for o in ordered if o.status == JobStatus.FAILED),
            cancelled=sum(1 for o in ordered if o.status == JobStatus.CANCELLED),
            results=ordered,
            started_at=started_at,
            finished_at=finished_at,
            total_duration_ms=int((finished_at - started_at).total_seconds() * 1000),
            estimated_cost=estimated_cost,
        )

    @property
    def all_succeeded(self) -> bool:
        return self.succeeded == self.total

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "results": [outcome.to_dict() for outcome in self.results],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "total_duration_ms": self.total_duration_ms,
            "estimated_cost": round(self.estimated_cost, 4),
        }


@dataclass(frozen=True)
class CostBreakdownItem:
    """Nominal cost of all jobs of one kind"""

    kind: str
    count: int
    estimated_cost: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "count": self.count,
            "estimated_cost": round(self.estimated_cost, 4),
        }


@dataclass(frozen=True)
class CostEstimate:
    """Cost range for a batch, computed from its configuration alone"""

    total_jobs: int
    nominal_cost: float
    estimated_min: float
    estimated_max: float
    breakdown: List[CostBreakdownItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_jobs": self.total_jobs,
            "estimated_min": round(self.estimated_min, 4),
            "estimated_max": round(self.estimated_max, 4),
            "breakdown": [item.to_dict() for item in self.breakdown],
        }
