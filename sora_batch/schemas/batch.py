"""
Batch configuration schema for Sora Batch

Validates batch configuration files (JSON or YAML) with clear error messages.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from sora_batch.utils.video_pricing import (
    DEFAULT_MODEL,
    DEFAULT_SECONDS,
    DEFAULT_SIZE,
    VideoModel,
    VideoSize,
    get_valid_durations,
    is_valid_duration,
)


# Default values for batch processing
BATCH_DEFAULTS = {
    "max_concurrent": 2,
    "timeout": 1_800_000,  # 30 minutes
    "poll_interval": 15_000,
    "max_poll_attempts": 120,
    "retry_max_retries": 2,
    "retry_delay_ms": 1000,
    "retry_on_errors": ("rate_limit", "timeout", "429", "503", "500"),
    "output_dir": "./output",
}

# Batch limits
BATCH_LIMITS = {
    "min_jobs": 1,
    "max_jobs": 100,
    "min_concurrent": 1,
    "max_concurrent": 5,
    "min_timeout": 60_000,  # 1 minute
    "max_timeout": 3_600_000,  # 1 hour
    "min_poll_interval": 5_000,
    "max_poll_interval": 60_000,
    "min_retry": 0,
    "max_retry": 5,
    "min_retry_delay": 100,
    "max_retry_delay": 60_000,
}


class JobKind(str, Enum):
    """How a job produces its video"""
    TEXT_TO_VIDEO = "text_to_video"
    IMAGE_TO_VIDEO = "image_to_video"
    REMIX = "remix"


class JobSpec(BaseModel):
    """
    One video generation job

    Examples:
        # Text-to-video
        {"prompt": "A cat playing piano in a jazz bar", "seconds": 8}

        # Image-to-video
        {"prompt": "The statue comes alive", "input_reference": "statue.png"}

        # Remix of an existing video
        {"prompt": "Same scene at night", "remix_video_id": "video_abc123"}
    """

    prompt: str = Field(
        ...,
        description="Text prompt describing the video",
    )

    output_path: Optional[str] = Field(
        default=None,
        description="Where to save the video (relative paths are joined to output_dir)",
    )

    model: Optional[VideoModel] = Field(
        default=None,
        description="Video model (defaults to the batch default_model)",
    )

    size: Optional[VideoSize] = Field(
        default=None,
        description="Output resolution (defaults to the batch default_size)",
    )

    seconds: Optional[int] = Field(
        default=None,
        description="Video duration in seconds, must be allowed by the model",
    )

    input_reference: Optional[str] = Field(
        default=None,
        description="Source image for image-to-video: URL, data URI or local path",
    )

    remix_video_id: Optional[str] = Field(
        default=None,
        description="ID of a previously generated video to remix",
    )

    @field_validator('prompt')
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt is required and must be a non-empty string")
        return v

    @model_validator(mode='after')
    def validate_job_kind(self):
        """Remix and image inputs are exclusive, and remixes inherit their parameters"""
        if self.remix_video_id and self.input_reference:
            raise ValueError("cannot specify both remix_video_id and input_reference")

        if self.remix_video_id:
            if self.seconds is not None:
                raise ValueError("remix jobs cannot specify seconds")
            if self.size is not None:
                raise ValueError("remix jobs cannot specify size")
            if self.model is not None:
                raise ValueError("remix jobs cannot specify model")

        return self

    @property
    def kind(self) -> JobKind:
        if self.remix_video_id:
            return JobKind.REMIX
        if self.input_reference:
            return JobKind.IMAGE_TO_VIDEO
        return JobKind.TEXT_TO_VIDEO

    @property
    def is_remix(self) -> bool:
        return self.kind == JobKind.REMIX

    @property
    def is_image_to_video(self) -> bool:
        return self.kind == JobKind.IMAGE_TO_VIDEO

    model_config = {
        "use_enum_values": True,
        "frozen": True,
    }


class RetryPolicy(BaseModel):
    """
    Per-job retry policy

    Example:
        retry_policy:
          max_retries: 3
          retry_delay_ms: 2000
          retry_on_errors: ["rate limit", "429", "503"]
    """

    max_retries: int = Field(
        default=BATCH_DEFAULTS["retry_max_retries"],
        description="Retries after the first attempt",
        ge=BATCH_LIMITS["min_retry"],
        le=BATCH_LIMITS["max_retry"],
    )

    retry_delay_ms: int = Field(
        default=BATCH_DEFAULTS["retry_delay_ms"],
        description="Delay between attempts in milliseconds",
        ge=BATCH_LIMITS["min_retry_delay"],
        le=BATCH_LIMITS["max_retry_delay"],
    )

    retry_on_errors: List[str] = Field(
        default_factory=lambda: list(BATCH_DEFAULTS["retry_on_errors"]),
        description="Case-insensitive substrings of error messages that trigger a retry",
    )

    model_config = {
        "frozen": True,
    }


@dataclass(frozen=True)
class JobParameters:
    """Effective parameters of a job after applying batch and global defaults"""
    model: str
    size: str
    seconds: int
    kind: JobKind


class BatchConfig(BaseModel):
    """
    Complete batch configuration

    Example batch-config.json:
        {
          "jobs": [
            {"prompt": "A cat playing piano in a jazz bar", "seconds": 8, "size": "1280x720"},
            {"prompt": "Same cat, now at sunrise", "remix_video_id": "video_abc123"}
          ],
          "output_dir": "./output",
          "max_concurrent": 2,
          "default_model": "sora-2"
        }
    """

    jobs: List[JobSpec] = Field(
        ...,
        description="Jobs to execute, in order",
        min_length=BATCH_LIMITS["min_jobs"],
        max_length=BATCH_LIMITS["max_jobs"],
    )

    output_dir: Optional[str] = Field(
        default=None,
        description="Directory for downloaded videos",
    )

    max_concurrent: Optional[int] = Field(
        default=None,
        description="Maximum jobs in flight at once",
        ge=BATCH_LIMITS["min_concurrent"],
        le=BATCH_LIMITS["max_concurrent"],
    )

    timeout: Optional[int] = Field(
        default=None,
        description="Total batch deadline in milliseconds",
        ge=BATCH_LIMITS["min_timeout"],
        le=BATCH_LIMITS["max_timeout"],
    )

    poll_interval: Optional[int] = Field(
        default=None,
        description="Delay between status polls in milliseconds",
        ge=BATCH_LIMITS["min_poll_interval"],
        le=BATCH_LIMITS["max_poll_interval"],
    )

    max_poll_attempts: Optional[int] = Field(
        default=None,
        description="Maximum status polls per job attempt",
        gt=0,
    )

    retry_policy: Optional[RetryPolicy] = Field(
        default=None,
        description="Retry policy applied to every job",
    )

    default_model: Optional[VideoModel] = Field(
        default=None,
        description="Model for jobs that do not set one",
    )

    default_size: Optional[VideoSize] = Field(
        default=None,
        description="Resolution for jobs that do not set one",
    )

    default_seconds: Optional[int] = Field(
        default=None,
        description="Duration for jobs that do not set one",
    )

    @model_validator(mode='after')
    def validate_durations(self):
        """Durations must be allowed by the model that will actually be used"""
        default_model = self.default_model or DEFAULT_MODEL

        if self.default_seconds is not None and not is_valid_duration(default_model, self.default_seconds):
            valid = ", ".join(str(d) for d in get_valid_durations(default_model))
            raise ValueError(
                f"invalid default_seconds '{self.default_seconds}' for model '{default_model}'. "
                f"Valid durations: {valid}"
            )

        for index, job in enumerate(self.jobs):
            if job.seconds is None:
                continue
            model = job.model or default_model
            if not is_valid_duration(model, job.seconds):
                valid = ", ".join(str(d) for d in get_valid_durations(model))
                raise ValueError(
                    f"Job {index + 1}: invalid seconds '{job.seconds}' for model '{model}'. "
                    f"Valid durations: {valid}"
                )

        return self

    @property
    def effective_retry_policy(self) -> RetryPolicy:
        return self.retry_policy or RetryPolicy()

    def resolve_job(self, job: JobSpec) -> JobParameters:
        """
        Resolve a job's effective parameters

        Precedence: job value > batch default > global default
        """
        return JobParameters(
            model=job.model or self.default_model or DEFAULT_MODEL,
            size=job.size or self.default_size or DEFAULT_SIZE,
            seconds=job.seconds or self.default_seconds or DEFAULT_SECONDS,
            kind=job.kind,
        )

    model_config = {
        "use_enum_values": True,
        "frozen": True,
    }
