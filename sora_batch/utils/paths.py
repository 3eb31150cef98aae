"""
Output path handling for Sora Batch

Resolves where each job's video is written, guards against paths escaping the
output directory and picks collision-free file names.
"""
import logging
from pathlib import Path
from typing import AbstractSet, Optional

from sora_batch.schemas.batch import JobKind, JobSpec
from sora_batch.utils.errors import BatchValidationError

logger = logging.getLogger(__name__)

# File name prefix for jobs without an explicit output_path
AUTO_NAME_PREFIXES = {
    JobKind.TEXT_TO_VIDEO: "generated",
    JobKind.IMAGE_TO_VIDEO: "animated",
    JobKind.REMIX: "remixed",
}


def _is_within(path: Path, directory: Path) -> bool:
    try:
        path.relative_to(directory)
        return True
    except ValueError:
        return False


def resolve_output_path(
    job: JobSpec,
    index: int,
    output_dir: str,
    allow_any_path: bool = False,
) -> Path:
    """
    Resolve the output path of a job

    Args:
        job: Job specification
        index: 1-based job index (used for auto-generated names)
        output_dir: Batch output directory
        allow_any_path: Allow paths outside output_dir

    Returns:
        Absolute output path (not yet de-collided)

    Raises:
        BatchValidationError: If the path escapes output_dir and allow_any_path is off
    """
    base = Path(output_dir).expanduser().resolve()

    if not job.output_path:
        prefix = AUTO_NAME_PREFIXES[JobKind(job.kind)]
        return base / f"{prefix}_{index}.mp4"

    requested = Path(job.output_path).expanduser()
    if requested.is_absolute():
        resolved = requested.resolve()
    else:
        resolved = (base / requested).resolve()

    if not allow_any_path and not _is_within(resolved, base):
        raise BatchValidationError(
            f"Job {index}: output_path must be within output_dir ({base}). "
            "Use --allow-any-path to override."
        )

    return resolved


def generate_unique_file_path(path: Path, reserved: Optional[AbstractSet[Path]] = None) -> Path:
    """
    Pick a file path that neither exists nor is reserved

    Adds a counter suffix: video.mp4 -> video_1.mp4 -> video_2.mp4

    Args:
        path: Desired path
        reserved: Paths already claimed by other jobs in this batch

    Returns:
        Collision-free path
    """
    reserved = reserved or frozenset()

    def taken(candidate: Path) -> bool:
        return candidate in reserved or candidate.exists()

    if not taken(path):
        return path

    counter = 1
    candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
    while taken(candidate):
        counter += 1
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")

    logger.debug(f"Output path {path} is taken, using {candidate}")
    return candidate


def display_path(path: Path) -> str:
    """Display-friendly path (relative to cwd when possible)"""
    cwd = Path.cwd()
    if _is_within(path, cwd):
        return str(path.relative_to(cwd))
    return str(path)
