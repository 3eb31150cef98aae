"""
Pydantic V2 schemas for Sora Batch

Provides validation and type safety for batch configurations.
"""
from sora_batch.schemas.batch import (
    BATCH_DEFAULTS,
    BATCH_LIMITS,
    BatchConfig,
    JobKind,
    JobParameters,
    JobSpec,
    RetryPolicy,
)
from sora_batch.schemas.loader import (
    BatchExecutionOptions,
    load_batch_config,
    merge_batch_config,
    validate_batch_config,
)

__all__ = [
    "BATCH_DEFAULTS",
    "BATCH_LIMITS",
    "BatchConfig",
    "JobKind",
    "JobParameters",
    "JobSpec",
    "RetryPolicy",
    "BatchExecutionOptions",
    "load_batch_config",
    "merge_batch_config",
    "validate_batch_config",
]
