"""
Batch configuration loader

Loads a batch configuration file (JSON or YAML), validates it against the
schema and merges CLI options and environment defaults into it.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from sora_batch.schemas.batch import BATCH_DEFAULTS, BatchConfig
from sora_batch.utils.errors import BatchValidationError
from sora_batch.utils.settings import Settings, get_settings
from sora_batch.utils.video_pricing import (
    DEFAULT_MODEL,
    DEFAULT_SECONDS,
    DEFAULT_SIZE,
    get_valid_durations,
    is_valid_duration,
)

logger = logging.getLogger(__name__)


@dataclass
class BatchExecutionOptions:
    """Batch execution options from the CLI"""
    output_dir: Optional[str] = None
    format: str = "text"
    timeout: Optional[int] = None
    max_concurrent: Optional[int] = None
    poll_interval: Optional[int] = None
    max_poll_attempts: Optional[int] = None
    estimate_only: bool = False
    allow_any_path: bool = False


def load_config_file(file_path: Path) -> Dict[str, Any]:
    """
    Load a JSON or YAML config file

    JSON is a subset of YAML, so a single safe_load handles both formats.

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If the file is malformed
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid config file {file_path}: {e}")


def format_validation_errors(error: ValidationError) -> List[str]:
    """Format pydantic errors as readable lines, naming jobs by 1-based index"""
    messages = []
    for item in error.errors():
        loc = list(item['loc'])
        message = item['msg']
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]

        if len(loc) >= 2 and loc[0] == 'jobs' and isinstance(loc[1], int):
            prefix = f"Job {loc[1] + 1}"
            rest = " → ".join(str(x) for x in loc[2:])
            messages.append(f"{prefix}: {rest}: {message}" if rest else f"{prefix}: {message}")
        elif loc:
            field = " → ".join(str(x) for x in loc)
            messages.append(f"{field}: {message}")
        else:
            messages.append(message)
    return messages


def validate_batch_config(data: Any) -> BatchConfig:
    """
    Validate raw configuration data

    Args:
        data: Parsed config document

    Returns:
        Validated BatchConfig

    Raises:
        BatchValidationError: If the document does not describe a valid batch
    """
    if not isinstance(data, dict):
        raise BatchValidationError("batch config must be a mapping with a 'jobs' array")

    if not isinstance(data.get('jobs'), list):
        raise BatchValidationError("jobs must be an array")

    try:
        return BatchConfig(**data)
    except ValidationError as e:
        errors = format_validation_errors(e)
        raise BatchValidationError(
            f"Invalid batch config: {'; '.join(errors)}",
            errors=errors,
        ) from e


def load_batch_config(config_path: Union[str, Path]) -> BatchConfig:
    """
    Load and validate a batch configuration file

    Args:
        config_path: Path to the config file (relative paths resolve against cwd)

    Returns:
        Validated BatchConfig

    Raises:
        BatchValidationError: If the file is missing, unreadable or invalid
    """
    path = Path(config_path)
    if not path.is_absolute():
        path = Path.cwd() / path

    try:
        data = load_config_file(path)
    except FileNotFoundError as e:
        raise BatchValidationError(str(e)) from e
    except yaml.YAMLError as e:
        raise BatchValidationError(f"Config parse error: {e}") from e

    config = validate_batch_config(data)
    logger.debug(f"Loaded batch config from {path}: {len(config.jobs)} job(s)")
    return config


def merge_batch_config(
    config: BatchConfig,
    options: Optional[BatchExecutionOptions] = None,
    settings: Optional[Settings] = None,
) -> BatchConfig:
    """
    Merge CLI options and environment into a batch configuration

    Precedence: CLI options > environment > config file > defaults

    Args:
        config: Validated configuration from file
        options: CLI options
        settings: Environment settings (global settings if omitted)

    Returns:
        New BatchConfig with every execution field populated

    Raises:
        BatchValidationError: If a merged value is out of range
    """
    options = options or BatchExecutionOptions()
    settings = settings or get_settings()
    default_model = config.default_model or DEFAULT_MODEL

    data = config.model_dump()
    data.update({
        'output_dir': (
            options.output_dir
            or settings.output_dir
            or config.output_dir
            or BATCH_DEFAULTS['output_dir']
        ),
        'max_concurrent': (
            options.max_concurrent
            or config.max_concurrent
            or BATCH_DEFAULTS['max_concurrent']
        ),
        'timeout': (
            options.timeout
            or config.timeout
            or BATCH_DEFAULTS['timeout']
        ),
        'poll_interval': (
            options.poll_interval
            or settings.poll_interval
            or config.poll_interval
            or BATCH_DEFAULTS['poll_interval']
        ),
        'max_poll_attempts': (
            options.max_poll_attempts
            or settings.max_poll_attempts
            or config.max_poll_attempts
            or BATCH_DEFAULTS['max_poll_attempts']
        ),
        'retry_policy': config.effective_retry_policy.model_dump(),
        'default_model': default_model,
        'default_size': config.default_size or DEFAULT_SIZE,
        'default_seconds': config.default_seconds or _default_duration(default_model),
    })

    # Environment and CLI values are checked against the same limits as the file
    try:
        return BatchConfig.model_validate(data)
    except ValidationError as e:
        errors = format_validation_errors(e)
        raise BatchValidationError(
            f"Invalid batch config: {'; '.join(errors)}",
            errors=errors,
        ) from e


def _default_duration(model: str) -> int:
    """Global default duration, or the model's shortest when the global one is not allowed"""
    if is_valid_duration(model, DEFAULT_SECONDS):
        return DEFAULT_SECONDS
    durations = get_valid_durations(model)
    return durations[0] if durations else DEFAULT_SECONDS
