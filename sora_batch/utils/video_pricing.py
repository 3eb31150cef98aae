"""
Video Pricing for Sora Batch

Model catalogue (models, durations, sizes) and per-second pricing for the
Sora 2 video generation API.

Pricing data based on OpenAI video pricing as of October 2025.
"""
import logging
from enum import Enum
from typing import Dict, Tuple

logger = logging.getLogger(__name__)


class VideoModel(str, Enum):
    """Video generation models"""
    SORA_2 = "sora-2"
    SORA_2_PRO = "sora-2-pro"


class VideoSize(str, Enum):
    """Supported output resolutions"""
    LANDSCAPE_1080 = "1920x1080"
    LANDSCAPE_720 = "1280x720"      # 16:9
    PORTRAIT_1080 = "1080x1920"
    PORTRAIT_720 = "720x1280"       # 9:16
    SQUARE_1080 = "1080x1080"
    SQUARE_480 = "480x480"          # 1:1


MODELS: Tuple[str, ...] = tuple(m.value for m in VideoModel)
SIZES: Tuple[str, ...] = tuple(s.value for s in VideoSize)

# Allowed durations (seconds) per model
DURATIONS: Dict[str, Tuple[int, ...]] = {
    "sora-2": (4, 8, 12),
    "sora-2-pro": (10, 15, 25),
}

DEFAULT_MODEL = VideoModel.SORA_2.value
DEFAULT_SIZE = VideoSize.LANDSCAPE_720.value
DEFAULT_SECONDS = 4
DEFAULT_POLL_INTERVAL_MS = 15000  # recommended for Sora 2
DEFAULT_MAX_POLL_ATTEMPTS = 120   # ~30 minutes at 15s

# Price per second of generated video, by resolution tier
PRICING: Dict[str, Dict[str, float]] = {
    "sora-2": {
        "720p": 0.10,
        "default": 0.10,
    },
    "sora-2-pro": {
        "720p": 0.30,
        "1024p": 0.50,
        "default": 0.30,
    },
}


def is_valid_model(model: str) -> bool:
    return model in MODELS


def is_valid_size(size: str) -> bool:
    return size in SIZES


def get_valid_durations(model: str) -> Tuple[int, ...]:
    """Allowed durations for a model (empty for unknown models)"""
    return DURATIONS.get(model, ())


def is_valid_duration(model: str, seconds) -> bool:
    """
    Check a duration against the model's allowed set

    Args:
        model: Model identifier
        seconds: Duration as int or numeric string

    Returns:
        True if the duration is allowed for the model
    """
    try:
        value = int(seconds)
    except (TypeError, ValueError):
        return False
    return value in get_valid_durations(model)


def is_720p_tier(size: str) -> bool:
    """720p and smaller resolutions share the cheaper price tier"""
    return "720" in size or "480" in size


def get_price_per_second(model: str, size: str) -> float:
    """
    Get the per-second price for a model at a given resolution

    Args:
        model: Model identifier (e.g., "sora-2")
        size: Resolution (e.g., "1280x720")

    Returns:
        Price in USD per generated second
    """
    pricing = PRICING.get(model)
    if pricing is None:
        logger.debug(f"No pricing for model {model}, using {DEFAULT_MODEL}")
        pricing = PRICING[DEFAULT_MODEL]

    if is_720p_tier(size):
        return pricing["720p"]
    return pricing.get("1024p", pricing["default"])


def calculate_cost(model: str, seconds: float, size: str) -> float:
    """
    Calculate cost for a generated video

    Args:
        model: Model identifier
        seconds: Video duration in seconds
        size: Resolution

    Returns:
        Cost in USD
    """
    return get_price_per_second(model, size) * seconds
