"""
Settings for Sora Batch

Runtime configuration loaded from environment variables (and a .env file,
which the CLI loads before settings are first read).
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_API_BASE = "https://api.openai.com/v1"


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass
class Settings:
    """
    Settings loaded from environment variables.

    Environment Variables:
        OPENAI_API_KEY: API key for the video API (not needed for estimates)
        OPENAI_API_BASE: API base URL (default: https://api.openai.com/v1)
        OUTPUT_DIR: Default output directory for downloaded videos
        VIDEO_POLL_INTERVAL: Default polling interval in milliseconds
        VIDEO_MAX_POLL_ATTEMPTS: Default maximum number of polls per job
        DEBUG: Set to 'true' for debug logging
    """

    api_key: Optional[str] = None
    api_base: str = DEFAULT_API_BASE
    output_dir: Optional[str] = None
    poll_interval: Optional[int] = None
    max_poll_attempts: Optional[int] = None
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load settings from environment variables.

        Returns:
            Settings instance configured from environment
        """
        return cls(
            api_key=os.environ.get("OPENAI_API_KEY") or None,
            api_base=os.environ.get("OPENAI_API_BASE", DEFAULT_API_BASE).rstrip("/"),
            output_dir=os.environ.get("OUTPUT_DIR") or None,
            poll_interval=_parse_int(os.environ.get("VIDEO_POLL_INTERVAL")),
            max_poll_attempts=_parse_int(os.environ.get("VIDEO_MAX_POLL_ATTEMPTS")),
            debug=os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes"),
        )


# Global settings instance (lazy-loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Settings are loaded once from environment variables.
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
