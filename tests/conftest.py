"""
Shared fixtures for Sora Batch tests
"""
import asyncio
import logging
from typing import Dict, List, Optional

import pytest

from sora_batch.models.outcomes import GeneratedVideo
from sora_batch.schemas.batch import BatchConfig
from sora_batch.utils.settings import reset_settings

ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_API_BASE",
    "OUTPUT_DIR",
    "VIDEO_POLL_INTERVAL",
    "VIDEO_MAX_POLL_ATTEMPTS",
    "DEBUG",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate tests from the developer's environment and cached settings"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()

    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level

    yield

    reset_settings()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class FakeExecutor:
    """
    Instrumented stand-in for JobExecutor

    Records how many executions are in flight at once. Per-prompt delays and
    queued errors control each job's behavior.
    """

    def __init__(
        self,
        delay: float = 0.01,
        delays: Optional[Dict[str, float]] = None,
        failures: Optional[Dict[str, List[Exception]]] = None,
    ):
        self.delay = delay
        self.delays = delays or {}
        self.failures = failures or {}
        self.active = 0
        self.max_active = 0
        self.calls: List[str] = []

    async def execute(self, job, params, output_path=None, on_progress=None):
        self.calls.append(job.prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(job.prompt, self.delay))

            errors = self.failures.get(job.prompt)
            if errors:
                raise errors.pop(0)

            if on_progress:
                on_progress("completed", 1, 1)

            return GeneratedVideo(
                video_id=f"video_{len(self.calls)}",
                video_url=None,
                output_path=str(output_path) if output_path else None,
                duration=params.seconds,
            )
        finally:
            self.active -= 1


@pytest.fixture
def make_executor():
    """Factory for instrumented fake executors"""
    return FakeExecutor


@pytest.fixture
def make_config(tmp_path):
    """Build a BatchConfig with N simple text jobs writing into tmp_path"""

    def _make(count: int = 3, jobs=None, **overrides) -> BatchConfig:
        if jobs is None:
            jobs = [{"prompt": f"job {i}"} for i in range(1, count + 1)]
        overrides.setdefault("output_dir", str(tmp_path / "output"))
        return BatchConfig(jobs=jobs, **overrides)

    return _make
