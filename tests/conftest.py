import asyncio
import logging
import os
import time

import pytest

# Keep developer .env / shell settings out of the tests
for _key in list(os.environ):
    if _key.startswith("BACKGROUND_JOBS_"):
        del os.environ[_key]

from background_jobs.core.config import Settings  # noqa: E402
from background_jobs.services.scheduler.job_queue import JobQueue  # noqa: E402


@pytest.fixture(autouse=True)
def _strip_file_handlers():
    """Remove file handlers from root logger so tests never write to logs/."""
    root = logging.getLogger()
    saved = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    for h in saved:
        root.removeHandler(h)
    yield
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler):
            root.removeHandler(h)
    for h in saved:
        root.addHandler(h)


@pytest.fixture
def fast_settings():
    """Settings with backoff short enough to run real timers in tests."""
    return Settings(retry_base_delay=0.01, retry_max_delay=0.1)


@pytest.fixture
async def queue(fast_settings):
    q = JobQueue(fast_settings)
    yield q
    await q.shutdown()
    await q.drain(timeout=1.0)


@pytest.fixture
def wait_until():
    """Poll a predicate on the event loop until it holds or time runs out."""

    async def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.005):
        deadline = time.monotonic() + timeout
        while not predicate():
            if time.monotonic() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)

    return _wait_until
