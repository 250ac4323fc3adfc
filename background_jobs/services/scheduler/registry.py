"""
JobRegistry - the authoritative map of active jobs.

Also owns the live timers attached to jobs: the interval task of each
recurring job and the pending retry timer of each failed one-time job, so
that removing a job and disarming its timers happen together.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .base import Job

logger = logging.getLogger(__name__)


class JobRegistry:
    """Jobs by id plus their interval tasks and retry timers."""

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._intervals: Dict[str, asyncio.Task] = {}
        self._retry_timers: Dict[str, asyncio.TimerHandle] = {}

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def holds(self, job: Job) -> bool:
        """True if ``job`` itself (not a replacement) is still registered."""
        return self._jobs.get(job.id) is job

    def insert(self, job: Job) -> None:
        """Register a job, disarming any timers left under the same id."""
        if job.id in self._intervals or job.id in self._retry_timers:
            logger.debug("Replacing timers for job %s", job.id)
            self._disarm(job.id)
        self._jobs[job.id] = job

    def replace(self, job_id: str, job: Job) -> None:
        if job.id != job_id:
            raise ValueError(f"job id mismatch: {job.id!r} != {job_id!r}")
        self.insert(job)

    def remove(self, job_id: str) -> Optional[Job]:
        """Drop a job entry. Timers are left to their owner."""
        return self._jobs.pop(job_id, None)

    def discard(self, job_id: str) -> bool:
        """Disarm every timer of ``job_id`` and remove its entry.

        Returns True if a job was registered under that id.
        """
        self._disarm(job_id)
        return self._jobs.pop(job_id, None) is not None

    def all_jobs(self) -> List[Job]:
        return list(self._jobs.values())

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def set_interval(self, job_id: str, task: asyncio.Task) -> None:
        previous = self._intervals.pop(job_id, None)
        if previous is not None and previous is not task:
            previous.cancel()
        self._intervals[job_id] = task

    def has_interval(self, job_id: str) -> bool:
        return job_id in self._intervals

    def interval_count(self) -> int:
        return len(self._intervals)

    def set_retry_timer(self, job_id: str, handle: asyncio.TimerHandle) -> None:
        previous = self._retry_timers.pop(job_id, None)
        if previous is not None:
            previous.cancel()
        self._retry_timers[job_id] = handle

    def pop_retry_timer(self, job_id: str) -> Optional[asyncio.TimerHandle]:
        return self._retry_timers.pop(job_id, None)

    def retry_timer_count(self) -> int:
        return len(self._retry_timers)

    def _disarm(self, job_id: str) -> int:
        disarmed = 0
        interval = self._intervals.pop(job_id, None)
        if interval is not None:
            interval.cancel()
            disarmed += 1
        timer = self._retry_timers.pop(job_id, None)
        if timer is not None:
            timer.cancel()
            disarmed += 1
        return disarmed

    def clear(self) -> int:
        """Disarm all timers and drop all jobs. Returns timers disarmed."""
        disarmed = 0
        for job_id in set(self._intervals) | set(self._retry_timers):
            disarmed += self._disarm(job_id)
        self._jobs.clear()
        return disarmed
