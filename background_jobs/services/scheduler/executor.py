"""
Executor - runs a single job's handler and applies the outcome.

Success records the duration and either removes a one-time job or stamps
``last_run_at`` on a recurring one. Failure of a one-time job arms a backoff
retry or, once attempts are exhausted, removes it. Failure of a recurring
job waits for the next interval tick.

Handler errors never propagate out of ``run``. Every branch checks that the
registry still holds the same job object, so a run that completes after
``cancel`` or re-scheduling changes nothing.
"""

import asyncio
import logging
import time
from typing import Optional

from ...utils.retry import RetryController
from ...utils.task_tracker import TaskTracker
from .base import Job, RunningState, utc_now
from .duration import DurationEstimator
from .registry import JobRegistry

logger = logging.getLogger(__name__)


class Executor:
    """Runs jobs from a JobRegistry, one asyncio task per run."""

    def __init__(
        self,
        registry: JobRegistry,
        retry: RetryController,
        durations: DurationEstimator,
        tracker: Optional[TaskTracker] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.registry = registry
        self.retry = retry
        self.durations = durations
        self.tracker = tracker or TaskTracker()
        self.log = log or logger

    def spawn(self, job: Job) -> asyncio.Task:
        """Start ``run(job)`` in the background and return its task."""
        return self.tracker.create_tracked_task(self.run(job), name=f"job:{job.id}")

    async def run(self, job: Job) -> None:
        started_at = time.monotonic()
        running = RunningState(
            started_at=started_at,
            started_at_wall=utc_now(),
            estimated_duration_ms=self.durations.estimate(job.name),
        )
        job.start_run(running)
        self.log.debug("Executing job: %s", job.name, extra={"job_id": job.id})

        error: Optional[Exception] = None
        try:
            await job.handler()
        except Exception as exc:
            error = exc
        finally:
            duration_ms = (time.monotonic() - started_at) * 1000
            job.finish_run(running)

        if error is None:
            self._on_success(job, duration_ms)
        else:
            self._on_failure(job, error, duration_ms)

    def _on_success(self, job: Job, duration_ms: float) -> None:
        self.durations.record(job.name, duration_ms)
        self.log.info(
            "Job completed: %s (%.0fms)",
            job.name,
            duration_ms,
            extra={"job_id": job.id, "duration_ms": duration_ms},
        )

        if not self.registry.holds(job):
            self.log.debug("Job %s no longer registered, skipping bookkeeping", job.id)
            return

        if job.schedule is not None:
            job.schedule.last_run_at = utc_now()
        else:
            self.registry.remove(job.id)

    def _on_failure(self, job: Job, exc: Exception, duration_ms: float) -> None:
        retry_state = job.retry_state
        self.log.error(
            "Job failed: %s (%s: %s)",
            job.name,
            type(exc).__name__,
            exc,
            exc_info=exc,
            extra={
                "job_id": job.id,
                "duration_ms": duration_ms,
                "attempts": retry_state.attempts if retry_state else None,
                "max_attempts": retry_state.max_attempts if retry_state else None,
            },
        )

        if retry_state is None:
            # Recurring: the interval tick is the retry
            return

        if not self.registry.holds(job):
            self.log.debug("Job %s was cancelled, not retrying", job.id)
            return

        retry_state.attempts += 1

        if self.retry.should_retry(retry_state.attempts, retry_state.max_attempts):
            delay = self.retry.next_delay(retry_state.attempts)
            self.log.info(
                "Retrying job: %s (%d/%d) in %.2fs",
                job.name,
                retry_state.attempts,
                retry_state.max_attempts,
                delay,
                extra={"job_id": job.id},
            )
            self._arm_retry(job, delay)
        else:
            self.log.error(
                "Job failed after %d attempts: %s",
                retry_state.max_attempts,
                job.name,
                extra={"job_id": job.id},
            )
            self.registry.remove(job.id)

    def _arm_retry(self, job: Job, delay: float) -> None:
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay, self._fire_retry, job)
        self.registry.set_retry_timer(job.id, handle)

    def _fire_retry(self, job: Job) -> None:
        self.registry.pop_retry_timer(job.id)
        if not self.registry.holds(job):
            return
        self.spawn(job)
