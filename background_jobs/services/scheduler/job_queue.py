"""
JobQueue - in-process background job scheduler.

Runs one-time jobs (retried with exponential backoff) and recurring jobs
(re-run every interval) on the current asyncio event loop. The host
constructs one JobQueue, passes it to whatever registers jobs, and calls
``shutdown()`` when the process stops.

Usage:
    queue = JobQueue(get_settings())
    queue.schedule("token-cleanup", cleanup_tokens, interval_seconds=86400)
    queue.enqueue("send-digest", send_digest, max_retries=5)
    ...
    await queue.shutdown()
    await queue.drain(timeout=5.0)
"""

import asyncio
import logging
import time
from typing import Optional

from ...core.config import Settings
from ...utils.retry import RetryController
from ...utils.task_tracker import TaskTracker
from .base import (
    Job,
    JobHandler,
    JobQueueStats,
    JobSnapshot,
    RetryState,
    RuntimeScheduler,
    ScheduleState,
    one_shot_job_id,
    scheduled_job_id,
)
from .duration import DurationEstimator
from .errors import JobQueueClosedError
from .executor import Executor
from .registry import JobRegistry

logger = logging.getLogger(__name__)


class JobQueue(RuntimeScheduler):
    """Registry, executor and timers for one process."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        retry: Optional[RetryController] = None,
        durations: Optional[DurationEstimator] = None,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.log = log or logger
        self.registry = JobRegistry()
        self.durations = durations or DurationEstimator(self.settings.duration_window)
        self.retry = retry or RetryController(
            base_delay=self.settings.retry_base_delay,
            max_delay=self.settings.retry_max_delay,
            jitter=self.settings.retry_jitter,
            jitter_max=self.settings.retry_jitter_max,
        )
        self.tracker = TaskTracker()
        self.executor = Executor(
            self.registry,
            self.retry,
            self.durations,
            tracker=self.tracker,
            log=self.log,
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_runs(self) -> int:
        """Number of handler runs currently in flight."""
        return self.tracker.get_active_task_count()

    def _ensure_open(self) -> None:
        if self._closed:
            raise JobQueueClosedError("job queue has been shut down")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def enqueue(
        self, name: str, handler: JobHandler, max_retries: Optional[int] = None
    ) -> str:
        """Register a one-time job and start its first attempt.

        Returns the job id immediately; the handler runs in the background.
        Raises RuntimeError outside a running event loop.
        """
        self._ensure_open()
        asyncio.get_running_loop()
        if max_retries is None:
            max_retries = self.settings.default_max_retries

        job = Job(
            id=one_shot_job_id(name),
            name=name,
            handler=handler,
            retry_state=RetryState(max_attempts=max_retries),
        )
        self.registry.insert(job)
        self.executor.spawn(job)

        self.log.debug(
            "Enqueued job: %s (max %d attempts)",
            name,
            max_retries,
            extra={"job_id": job.id},
        )
        return job.id

    def schedule(
        self,
        name: str,
        handler: JobHandler,
        interval_seconds: float,
        skip_if_running: Optional[bool] = None,
    ) -> str:
        """Register a recurring job, run it now, then every ``interval_seconds``.

        Scheduling a name that is already scheduled replaces the previous job
        and its timer. Ticks fire whether or not the previous run finished,
        unless ``skip_if_running`` is set.
        """
        self._ensure_open()
        asyncio.get_running_loop()
        if skip_if_running is None:
            skip_if_running = self.settings.skip_if_running

        job = Job(
            id=scheduled_job_id(name),
            name=name,
            handler=handler,
            schedule=ScheduleState(
                interval_seconds=interval_seconds,
                skip_if_running=skip_if_running,
            ),
        )

        if self.registry.discard(job.id):
            self.log.info("Replacing recurring job: %s", name, extra={"job_id": job.id})

        self.registry.insert(job)
        self.executor.spawn(job)
        self.registry.set_interval(
            job.id,
            asyncio.create_task(self._tick(job), name=f"interval:{job.id}"),
        )

        self.log.info(
            "Scheduled recurring job: %s (every %ss)",
            name,
            interval_seconds,
            extra={"job_id": job.id, "interval_seconds": interval_seconds},
        )
        return job.id

    async def _tick(self, job: Job) -> None:
        assert job.schedule is not None
        interval = job.schedule.interval_seconds
        while True:
            await asyncio.sleep(interval)
            if not self.registry.holds(job):
                return
            if job.schedule.skip_if_running and job.is_running:
                self.log.debug(
                    "Skipping tick for %s: previous run still in progress",
                    job.name,
                    extra={"job_id": job.id},
                )
                continue
            self.executor.spawn(job)

    def cancel(self, job_id: str) -> bool:
        """Stop future runs of a job. In-flight runs finish on their own."""
        found = self.registry.discard(job_id)
        if found:
            self.log.info("Cancelled job: %s", job_id, extra={"job_id": job_id})
        return found

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_stats(self) -> JobQueueStats:
        now = time.monotonic()
        snapshots = []

        for job in self.registry.all_jobs():
            started_at = None
            running_ms = None
            remaining_ms = None
            running = job.running_state
            if running is not None:
                started_at = running.started_at_wall
                running_ms = running.elapsed_ms(now)
                estimate = running.estimated_duration_ms
                if estimate is not None:
                    remaining_ms = max(0.0, estimate - running_ms)

            schedule = job.schedule
            retry_state = job.retry_state
            snapshots.append(
                JobSnapshot(
                    id=job.id,
                    name=job.name,
                    is_scheduled=schedule is not None,
                    is_running=job.is_running,
                    started_at=started_at,
                    running_duration_ms=running_ms,
                    estimated_remaining_ms=remaining_ms,
                    next_run_at=schedule.next_run_at if schedule else None,
                    last_run_at=schedule.last_run_at if schedule else None,
                    interval_seconds=schedule.interval_seconds if schedule else None,
                    attempts=retry_state.attempts if retry_state else None,
                    max_attempts=retry_state.max_attempts if retry_state else None,
                )
            )

        return JobQueueStats(
            total_jobs=len(self.registry),
            scheduled_jobs=self.registry.interval_count(),
            jobs=snapshots,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._closed:
            self.log.info("Reopening background job queue")
        self._closed = False

    async def shutdown(self) -> None:
        """Disarm every timer and forget every job.

        Runs already in flight are not cancelled; use ``drain()`` to wait
        for them.
        """
        self.log.info(
            "Shutting down background job queue (%d jobs, %d scheduled, %d running)",
            len(self.registry),
            self.registry.interval_count(),
            self.active_runs,
        )
        self._closed = True
        self.registry.clear()

    async def drain(self, timeout: Optional[float] = None) -> int:
        """Wait for in-flight runs. Returns how many were still running after."""
        return await self.tracker.wait_for_tasks(timeout=timeout)
