"""
In-process background job scheduler.

Provides:
- JobQueue: enqueue one-time jobs, schedule recurring ones, cancel, stats
- JobRegistry / Executor / DurationEstimator: the pieces JobQueue wires up
- Job and stats types shared by all of the above
"""

from .base import (
    Job,
    JobHandler,
    JobKind,
    JobQueueStats,
    JobSnapshot,
    RetryState,
    RunningState,
    RuntimeScheduler,
    ScheduleState,
)
from .duration import DurationEstimator
from .errors import JobQueueClosedError, JobQueueError
from .executor import Executor
from .job_queue import JobQueue
from .registry import JobRegistry

__all__ = [
    "DurationEstimator",
    "Executor",
    "Job",
    "JobHandler",
    "JobKind",
    "JobQueue",
    "JobQueueClosedError",
    "JobQueueError",
    "JobQueueStats",
    "JobRegistry",
    "JobSnapshot",
    "RetryState",
    "RunningState",
    "RuntimeScheduler",
    "ScheduleState",
]
