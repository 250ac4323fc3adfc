"""
Scheduler base types.

Job and its state records describe what to run and how it is doing.
JobSnapshot / JobQueueStats are the read-only view returned by get_stats().
RuntimeScheduler is the ABC implemented by JobQueue.
"""

import enum
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

JobHandler = Callable[[], Awaitable[None]]

SCHEDULED_ID_PREFIX = "scheduled-"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def one_shot_job_id(name: str) -> str:
    """Unique id for a one-time job: name, epoch millis and a random suffix."""
    return f"{name}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def scheduled_job_id(name: str) -> str:
    """Deterministic id for a recurring job, so re-scheduling replaces it."""
    return f"{SCHEDULED_ID_PREFIX}{name}"


class JobKind(enum.Enum):
    ONE_SHOT = "one_shot"
    RECURRING = "recurring"


@dataclass
class ScheduleState:
    interval_seconds: float
    last_run_at: datetime = field(default_factory=utc_now)
    skip_if_running: bool = False

    @property
    def next_run_at(self) -> datetime:
        return self.last_run_at + timedelta(seconds=self.interval_seconds)


@dataclass
class RetryState:
    max_attempts: int
    attempts: int = 0


@dataclass
class RunningState:
    """Transient record of an in-flight run.

    started_at is a monotonic clock reading used for elapsed time;
    started_at_wall is the timestamp reported in snapshots.
    """

    started_at: float
    started_at_wall: datetime
    estimated_duration_ms: Optional[float] = None

    def elapsed_ms(self, now: Optional[float] = None) -> float:
        if now is None:
            now = time.monotonic()
        return max(0.0, (now - self.started_at) * 1000)


@dataclass(eq=False)
class Job:
    """A registered unit of work.

    Exactly one of ``schedule`` (recurring) or ``retry_state`` (one-shot)
    is set. Jobs compare by identity: a re-scheduled job with the same id
    is a different job.

    Overlapping runs of a recurring job each hold an entry in ``runs``;
    ``running_state`` is the oldest one still in flight.
    """

    id: str
    name: str
    handler: JobHandler
    schedule: Optional[ScheduleState] = None
    retry_state: Optional[RetryState] = None
    runs: List[RunningState] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("job name must not be empty")
        if not callable(self.handler):
            raise ValueError("job handler must be callable")
        if (self.schedule is None) == (self.retry_state is None):
            raise ValueError("job needs exactly one of schedule or retry_state")
        if self.schedule is not None and self.schedule.interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        if self.retry_state is not None and self.retry_state.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @property
    def kind(self) -> JobKind:
        return JobKind.RECURRING if self.schedule is not None else JobKind.ONE_SHOT

    @property
    def is_recurring(self) -> bool:
        return self.schedule is not None

    @property
    def running_state(self) -> Optional[RunningState]:
        return self.runs[0] if self.runs else None

    @property
    def is_running(self) -> bool:
        return bool(self.runs)

    def start_run(self, state: RunningState) -> None:
        self.runs.append(state)

    def finish_run(self, state: RunningState) -> None:
        for i, run in enumerate(self.runs):
            if run is state:
                del self.runs[i]
                return


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time view of one job."""

    id: str
    name: str
    is_scheduled: bool
    is_running: bool
    started_at: Optional[datetime] = None
    running_duration_ms: Optional[float] = None
    estimated_remaining_ms: Optional[float] = None
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    interval_seconds: Optional[float] = None
    attempts: Optional[int] = None
    max_attempts: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("started_at", "next_run_at", "last_run_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


@dataclass(frozen=True)
class JobQueueStats:
    total_jobs: int
    scheduled_jobs: int
    jobs: List[JobSnapshot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_jobs": self.total_jobs,
            "scheduled_jobs": self.scheduled_jobs,
            "jobs": [job.to_dict() for job in self.jobs],
        }


class RuntimeScheduler(ABC):
    """ABC for in-process job schedulers."""

    @abstractmethod
    def enqueue(
        self, name: str, handler: JobHandler, max_retries: Optional[int] = None
    ) -> str:
        """Register a one-time job and start it. Returns the job id."""

    @abstractmethod
    def schedule(
        self,
        name: str,
        handler: JobHandler,
        interval_seconds: float,
        skip_if_running: Optional[bool] = None,
    ) -> str:
        """Register (or replace) a recurring job and start it. Returns the job id."""

    @abstractmethod
    def cancel(self, job_id: str) -> bool:
        """Cancel a job by id. Returns True if found."""

    @abstractmethod
    def get_stats(self) -> JobQueueStats:
        """Return a snapshot of all registered jobs."""

    @abstractmethod
    async def start(self) -> None:
        """Open the scheduler for new jobs."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Stop the scheduler and cancel all timers."""
