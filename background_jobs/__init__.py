"""In-process background job scheduler for asyncio applications."""

from .services.scheduler import (
    JobQueue,
    JobQueueClosedError,
    JobQueueError,
    JobQueueStats,
    JobSnapshot,
)

__version__ = "0.1.0"

__all__ = [
    "JobQueue",
    "JobQueueClosedError",
    "JobQueueError",
    "JobQueueStats",
    "JobSnapshot",
    "__version__",
]
