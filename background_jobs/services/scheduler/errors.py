"""Exceptions raised by the job queue to its callers.

Handler failures are never raised; they are logged and drive retries.
"""


class JobQueueError(Exception):
    """Base class for job queue errors."""


class JobQueueClosedError(JobQueueError):
    """Raised when registering a job on a queue that has been shut down."""
