"""Utility modules for the background job scheduler."""

from . import retry
from . import task_tracker

__all__ = ["retry", "task_tracker"]
