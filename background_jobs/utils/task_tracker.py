"""
Task Tracker for Graceful Shutdown

Tracks background asyncio tasks so the host can wait for (or cancel) them
on shutdown. Each JobQueue owns one tracker for its in-flight runs.
"""

import asyncio
import logging
from typing import Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class TaskTracker:
    """Registry of live asyncio tasks, pruned as they finish."""

    def __init__(self) -> None:
        self._active_tasks: Set[asyncio.Task] = set()

    def create_tracked_task(
        self,
        coro: Coroutine,
        name: Optional[str] = None,
    ) -> asyncio.Task:
        """
        Create an asyncio task and track it until it finishes.

        Args:
            coro: The coroutine to run as a task
            name: Optional name for the task (for debugging)

        Returns:
            The created task
        """
        task = asyncio.create_task(coro, name=name)
        self._active_tasks.add(task)
        task.add_done_callback(self._on_done)

        logger.debug(f"Created tracked task: {task.get_name()}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._active_tasks.discard(task)
        task_name = task.get_name()
        if task.cancelled():
            logger.info(f"Task cancelled: {task_name}")
        elif task.exception():
            exc = task.exception()
            assert exc is not None  # guarded by elif above
            logger.error(
                f"Task failed: {task_name}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        else:
            logger.debug(f"Task completed: {task_name}")

    def get_active_tasks(self) -> Set[asyncio.Task]:
        """Get the set of currently active tracked tasks."""
        return self._active_tasks.copy()

    def get_active_task_count(self) -> int:
        """Get the count of active tasks."""
        return len(self._active_tasks)

    async def cancel_all_tasks(self, timeout: float = 5.0) -> int:
        """
        Cancel all tracked tasks and wait for them to complete.

        Args:
            timeout: Maximum time to wait for tasks to cancel

        Returns:
            Number of tasks that were cancelled
        """
        if not self._active_tasks:
            logger.info("No active tasks to cancel")
            return 0

        tasks_to_cancel = list(self._active_tasks)
        count = len(tasks_to_cancel)
        logger.info(f"Cancelling {count} active tasks...")

        for task in tasks_to_cancel:
            if not task.done():
                task.cancel()

        try:
            await asyncio.wait_for(
                asyncio.gather(*tasks_to_cancel, return_exceptions=True),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Timeout waiting for tasks to cancel. "
                f"Remaining: {len([t for t in tasks_to_cancel if not t.done()])}"
            )

        cancelled = sum(1 for t in tasks_to_cancel if t.cancelled())
        logger.info(f"Cancelled {cancelled}/{count} tasks")
        return cancelled

    async def wait_for_tasks(self, timeout: Optional[float] = None) -> int:
        """
        Wait for all tracked tasks to complete without cancelling them.

        Args:
            timeout: Maximum time to wait (None = wait forever)

        Returns:
            Number of tasks still running when the wait ended
        """
        if not self._active_tasks:
            return 0

        tasks = list(self._active_tasks)
        logger.info(f"Waiting for {len(tasks)} tasks to complete...")

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(f"Timeout waiting for tasks. Remaining: {len(pending)}")
        return len(pending)
