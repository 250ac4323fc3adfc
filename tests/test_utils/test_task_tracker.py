"""
Tests for the Task Tracker utility.

Tests cover:
- Task creation and tracking
- Task lifecycle (completion, cancellation, exceptions)
- Cancel all tasks functionality
- Wait for tasks functionality
"""

import asyncio

import pytest

from background_jobs.utils.task_tracker import TaskTracker

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def tracker():
    tracker = TaskTracker()
    yield tracker
    await tracker.cancel_all_tasks(timeout=1.0)


# =============================================================================
# Helper Coroutines
# =============================================================================


async def quick_task():
    """A task that completes quickly."""
    await asyncio.sleep(0.01)
    return "done"


async def slow_task():
    """A task that takes a while."""
    await asyncio.sleep(1.0)
    return "done"


async def failing_task():
    """A task that raises an exception."""
    await asyncio.sleep(0.01)
    raise ValueError("Task failed!")


# =============================================================================
# Create Tracked Task Tests
# =============================================================================


class TestCreateTrackedTask:
    """Tests for create_tracked_task."""

    @pytest.mark.asyncio
    async def test_create_task_returns_task(self, tracker):
        task = tracker.create_tracked_task(quick_task())

        assert isinstance(task, asyncio.Task)
        await task

    @pytest.mark.asyncio
    async def test_create_task_with_name(self, tracker):
        task = tracker.create_tracked_task(quick_task(), name="job:digest")

        assert task.get_name() == "job:digest"
        await task

    @pytest.mark.asyncio
    async def test_task_added_to_registry(self, tracker):
        task = tracker.create_tracked_task(slow_task())

        assert tracker.get_active_task_count() == 1
        assert task in tracker.get_active_tasks()

    @pytest.mark.asyncio
    async def test_trackers_are_independent(self, tracker):
        other = TaskTracker()

        task = tracker.create_tracked_task(quick_task())

        assert other.get_active_task_count() == 0
        await task


# =============================================================================
# Task Lifecycle Tests
# =============================================================================


class TestTaskLifecycle:
    """Tests for task lifecycle management."""

    @pytest.mark.asyncio
    async def test_completed_task_removed_from_registry(self, tracker):
        task = tracker.create_tracked_task(quick_task())

        await task
        # Give callback time to execute
        await asyncio.sleep(0.01)

        assert task not in tracker.get_active_tasks()

    @pytest.mark.asyncio
    async def test_cancelled_task_removed_from_registry(self, tracker):
        task = tracker.create_tracked_task(slow_task())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.01)

        assert tracker.get_active_task_count() == 0

    @pytest.mark.asyncio
    async def test_failed_task_removed_and_logged(self, tracker, caplog):
        task = tracker.create_tracked_task(failing_task(), name="broken")

        with pytest.raises(ValueError, match="Task failed"):
            await task
        await asyncio.sleep(0.01)

        assert tracker.get_active_task_count() == 0
        assert any("Task failed: broken" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_get_active_tasks_returns_copy(self, tracker):
        tracker.create_tracked_task(slow_task())

        tasks1 = tracker.get_active_tasks()
        tasks2 = tracker.get_active_tasks()

        assert tasks1 is not tasks2
        assert tasks1 == tasks2


# =============================================================================
# Cancel All Tasks Tests
# =============================================================================


class TestCancelAllTasks:
    """Tests for cancel_all_tasks."""

    @pytest.mark.asyncio
    async def test_cancel_all_no_tasks(self, tracker):
        assert await tracker.cancel_all_tasks() == 0

    @pytest.mark.asyncio
    async def test_cancel_all_multiple_tasks(self, tracker):
        tasks = [
            tracker.create_tracked_task(slow_task(), name=f"task_{i}")
            for i in range(5)
        ]

        cancelled = await tracker.cancel_all_tasks()

        assert cancelled == 5
        assert all(t.cancelled() for t in tasks)


# =============================================================================
# Wait For Tasks Tests
# =============================================================================


class TestWaitForTasks:
    """Tests for wait_for_tasks."""

    @pytest.mark.asyncio
    async def test_wait_no_tasks(self, tracker):
        assert await tracker.wait_for_tasks() == 0

    @pytest.mark.asyncio
    async def test_wait_for_completion(self, tracker):
        tasks = [tracker.create_tracked_task(quick_task()) for _ in range(3)]

        remaining = await tracker.wait_for_tasks(timeout=1.0)

        assert remaining == 0
        assert all(t.done() for t in tasks)

    @pytest.mark.asyncio
    async def test_wait_timeout_does_not_cancel(self, tracker):
        task = tracker.create_tracked_task(slow_task())

        remaining = await tracker.wait_for_tasks(timeout=0.05)

        assert remaining == 1
        assert not task.done()

    @pytest.mark.asyncio
    async def test_wait_ignores_task_failures(self, tracker):
        task = tracker.create_tracked_task(failing_task())

        assert await tracker.wait_for_tasks(timeout=1.0) == 0
        assert isinstance(task.exception(), ValueError)
