"""
Recurring maintenance jobs: expired session cleanup, expired token cleanup
and the trending aggregation.

The data access is supplied by the host as plain async callables
(``MaintenanceTasks``), so this module needs no database of its own. Each
job swallows its own errors after logging them; a broken table or an
unreachable database must not take the scheduler down.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from ..core.defaults_loader import get_config_value
from ..utils.logging import get_job_logger, log_job_event
from .scheduler.base import scheduled_job_id
from .scheduler.job_queue import JobQueue

logger = logging.getLogger(__name__)

SESSION_CLEANUP = "session-cleanup"
TOKEN_CLEANUP = "token-cleanup"
TRENDING_UPDATE = "trending-update"

_DATABASE_UNAVAILABLE_MARKERS = (
    "can't reach database server",
    "p1001",
    "database is temporarily unavailable",
)


def is_database_connection_error(error: object) -> bool:
    """True if the error message says the database cannot be reached."""
    if not isinstance(error, BaseException):
        return False
    message = str(error).lower()
    return any(marker in message for marker in _DATABASE_UNAVAILABLE_MARKERS)


@dataclass
class MaintenanceTasks:
    """Data-access callables provided by the host. Any may be left unset."""

    # (cutoff) -> number of sessions deleted
    delete_sessions_before: Optional[Callable[[datetime], Awaitable[int]]] = None
    # (now) -> number of tokens deleted
    delete_tokens_expired_before: Optional[Callable[[datetime], Awaitable[int]]] = None
    # (since, limit) -> rows of (item id, addition count), most added first
    count_recent_list_additions: Optional[
        Callable[[datetime, int], Awaitable[Sequence[Any]]]
    ] = None


def _hours(value: float) -> float:
    return float(value) * 60 * 60


def schedule_session_cleanup(
    queue: JobQueue,
    delete_sessions_before: Callable[[datetime], Awaitable[int]],
    interval_seconds: Optional[float] = None,
    retention_days: Optional[int] = None,
) -> str:
    """Delete sessions older than ``retention_days`` (daily by default)."""
    if interval_seconds is None:
        interval_seconds = _hours(
            get_config_value("maintenance.session_cleanup.interval_hours", 24)
        )
    if retention_days is None:
        retention_days = int(
            get_config_value("maintenance.session_cleanup.retention_days", 30)
        )

    job_logger = get_job_logger(__name__).bind(job=SESSION_CLEANUP)

    async def _cleanup_sessions() -> None:
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        try:
            deleted = await delete_sessions_before(cutoff)
        except Exception as e:
            # Session table might not exist yet
            logger.debug("Session cleanup skipped: %s", e)
            return
        log_job_event(
            f"Cleaned up {deleted} old sessions",
            {"deleted_count": deleted, "cutoff": cutoff.isoformat()},
            job_logger,
        )

    return queue.schedule(SESSION_CLEANUP, _cleanup_sessions, interval_seconds)


def schedule_token_cleanup(
    queue: JobQueue,
    delete_tokens_expired_before: Callable[[datetime], Awaitable[int]],
    interval_seconds: Optional[float] = None,
) -> str:
    """Delete verification tokens that have expired (daily by default)."""
    if interval_seconds is None:
        interval_seconds = _hours(
            get_config_value("maintenance.token_cleanup.interval_hours", 24)
        )

    job_logger = get_job_logger(__name__).bind(job=TOKEN_CLEANUP)

    async def _cleanup_tokens() -> None:
        now = datetime.now(timezone.utc)
        try:
            deleted = await delete_tokens_expired_before(now)
        except Exception as e:
            # Token table might not exist yet
            logger.debug("Token cleanup skipped: %s", e)
            return
        log_job_event(
            f"Cleaned up {deleted} expired tokens",
            {"deleted_count": deleted},
            job_logger,
        )

    return queue.schedule(TOKEN_CLEANUP, _cleanup_tokens, interval_seconds)


class TrendingUpdate:
    """Trending aggregation job body.

    Reports an unreachable database once with a warning, then at debug
    level until a run succeeds again.
    """

    def __init__(
        self,
        count_recent_list_additions: Callable[[datetime, int], Awaitable[Sequence[Any]]],
        window_days: int = 7,
        limit: int = 100,
    ) -> None:
        self._count = count_recent_list_additions
        self.window_days = window_days
        self.limit = limit
        self.database_unavailable_logged = False
        self.trending: List[Any] = []
        self._logger = get_job_logger(__name__).bind(job=TRENDING_UPDATE)

    async def __call__(self) -> None:
        since = datetime.now(timezone.utc) - timedelta(days=self.window_days)
        try:
            rows = await self._count(since, self.limit)
        except Exception as e:
            if is_database_connection_error(e):
                if not self.database_unavailable_logged:
                    logger.warning(
                        "Skipping trending update because database is unavailable: %s",
                        e,
                    )
                    self.database_unavailable_logged = True
                else:
                    logger.debug("Trending update still skipped - database unavailable")
                return

            logger.error("Failed to update trending items: %s", e, exc_info=True)
            return

        self.trending = list(rows)
        self.database_unavailable_logged = False
        log_job_event(
            "Updated trending items",
            {"trending_count": len(self.trending)},
            self._logger,
        )

    def reset(self) -> None:
        self.database_unavailable_logged = False
        self.trending = []


def schedule_trending_update(
    queue: JobQueue,
    count_recent_list_additions: Callable[[datetime, int], Awaitable[Sequence[Any]]],
    interval_seconds: Optional[float] = None,
) -> TrendingUpdate:
    """Recompute trending items (hourly by default). Returns the job body."""
    if interval_seconds is None:
        interval_seconds = float(
            get_config_value("maintenance.trending_update.interval_minutes", 60)
        ) * 60

    update = TrendingUpdate(
        count_recent_list_additions,
        window_days=int(get_config_value("maintenance.trending_update.window_days", 7)),
        limit=int(get_config_value("maintenance.trending_update.limit", 100)),
    )
    queue.schedule(TRENDING_UPDATE, update, interval_seconds)
    return update


def initialize_background_jobs(queue: JobQueue, tasks: MaintenanceTasks) -> List[str]:
    """Register every maintenance job whose data access is available.

    Returns the ids of the scheduled jobs.
    """
    logger.info("Initializing background jobs...")
    job_ids: List[str] = []

    if tasks.delete_sessions_before and get_config_value(
        "maintenance.session_cleanup.enabled", True
    ):
        job_ids.append(schedule_session_cleanup(queue, tasks.delete_sessions_before))

    if tasks.count_recent_list_additions and get_config_value(
        "maintenance.trending_update.enabled", True
    ):
        schedule_trending_update(queue, tasks.count_recent_list_additions)
        job_ids.append(scheduled_job_id(TRENDING_UPDATE))

    if tasks.delete_tokens_expired_before and get_config_value(
        "maintenance.token_cleanup.enabled", True
    ):
        job_ids.append(
            schedule_token_cleanup(queue, tasks.delete_tokens_expired_before)
        )

    stats = queue.get_stats()
    logger.info(
        "Background jobs initialized: %d scheduled (%s)",
        stats.scheduled_jobs,
        ", ".join(job_ids) or "none",
    )
    return job_ids
