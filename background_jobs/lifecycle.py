"""
Host-side lifecycle for the job queue.

Handles startup and shutdown around a JobQueue:
- Logging setup
- Maintenance job registration
- Termination signal handling
- Shutdown and draining of in-flight runs
"""

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional, Set, Tuple

from .core.config import Settings, get_settings
from .services.maintenance_jobs import MaintenanceTasks, initialize_background_jobs
from .services.scheduler.job_queue import JobQueue
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGTERM, signal.SIGINT)

# Strong references to signal-triggered shutdowns until they finish
_shutdown_tasks: Set[asyncio.Task] = set()


def install_signal_handlers(
    queue: JobQueue,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
) -> List[signal.Signals]:
    """Shut the queue down when the process receives a termination signal.

    Returns the signals that were installed. Platforms without
    ``loop.add_signal_handler`` (Windows) install nothing.
    """
    if loop is None:
        loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down job queue", sig.name)
        task = loop.create_task(
            queue.shutdown(), name=f"job-queue-shutdown:{sig.name}"
        )
        _shutdown_tasks.add(task)
        task.add_done_callback(_shutdown_tasks.discard)

    installed: List[signal.Signals] = []
    for sig in signals:
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except (NotImplementedError, RuntimeError) as e:
            logger.warning("Cannot install handler for %s: %s", sig.name, e)
            continue
        installed.append(sig)
    return installed


def remove_signal_handlers(
    loop: asyncio.AbstractEventLoop, signals: Iterable[signal.Signals]
) -> None:
    for sig in signals:
        loop.remove_signal_handler(sig)


@asynccontextmanager
async def job_queue_lifespan(
    settings: Optional[Settings] = None,
    maintenance: Optional[MaintenanceTasks] = None,
    configure_logging: bool = False,
    handle_signals: bool = False,
) -> AsyncIterator[JobQueue]:
    """Own a JobQueue for the duration of the block.

    Usage:
        async with job_queue_lifespan(maintenance=tasks) as queue:
            app.state.jobs = queue
            await serve()
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(
            log_level=settings.log_level,
            log_to_file=settings.log_to_file,
            logs_dir=settings.logs_dir,
        )

    logger.info("Background job queue starting up...")
    queue = JobQueue(settings)
    await queue.start()

    if maintenance is not None:
        initialize_background_jobs(queue, maintenance)

    loop = asyncio.get_running_loop()
    installed: List[signal.Signals] = []
    if handle_signals:
        installed = install_signal_handlers(queue, loop)

    try:
        yield queue
    finally:
        if installed:
            remove_signal_handlers(loop, installed)

        await queue.shutdown()
        remaining = await queue.drain(timeout=settings.shutdown_drain_timeout)
        if remaining:
            logger.warning("%d job runs still in flight after shutdown", remaining)
        logger.info("Background job queue shut down")
