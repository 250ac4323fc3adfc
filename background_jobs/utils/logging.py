import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = True,
    logs_dir: str = "logs",
) -> None:
    """Set up logging for the scheduler and its host process.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
        logs_dir: Directory for rotating log files
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_path = Path(logs_dir)
        logs_path.mkdir(parents=True, exist_ok=True)

        jobs_handler = logging.handlers.RotatingFileHandler(
            logs_path / "jobs.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        jobs_handler.setLevel(logging.INFO)
        jobs_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        root_logger.addHandler(jobs_handler)

        # Error-only log file for failed and abandoned jobs
        error_handler = logging.handlers.RotatingFileHandler(
            logs_path / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        root_logger.addHandler(error_handler)


def get_job_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger for job bodies.

    Args:
        name: Logger name (defaults to "background_jobs.jobs")
    """
    return structlog.get_logger(name or "background_jobs.jobs")


def log_job_event(
    event: str,
    context: Dict[str, Any],
    logger: Optional[structlog.BoundLogger] = None,
    level: str = "info",
) -> None:
    """Log a job event with structured context.

    Args:
        event: Human readable event description
        context: Job-specific fields (job name, counts, durations)
        logger: Logger to use (creates one if not provided)
        level: Log method name (debug, info, warning, error)
    """
    if logger is None:
        logger = get_job_logger()

    getattr(logger, level)(event, **context)
