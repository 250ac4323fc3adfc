"""
Tests for the Logging Utilities module.

Tests cover:
- Logger configuration with setup_logging()
- Log level settings
- File handler setup
- Structured job logging with structlog
"""

import logging
import logging.handlers
from unittest.mock import MagicMock

import pytest
import structlog

from background_jobs.utils.logging import get_job_logger, log_job_event, setup_logging

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clean_logging_state():
    """Clean up logging state before and after each test."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers.copy()
    original_level = root_logger.level

    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)

    yield

    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()
    for handler in original_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(original_level)
    structlog.reset_defaults()


def _console_handlers():
    return [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


# =============================================================================
# Setup Logging Tests
# =============================================================================


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_creates_logs_directory(self, clean_logging_state, tmp_path):
        logs_dir = tmp_path / "logs"

        setup_logging(log_to_file=True, logs_dir=str(logs_dir))

        assert logs_dir.is_dir()

    def test_default_log_level_is_info(self, clean_logging_state):
        setup_logging(log_to_file=False)

        handlers = _console_handlers()
        assert len(handlers) == 1
        assert handlers[0].level == logging.INFO

    @pytest.mark.parametrize("log_level,expected", [
        ("DEBUG", logging.DEBUG),
        ("INFO", logging.INFO),
        ("WARNING", logging.WARNING),
        ("ERROR", logging.ERROR),
        ("debug", logging.DEBUG),  # Test case insensitivity
        ("Info", logging.INFO),
    ])
    def test_log_level_settings(self, clean_logging_state, log_level, expected):
        setup_logging(log_level=log_level, log_to_file=False)

        assert _console_handlers()[0].level == expected
        assert logging.getLogger().level == expected

    def test_invalid_log_level(self, clean_logging_state):
        with pytest.raises(AttributeError):
            setup_logging(log_level="LOUD", log_to_file=False)

    def test_no_file_handlers_without_file_logging(self, clean_logging_state):
        setup_logging(log_to_file=False)

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)
        ]
        assert file_handlers == []

    def test_rotating_file_handlers(self, clean_logging_state, tmp_path):
        setup_logging(log_to_file=True, logs_dir=str(tmp_path))

        rotating = [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        by_name = {h.baseFilename.rsplit("/", 1)[-1]: h for h in rotating}
        assert set(by_name) == {"jobs.log", "errors.log"}
        assert by_name["jobs.log"].level == logging.INFO
        assert by_name["errors.log"].level == logging.ERROR

    def test_errors_reach_error_log(self, clean_logging_state, tmp_path):
        setup_logging(log_to_file=True, logs_dir=str(tmp_path))

        logging.getLogger("background_jobs.test").error("Job failed: nightly")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "Job failed: nightly" in (tmp_path / "errors.log").read_text()

    def test_repeated_setup_does_not_duplicate_handlers(self, clean_logging_state):
        setup_logging(log_to_file=False)
        setup_logging(log_to_file=False)

        assert len(_console_handlers()) == 1


# =============================================================================
# Structured Job Logging Tests
# =============================================================================


class TestJobLogging:
    """Tests for the structlog helpers."""

    def test_get_job_logger_default_name(self):
        logger = get_job_logger()

        assert logger is not None
        assert hasattr(logger, "info")

    def test_log_job_event_passes_context(self):
        logger = MagicMock()

        log_job_event("Cleaned up 3 expired tokens", {"deleted_count": 3}, logger)

        logger.info.assert_called_once_with(
            "Cleaned up 3 expired tokens", deleted_count=3
        )

    def test_log_job_event_level(self):
        logger = MagicMock()

        log_job_event("Skipped", {"job": "token-cleanup"}, logger, level="warning")

        logger.warning.assert_called_once_with("Skipped", job="token-cleanup")
        logger.info.assert_not_called()

    def test_log_job_event_creates_logger(self, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(
            "background_jobs.utils.logging.get_job_logger", lambda name=None: logger
        )

        log_job_event("Updated trending items", {"trending_count": 2})

        logger.info.assert_called_once_with("Updated trending items", trending_count=2)
