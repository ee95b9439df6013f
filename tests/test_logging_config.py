"""Tests for logging configuration module."""

import logging
import os
import time
from unittest.mock import patch

import pytest

from atelier_catalog.utils import logging_config
from atelier_catalog.utils.logging_config import (
    LOG_RETENTION_DAYS,
    PerformanceMonitor,
    _loggers_configured,
    cleanup_old_logs,
    get_log_level,
    get_logger,
    initialize_logging,
    log_task_end,
    log_task_start,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    _loggers_configured.clear()
    yield
    _loggers_configured.clear()


def test_get_log_level():
    """Test log level detection from environment."""
    with patch.dict(os.environ, {}, clear=True):
        assert get_log_level() == logging.INFO

    with patch.dict(os.environ, {"DEBUG": "true"}, clear=True):
        assert get_log_level() == logging.DEBUG

    with patch.dict(os.environ, {"LOG_LEVEL": "ERROR", "DEBUG": "1"}, clear=True):
        assert get_log_level() == logging.ERROR


def test_setup_logging():
    """Test basic logger setup."""
    logger = setup_logging("atelier_test_logger", level=logging.DEBUG)

    assert logger.name == "atelier_test_logger"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert logger.propagate is False
    assert "atelier_test_logger" in _loggers_configured


def test_get_logger_reuses_configuration():
    first = get_logger("atelier_reused")
    second = get_logger("atelier_reused")

    assert first is second
    assert len(second.handlers) == 1


def test_task_banners(caplog):
    logger = logging.getLogger("atelier_tasks")

    with caplog.at_level(logging.INFO, logger="atelier_tasks"):
        log_task_start(logger, "Compress", images=3)
        log_task_end(
            logger,
            "Compress",
            items_processed=2,
            errors=[f"e{i}" for i in range(12)],
        )

    assert "Task Started: Compress" in caplog.text
    assert "images: 3" in caplog.text
    assert "Items Processed: 2" in caplog.text
    assert "Errors Encountered: 12" in caplog.text
    assert "... and 2 more errors" in caplog.text


def test_performance_monitor(caplog):
    logger = logging.getLogger("atelier_perf")

    with caplog.at_level(logging.DEBUG, logger="atelier_perf"):
        with PerformanceMonitor(logger, "Upload", size=10) as monitor:
            pass
        with pytest.raises(RuntimeError):
            with PerformanceMonitor(logger, "Download"):
                raise RuntimeError("boom")

    assert monitor.elapsed is not None
    assert "Upload completed" in caplog.text
    assert "size=10" in caplog.text
    assert "Download failed" in caplog.text


def test_cleanup_old_logs(tmp_path):
    old_log = tmp_path / "atelier-2020-01-01.log"
    new_log = tmp_path / "atelier-2099-01-01.log"
    old_log.write_text("old")
    new_log.write_text("new")
    stale = time.time() - (LOG_RETENTION_DAYS + 1) * 24 * 60 * 60
    os.utime(old_log, (stale, stale))

    with patch.object(logging_config, "LOG_DIR", tmp_path):
        cleanup_old_logs()

    assert not old_log.exists()
    assert new_log.exists()


def test_initialize_logging_configures_root():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        initialize_logging(level=logging.WARNING)

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
