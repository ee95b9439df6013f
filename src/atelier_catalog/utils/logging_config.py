"""
Logging configuration for Atelier Catalog.

Provides:
- Log level resolution from LOG_LEVEL / DEBUG
- Console and rotating file handlers
- Task banners for bulk passes (compress-all, import, restore)
- Timing of network and storage operations
"""

from datetime import datetime
import logging
import logging.handlers
import os
from pathlib import Path
import sys
import time
from typing import Any

# -------------------- Configuration --------------------


LOG_DIR = Path.home() / ".cache" / "atelier-catalog" / "logs"

LOG_RETENTION_DAYS = 7

CONSOLE_FORMAT = "%(name)s %(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# -------------------- Global State --------------------


_loggers_configured: set[str] = set()


# -------------------- Utility Functions --------------------


def get_log_level() -> int:
    """
    Get the current log level from environment configuration.

    Checks LOG_LEVEL first, then the DEBUG flag.

    Returns:
        Logging level constant (logging.DEBUG, logging.INFO, etc.)
    """
    level_str = os.getenv("LOG_LEVEL", "").upper()

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    if level_str in level_map:
        return level_map[level_str]

    if os.getenv("DEBUG", "").lower() in ("true", "1", "yes"):
        return logging.DEBUG

    return logging.INFO


def get_log_file_path() -> Path:
    """Path of today's log file; creates the log directory."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    today = datetime.now().strftime("%Y-%m-%d")
    return LOG_DIR / f"atelier-{today}.log"


def cleanup_old_logs() -> None:
    """Remove log files older than LOG_RETENTION_DAYS."""
    if not LOG_DIR.exists():
        return

    cutoff = time.time() - (LOG_RETENTION_DAYS * 24 * 60 * 60)
    try:
        for log_file in LOG_DIR.glob("atelier-*.log*"):
            if log_file.stat().st_mtime < cutoff:
                log_file.unlink()
                logging.getLogger(__name__).info(f"Removed old log file: {log_file}")
    except OSError as e:
        logging.getLogger(__name__).warning(f"Failed to cleanup old logs: {e}")


# -------------------- Setup Functions --------------------


def setup_logging(
    name: str,
    level: int | None = None,
    console: bool = True,
    file: bool = False,
) -> logging.Logger:
    """
    Setup logging for a module with consistent formatting.

    Args:
        name: Logger name (usually __name__)
        level: Log level (defaults to get_log_level())
        console: Add console handler
        file: Add rotating file handler

    Returns:
        Configured logger instance
    """
    if name in _loggers_configured:
        return logging.getLogger(name)

    logger = logging.getLogger(name)
    logger.setLevel(level or get_log_level())
    logger.handlers.clear()
    logger.propagate = False

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logger.level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(console_handler)

    if file:
        file_handler = logging.handlers.RotatingFileHandler(
            get_log_file_path(),
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logger.level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    _loggers_configured.add(name)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger with standard configuration.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Message")
    """
    if name not in _loggers_configured:
        return setup_logging(name)
    return logging.getLogger(name)


# -------------------- Task Banners --------------------


def log_task_start(logger: logging.Logger, task_name: str, **metadata: Any) -> None:
    """Log the start of a bulk task with its metadata."""
    logger.info("=" * 60)
    logger.info(f"Task Started: {task_name}")
    for key, value in metadata.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)


def log_task_end(
    logger: logging.Logger,
    task_name: str,
    items_processed: int = 0,
    errors: list[str] | None = None,
    **metadata: Any,
) -> None:
    """
    Log bulk task completion with summary statistics.

    Only the first 10 errors are listed.
    """
    logger.info("=" * 60)
    logger.info(f"Task Completed: {task_name}")
    logger.info(f"Items Processed: {items_processed}")

    if errors:
        logger.warning(f"Errors Encountered: {len(errors)}")
        for i, error in enumerate(errors[:10], 1):
            logger.warning(f"  {i}. {error}")
        if len(errors) > 10:
            logger.warning(f"  ... and {len(errors) - 10} more errors")

    for key, value in metadata.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)


# -------------------- Performance Monitoring --------------------


class PerformanceMonitor:
    """
    Context manager that logs how long an operation took.

    Example:
        >>> with PerformanceMonitor(logger, "Gist upload", size=1024):
        ...     await client.update_gist(...)
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation_name: str,
        log_level: int = logging.DEBUG,
        **metadata: Any,
    ) -> None:
        self.logger = logger
        self.operation_name = operation_name
        self.log_level = log_level
        self.metadata = metadata
        self.start_time: float | None = None
        self.elapsed: float | None = None

    def __enter__(self) -> "PerformanceMonitor":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return

        self.elapsed = time.perf_counter() - self.start_time
        status = "failed" if exc_type else "completed"
        msg = f"{self.operation_name} {status} in {self.elapsed:.2f}s"
        if self.metadata:
            metadata_str = ", ".join(f"{k}={v}" for k, v in self.metadata.items())
            msg = f"{msg} ({metadata_str})"

        self.logger.log(self.log_level, msg)


# -------------------- Initialization --------------------


def initialize_logging(log_to_file: bool = False, level: int | None = None) -> None:
    """
    Initialize the root logger for the CLI.

    Should be called once at application startup.
    """
    level = level or get_log_level()
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.handlers.RotatingFileHandler(
            get_log_file_path(),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        root_logger.addHandler(file_handler)
        cleanup_old_logs()

    logging.getLogger(__name__).debug(
        f"Logging initialized. Level: {logging.getLevelName(level)}"
    )
