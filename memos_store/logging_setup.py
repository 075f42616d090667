"""Logging configuration and utilities built on loguru.

This module sets up file-based logging with configurable paths and levels
via environment variables:
  - MEMOS_STORE_LOG: Path to log file (default: ~/.memos/memos_store.log)
  - MEMOS_STORE_DEBUG: Enable DEBUG level (else INFO)
"""

import functools
import os
import time
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from loguru import logger as _log


# ========== Helper functions ==========
def env_truthy(name: str, default: bool = False) -> bool:
    """Check if an environment variable is set to a truthy value.

    Args:
        name: Environment variable name to check
        default: Value to return if variable is not set

    Returns:
        True if variable is set to '1', 'true', 'yes', 'y', or 'on'
        (case-insensitive), otherwise the default value
    """
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def default_log_path() -> Path:
    """Get the log file used when MEMOS_STORE_LOG is not set."""
    return Path.home() / ".memos" / "memos_store.log"


def init_logger(log_path: Optional[str] = None, debug: Optional[bool] = None) -> None:
    """Initialize the logging system based on environment configuration.

    Configures file logging with:
    - Log path from the argument, then MEMOS_STORE_LOG, then the default
    - Log level DEBUG if requested or MEMOS_STORE_DEBUG is set, else INFO
    - Rotation at 1 MB with 3 file retention

    The file is opened lazily on the first record, so an unwritable path
    is reported by loguru at write time instead of failing the import.

    Args:
        log_path: Explicit log file path (overrides the environment)
        debug: Explicit debug flag (overrides the environment)
    """
    path = log_path or os.environ.get("MEMOS_STORE_LOG") or str(default_log_path())
    if debug is None:
        debug = env_truthy("MEMOS_STORE_DEBUG", False)
    level = "DEBUG" if debug else "INFO"

    _log.remove()
    _log.add(
        path,
        level=level,
        rotation="1 MB",
        retention=3,
        enqueue=False,
        backtrace=False,
        diagnose=False,
        delay=True,
    )
    _log.debug("Logger initialized at {} with level {}", path, level)


# Initialize logger on module import
init_logger()


# ========== Logging convenience functions ==========
def log_info(msg: str) -> None:
    """Log an info-level message.

    Args:
        msg: The message to log
    """
    _log.info(msg)


def log_debug(msg: str) -> None:
    """Log a debug-level message.

    Args:
        msg: The message to log
    """
    _log.debug(msg)


def log_warning(msg: str) -> None:
    """Log a warning-level message."""
    _log.warning(msg)


def log_error(msg: str) -> None:
    """Log an error-level message.

    Args:
        msg: The message to log
    """
    _log.error(msg)


# ========== Performance timing decorator ==========
F = TypeVar("F", bound=Callable[..., Any])


def log_timing(fn: F) -> F:
    """Decorator to log function execution time.

    Measures and logs the execution time of the wrapped function in
    milliseconds at DEBUG level.

    Args:
        fn: The function to wrap

    Returns:
        Wrapped function that logs execution time
    """

    @functools.wraps(fn)
    def _wrap(*args: Any, **kwargs: Any) -> Any:
        start_time = time.perf_counter()
        try:
            return fn(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000.0
            log_debug(f"{fn.__qualname__} took {elapsed_ms:.1f} ms")

    return _wrap  # type: ignore[return-value]


# ========== Public API ==========
def setup_logging(log_path: Optional[str] = None, debug: Optional[bool] = None) -> None:
    """Public wrapper to reinitialize logging.

    Can be called to reconfigure logging after environment or config changes.
    """
    init_logger(log_path, debug)
