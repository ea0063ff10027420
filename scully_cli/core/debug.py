"""Logging for Scully.

Uses Python's standard logging library.
- INFO/WARNING/ERROR always go to <tmp>/scully-{epoch}.log
- DEBUG messages only appear when --debug flag is used
- Each invocation creates a new log file with epoch timestamp

Library modules log through ``logging.getLogger(__name__)``; everything
under the ``scully`` package ends up in this file.

Usage:
    from scully_cli.core import debug as log

    log.log_command("docs", {"package": "Alamofire"})
    log.log_error("docs", exc)
    log.debug("Resolved %d packages", count)
"""

import logging
import os
import tempfile
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

# Generate log file with epoch timestamp (seconds since epoch)
_epoch_timestamp = int(time.time())
LOG_FILE = Path(tempfile.gettempdir()) / f"scully-{_epoch_timestamp}.log"

# Library logger; scully.* modules are its children
_logger = logging.getLogger("scully")

_debug_enabled = False
_initialized = False


def _init_logging() -> None:
    """Initialize basic logging (INFO level) to the log file."""
    global _initialized
    if _initialized:
        return

    _initialized = True
    _logger.setLevel(logging.INFO)

    try:
        file_handler = logging.FileHandler(LOG_FILE, mode="a")
    except OSError:
        # Unwritable temp dir: keep the CLI usable without a log file
        _logger.addHandler(logging.NullHandler())
        _logger.propagate = False
        return

    file_handler.setLevel(logging.DEBUG)  # Handler accepts all, logger filters
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    file_handler.setFormatter(formatter)
    _logger.addHandler(file_handler)

    # Keep log records off the terminal
    _logger.propagate = False


def enable_debug() -> None:
    """Enable debug-level logging."""
    global _debug_enabled

    _init_logging()
    _debug_enabled = True
    _logger.setLevel(logging.DEBUG)

    _logger.info("=" * 60)
    _logger.info(f"Scully Debug Session Started at {datetime.now()}")
    _logger.info(f"PID: {os.getpid()}")
    _logger.info("=" * 60)


_init_logging()


def get_log_file() -> Path:
    """Get the current invocation's log file path."""
    return LOG_FILE


def log_command(command: str, options: Dict[str, Any]) -> None:
    """Log a CLI command (INFO level, options at DEBUG)."""
    _logger.info(f"COMMAND: {command}")

    if _debug_enabled:
        _logger.debug(f"  Options: {options}")


def log_error(context: str, exc: Exception) -> None:
    """Log an error with context (always logged)."""
    _logger.error(f"ERROR in {context}: {type(exc).__name__}: {exc}")


def debug(message: str, *args: Any, **kwargs: Any) -> None:
    """Log a debug message (only appears when --debug flag is used)."""
    _logger.debug(message, *args, **kwargs)


def info(message: str, *args: Any, **kwargs: Any) -> None:
    """Log an info message (always logged to file)."""
    _logger.info(message, *args, **kwargs)


def warning(message: str, *args: Any, **kwargs: Any) -> None:
    """Log a warning message (always logged to file)."""
    _logger.warning(message, *args, **kwargs)


def error(message: str, *args: Any, **kwargs: Any) -> None:
    """Log an error message (always logged to file)."""
    _logger.error(message, *args, **kwargs)


def exception(message: str, *args: Any, **kwargs: Any) -> None:
    """Log an exception with traceback (always logged to file)."""
    _logger.exception(message, *args, **kwargs)
