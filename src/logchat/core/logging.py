"""Logging configuration."""
import logging
import os
import sys
from pathlib import Path
from typing import Optional


# Singleton logger instance
_logger = None
_initialized = False

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _get_log_path() -> Optional[Path]:
    """Get the log file path from environment, or None for console only."""
    # Read the environment directly to avoid a circular import with config
    logs_path = os.getenv("LOGCHAT_LOGS_PATH")
    if not logs_path:
        return None
    return Path(logs_path) / "logchat.log"


def _get_log_level() -> int:
    """Get log level from environment or default."""
    level_str = os.getenv("LOGCHAT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_logger() -> logging.Logger:
    """Get or create the singleton logger instance."""
    global _logger, _initialized

    if _logger is None:
        _logger = logging.getLogger("logchat")
        _logger.setLevel(_get_log_level())
        _logger.propagate = False

    # Only initialize handlers once, even if get_logger is called multiple times
    if not _initialized:
        _logger.handlers.clear()

        formatter = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        _logger.addHandler(console_handler)

        log_path = _get_log_path()
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            _logger.addHandler(file_handler)

        _initialized = True

    return _logger


def set_level(level: str) -> None:
    """Apply a configured level (e.g. from Settings.logging) to the logger."""
    get_logger().setLevel(getattr(logging, level.upper(), logging.INFO))


# Export the singleton logger
logger = get_logger()
