"""Logging setup for the dues API server.

Root logger writes to stdout and to a log file. The level comes from the
LOG_LEVEL environment variable (INFO when unset or unknown); DEBUG shows
allocation details, WARNING keeps only ledger inconsistencies and failures.
"""

import logging
import os
import sys
from pathlib import Path

from src.services.config import get_settings

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that stay at WARNING whatever the root level is
QUIET_LOGGERS = ("sqlalchemy.engine", "multipart", "httpx")


def get_log_level() -> int:
    """Resolve LOG_LEVEL (env, then settings) to a logging constant; INFO if unknown."""
    level = logging.getLevelName((os.getenv("LOG_LEVEL") or get_settings().log_level).strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_server_logging(log_file: str = "logs/server.log") -> None:
    """Route all loggers to stdout and ``log_file``.

    Calling it again replaces the handlers instead of stacking them.

    Args:
        log_file: Path to log file; parent directories are created
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level = get_log_level()
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_path)):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # SQL echo is controlled by DATABASE_ECHO, not the root level
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["LOG_FORMAT", "get_log_level", "setup_server_logging"]
