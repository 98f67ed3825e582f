"""Logging configuration for the application."""
import logging
import os
from pathlib import Path
from datetime import datetime, timezone
from typing import List

from canonizer.app.models import LogEntry

LOGS_DIR = Path(os.getenv("LOGS_DIR", "logs"))
LOGS_DIR.mkdir(parents=True, exist_ok=True)

# One file per process start
LOG_FILE = LOGS_DIR / f"canonizer_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def setup_logger(name: str = "canonizer", level: int = logging.INFO) -> logging.Logger:
    """Logger writing DEBUG and up to LOG_FILE and ``level`` and up to the console."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_handler(logging.FileHandler(LOG_FILE, encoding="utf-8"), logging.DEBUG, FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
    logger.addHandler(_handler(logging.StreamHandler(), level, CONSOLE_FORMAT, "%H:%M:%S"))
    return logger


class StageLog:
    """Logger for one pipeline stage that also keeps the entries for the trace."""

    def __init__(self, stage: str, base: logging.Logger = None):
        self.stage = stage
        self._logger = base or logger
        self.entries: List[LogEntry] = []

    def _log(self, level: int, level_name: str, message: str, exc_info: bool = False):
        self.entries.append(LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level_name,
            message=message
        ))
        self._logger.log(level, f"[{self.stage}] {message}", exc_info=exc_info)

    def debug(self, message: str):
        self._log(logging.DEBUG, "debug", message)

    def info(self, message: str):
        self._log(logging.INFO, "info", message)

    def warning(self, message: str):
        self._log(logging.WARNING, "warn", message)

    def error(self, message: str, exc_info: bool = False):
        self._log(logging.ERROR, "error", message, exc_info=exc_info)


# Create default logger instance
logger = setup_logger(level=getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO))
