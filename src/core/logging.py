from __future__ import annotations

import logging
import sys
import time
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO

LOG_FILE_NAME = "pfsifter.log"
CONSOLE_LOGGER_NAME = "pfsifter.console"

# Classification tags understood by ConsoleFormatter (see extractors.system.prefetch.classifier)
_EMPHASIS = {
    "keyword-match": "\x1b[1;31m",
    "tracked-executable": "\x1b[1;33m",
}
_RESET = "\x1b[0m"


class UtcFormatter(logging.Formatter):
    """Formatter that renders timestamps in UTC using ISO-8601."""

    converter = time.gmtime

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="seconds")


class ConsoleFormatter(logging.Formatter):
    """
    Message-only formatter for record narration.

    Records logged with ``extra={"tag": ...}`` are emphasized when the
    target stream is a terminal. Untagged records render unchanged.
    """

    def __init__(self, use_color: bool = True) -> None:
        super().__init__(fmt="%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        tag = getattr(record, "tag", None)
        if not tag or tag not in _EMPHASIS:
            return message
        if self.use_color:
            return f"{_EMPHASIS[tag]}{message}{_RESET}"
        return f"{message}  <{tag}>"


def configure_logging(
    log_dir: Path,
    level: int = logging.INFO,
    max_bytes: int = 50 * 1024 * 1024,  # 50 MB default
    backup_count: int = 10,
) -> Logger:
    """
    Configure the application logger with console and rotating file handlers.

    Args:
        log_dir: Directory for log files
        level: Logging level (default: INFO)
        max_bytes: Maximum size per log file before rotation (default: 50 MB)
        backup_count: Number of backup files to keep (default: 10)

    Returns:
        Configured application logger
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    formatter = UtcFormatter(
        fmt="%(asctime)sZ %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    root_logger = logging.getLogger("pfsifter")
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Use RotatingFileHandler for size-based log rotation
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    configure_console(level=level)

    root_logger.debug("Logging configured. File: %s (max %d MB, %d backups)",
                      log_path, max_bytes // (1024 * 1024), backup_count)
    return root_logger


def configure_console(stream: Optional[TextIO] = None, level: int = logging.INFO) -> Logger:
    """
    Configure the narration logger used for per-record console output.

    The narration logger does not propagate to the application logger, so
    record dumps stay out of the rotating log file.
    """
    stream = stream or sys.stdout
    console_logger = logging.getLogger(CONSOLE_LOGGER_NAME)
    console_logger.setLevel(level)
    console_logger.propagate = False
    console_logger.handlers.clear()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ConsoleFormatter(use_color=stream.isatty()))
    console_logger.addHandler(handler)
    return console_logger


def get_logger(name: Optional[str] = None) -> Logger:
    """Return a child logger under the application namespace."""
    base = logging.getLogger("pfsifter")
    if name:
        return base.getChild(name)
    return base
