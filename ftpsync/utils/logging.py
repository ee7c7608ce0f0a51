"""Logging setup for ftpsync.

All loggers live under the "ftpsync" namespace. Messages pass through a
redacting formatter so FTP passwords never reach the console or a log
file, including the PASS command echoed by ftplib debug output.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "ftpsync"

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s"

REDACTIONS = [
    (re.compile(r'(pass(?:word|wd)?["\s:=]+)[^\s,}\]]+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'(\bPASS )\S+'), r'\1[REDACTED]'),
    (re.compile(r'ftp://[^:/@\s]+:[^@\s]+@'), 'ftp://[REDACTED]@'),
]


class PIIRedactingFormatter(logging.Formatter):
    """Formatter that masks passwords in the rendered message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for pattern, replacement in REDACTIONS:
            message = pattern.sub(replacement, message)
        return message


def _add_handler(logger: logging.Logger, handler: logging.Handler, fmt: str) -> None:
    handler.setLevel(logger.level)
    handler.setFormatter(PIIRedactingFormatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Configure the ftpsync logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Logging level (default INFO)
        log_file: Optional file that receives timestamped records
        console: Whether to log to stderr (default True)

    Returns:
        The "ftpsync" logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        _add_handler(logger, logging.StreamHandler(sys.stderr), CONSOLE_FORMAT)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _add_handler(logger, logging.FileHandler(log_file, encoding="utf-8"), FILE_FORMAT)

    return logger
