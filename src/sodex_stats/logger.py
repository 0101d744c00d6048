"""Logging setup for the sodex-stats CLI.

Records go to stderr so report tables on stdout stay clean. ``TRACE`` sits
below ``DEBUG`` and adds cache hits plus urllib3 connection logs.
"""

import logging
import os
import sys

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Only shown at TRACE; otherwise held at WARNING or above
THIRD_PARTY_LOGGERS = ("urllib3", "backoff")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    LEVEL_COLORS = {
        "TRACE": "\033[90m",
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;35m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str, *, use_color: bool):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname)
        if not self.use_color or color is None:
            return super().format(record)
        # Other handlers may share the record, so color a copy
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def resolve_level(name: str | None) -> int:
    """Map a level name to its number, falling back to ``LOG_LEVEL`` then INFO."""
    resolved = (name or os.getenv("LOG_LEVEL") or "INFO").upper()
    return logging.getLevelNamesMapping().get(resolved, logging.INFO)


def setup_logging(log_level: str | None = None) -> None:
    level = resolve_level(log_level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ColoredFormatter(LOG_FORMAT, DATE_FORMAT, use_color=sys.stderr.isatty())
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    third_party_level = level if level <= TRACE else max(level, logging.WARNING)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
