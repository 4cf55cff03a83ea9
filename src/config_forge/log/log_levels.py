"""Log levels of the block-correlated logger."""

import logging
from enum import IntEnum
from typing import Final


class LogLevel(IntEnum):
    """Severity of a log entry, ordered from least to most severe."""

    VERBOSE = 0
    INFO = 1
    WARN = 2
    ERROR = 3

    @classmethod
    def from_logging(cls, levelno: int) -> "LogLevel":
        """Map a standard library ``logging`` level number onto a LogLevel."""
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARN
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.VERBOSE

    def to_logging(self) -> int:
        """Return the equivalent standard library ``logging`` level number."""
        return _TO_LOGGING[self]


_TO_LOGGING = {
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

# Width of the level column in rendered lines
LEVEL_NAME_WIDTH: Final[int] = max(len(level.name) for level in LogLevel)
