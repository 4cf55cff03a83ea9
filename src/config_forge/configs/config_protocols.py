"""
Protocols shared by the configuration store and the logging subsystem.

The store reports its recovery actions through a ``LineLog``. Before the
shared log file is open this is the bootstrap ``ConsoleLog``; afterwards it
is a file-backed category ``Logger``.
"""

from typing import Protocol

from config_forge.log.log_levels import LogLevel


class LineLog(Protocol):
    """Minimal logging capability consumed by ``ConfigStore``."""

    def write_line(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        """Write one message at ``level``."""
        ...
