"""
Bridge from the standard library ``logging`` module into the shared log file.

Modules that log with ``logging.getLogger(__name__)`` end up in the same file
as the block-correlated loggers once a ``ForgeLogHandler`` is installed; the
record's logger name becomes the category.
"""

import logging
import threading
from typing import Callable, Dict

from config_forge.log.log_levels import LogLevel
from config_forge.log.logger import Logger


class ForgeLogHandler(logging.Handler):
    """``logging.Handler`` writing records through category ``Logger`` objects."""

    def __init__(
        self, logger_factory: Callable[[str], Logger], level: int = logging.NOTSET
    ) -> None:
        super().__init__(level)
        self._logger_factory = logger_factory
        self._loggers: Dict[str, Logger] = {}
        self._loggers_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            self._logger_for(record.name).write_line(
                message, LogLevel.from_logging(record.levelno)
            )
        except Exception:
            self.handleError(record)

    def _logger_for(self, name: str) -> Logger:
        with self._loggers_lock:
            logger = self._loggers.get(name)
            if logger is None:
                logger = self._logger_factory(name)
                self._loggers[name] = logger
            return logger
