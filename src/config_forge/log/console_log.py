"""
Bootstrap log used before the shared log file is available.

Messages go to a standard library ``logging`` logger, so they show up
wherever the application has configured ``logging`` (the CLI calls
``logging.basicConfig``). When nothing is configured yet, the logger gets
its own stderr handler so recovery notices are never dropped.
"""

import logging

from config_forge.log.log_levels import LogLevel

BOOTSTRAP_LOGGER_NAME = "config_forge.static_config"
BOOTSTRAP_FORMAT = "%(levelname)s %(name)s: %(message)s"


class ConsoleLog:
    """``LineLog`` writing through ``logging.getLogger(name)``."""

    def __init__(self, name: str = BOOTSTRAP_LOGGER_NAME) -> None:
        self.logger: logging.Logger = logging.getLogger(name)
        if not self.logger.hasHandlers():
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(BOOTSTRAP_FORMAT))
            self.logger.addHandler(handler)
            if self.logger.level == logging.NOTSET:
                self.logger.setLevel(logging.INFO)

    def write_line(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        self.logger.log(level.to_logging(), message)
