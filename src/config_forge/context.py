"""
Process-scoped context tying the configuration store to the logger.

Bootstrapping is explicit and happens in two phases:

1. ``ForgeContext()`` creates the shared converter registry, the category
   width tracker, the block id source and a ``ConfigStore`` that reports
   through the bootstrap ``ConsoleLog``.
2. ``start_logging()`` loads ``LoggerConfig`` through that store, applies
   environment overrides, opens the shared log file (rotating a stale one)
   and switches the store's log to the file-backed "StaticConf" category.

Usage:
    ```python
    context = get_context()
    context.start_logging()
    log = context.logger("Main")
    with log.new_block("loading settings"):
        context.store.load(ServerSettings, "config/server.json")
    ```
"""

import logging
import threading
from datetime import datetime
from functools import lru_cache
from typing import List, Optional, TextIO, Tuple

from config_forge.configs.config_essentials import PathLike
from config_forge.configs.config_protocols import LineLog
from config_forge.configs.converters import ConverterRegistry
from config_forge.configs.logging_config import LoggerConfig
from config_forge.configs.naming_policy import DEFAULT_NAMING_POLICY, NamingPolicy
from config_forge.configs.static_config import ConfigStore
from config_forge.exceptions import LoggingError
from config_forge.log.console_log import ConsoleLog
from config_forge.log.log_handler import ForgeLogHandler
from config_forge.log.log_writer import BlockIdGenerator, CategoryWidth, LogWriter
from config_forge.log.logger import Logger

# Category used by the store once logging has started
STORE_CATEGORY = "StaticConf"


class ForgeContext:
    """
    Shared state of one process: converter cache, log writer and store.

    Attributes:
        converters: Converter registry shared by every schema
        category_width: Widest category name seen so far
        block_ids: Source of block correlation ids
        bootstrap_log: Log used by the store before logging starts
        store: The configuration store
        log_writer: Shared writer, None until ``start_logging``
    """

    def __init__(
        self,
        bootstrap_log: Optional[LineLog] = None,
        naming_policy: NamingPolicy = DEFAULT_NAMING_POLICY,
        block_ids: Optional[BlockIdGenerator] = None,
    ) -> None:
        self.converters = ConverterRegistry()
        self.category_width = CategoryWidth()
        self.block_ids = block_ids or BlockIdGenerator()
        self.bootstrap_log: LineLog = bootstrap_log or ConsoleLog()
        self.store = ConfigStore(self.converters, self.bootstrap_log, naming_policy)
        self.log_writer: Optional[LogWriter] = None
        self._handlers: List[Tuple[str, logging.Handler]] = []
        self._lock = threading.Lock()

    @property
    def logging_started(self) -> bool:
        return self.log_writer is not None

    def start_logging(
        self,
        config_path: Optional[PathLike] = None,
        *,
        now: Optional[datetime] = None,
        console: Optional[TextIO] = None,
    ) -> LogWriter:
        """
        Load the logger settings and open the shared log file.

        Runs once; later calls return the writer already open.

        Args:
            config_path: Logger settings file, defaults to ``LoggerConfig.FILE_SOURCE``
            now: Current time used for the rotation decision
            console: Console stream for echoed lines, defaults to ``sys.stdout``

        Returns:
            The shared LogWriter

        Raises:
            EnvVarError: If an environment override is invalid
            LogRotationError: If the log file cannot be rotated or opened
        """
        with self._lock:
            if self.log_writer is not None:
                return self.log_writer

            self.store.load(LoggerConfig, config_path or LoggerConfig.FILE_SOURCE)
            self.store.apply_env_overrides(LoggerConfig)
            self.log_writer = LogWriter.open(
                LoggerConfig.logs_path,
                LoggerConfig.log_level,
                now=now,
                console=console,
            )
            self.store.log = self._new_logger(STORE_CATEGORY, self.log_writer)
            if self.log_writer.rotated_to is not None:
                self.store.log.write_line(
                    f"previous log moved to {self.log_writer.rotated_to}"
                )
            return self.log_writer

    def logger(self, name: str) -> Logger:
        """
        Create a category logger writing to the shared log file.

        Raises:
            LoggingError: If ``start_logging`` has not been called
        """
        writer = self.log_writer
        if writer is None:
            raise LoggingError(f"cannot create logger '{name}': logging not started")
        return self._new_logger(name, writer)

    def _new_logger(self, name: str, writer: LogWriter) -> Logger:
        return Logger(name, writer, self.category_width, self.block_ids)

    def install_log_handler(
        self, logger_name: str = "", level: int = logging.NOTSET
    ) -> ForgeLogHandler:
        """
        Route standard library ``logging`` records into the shared log file.

        Args:
            logger_name: Name of the ``logging`` logger to attach to (root by default)
            level: Minimum record level handled

        Returns:
            The installed handler
        """
        handler = ForgeLogHandler(self.logger, level)
        logging.getLogger(logger_name).addHandler(handler)
        with self._lock:
            self._handlers.append((logger_name, handler))
        return handler

    def close(self) -> None:
        """Detach handlers, close the log file and return to the bootstrap log."""
        with self._lock:
            for logger_name, handler in self._handlers:
                logging.getLogger(logger_name).removeHandler(handler)
                handler.close()
            self._handlers.clear()

            self.store.log = self.bootstrap_log
            if self.log_writer is not None:
                self.log_writer.close()
                self.log_writer = None


@lru_cache(maxsize=1)
def get_context() -> ForgeContext:
    """Get the process-wide ForgeContext."""
    return ForgeContext()
