"""
Per-category, block-correlated logger.

Each ``Logger`` renders entries into its own buffer under its own lock and
hands the finished line to the shared ``LogWriter``. Locks are always taken
in the order "own buffer, then shared writer".

Line formats:
    [HH:MM:SS][LEVEL  ][category  ] message
    [HH:MM:SS][LEVEL  ][category  ] 1A2B3C4D << message     (block begin)
    [HH:MM:SS][LEVEL  ][category  ] 1A2B3C4D >> message     (block end)

Usage:
    ```python
    log = context.logger("Loader")
    log.write_line("starting")
    with log.new_block("reading index"):
        ...
    ```
"""

import io
import threading
from datetime import datetime
from types import TracebackType
from typing import Optional, Type

from config_forge.log.log_levels import LEVEL_NAME_WIDTH, LogLevel
from config_forge.log.log_writer import BlockIdGenerator, CategoryWidth, LogWriter


class Logger:
    """
    Named category writing to the shared log file.

    Attributes:
        name: Category name rendered in every line
    """

    def __init__(
        self,
        name: str,
        writer: LogWriter,
        category_width: CategoryWidth,
        block_ids: BlockIdGenerator,
    ) -> None:
        self.name = name
        self._writer = writer
        self._category_width = category_width
        self._block_ids = block_ids
        self._buffer = io.StringIO()
        self._lock = threading.Lock()
        category_width.register(name)

    def write_line(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        """Write ``message`` as one entry."""
        with self._lock:
            self._begin_line(level)
            self._buffer.write(f" {message}\n")
            self._writer.write(self._buffer.getvalue(), level)

    def write_line_with_block_id(
        self, message: str, level: LogLevel = LogLevel.INFO
    ) -> int:
        """
        Begin a block: write ``message`` tagged with a fresh block id.

        Returns:
            The block id, to be passed to ``write_line_end_block``
        """
        with self._lock:
            self._begin_line(level)
            block_id = self._block_ids.next_id()
            self._buffer.write(f" {block_id:08X} << {message}\n")
            self._writer.write(self._buffer.getvalue(), level)
            return block_id

    def write_line_end_block(
        self,
        block_id: int,
        message: str = "block end",
        level: LogLevel = LogLevel.INFO,
    ) -> None:
        """End the block ``block_id`` with ``message``."""
        with self._lock:
            self._begin_line(level)
            self._buffer.write(f" {block_id:08X} >> {message}\n")
            self._writer.write(self._buffer.getvalue(), level)

    def new_block(
        self, message: str, level: LogLevel = LogLevel.INFO
    ) -> "LoggerBlock":
        """Begin a block now and return a guard that ends it on close."""
        return LoggerBlock(self, message, level)

    def _begin_line(self, level: LogLevel) -> None:
        self._buffer.seek(0)
        self._buffer.truncate()
        width = self._category_width.width
        self._buffer.write(
            f"[{datetime.now():%H:%M:%S}]"
            f"[{level.name:<{LEVEL_NAME_WIDTH}}]"
            f"[{self.name:<{width}}]"
        )

    def __repr__(self) -> str:
        return f"Logger({self.name!r})"


class LoggerBlock:
    """
    Scoped guard for one log block.

    The begin entry is written on construction. ``close`` writes the end
    entry "done with <message>" exactly once, however often it is called;
    leaving a ``with`` statement calls it.
    """

    def __init__(
        self, logger: Logger, message: str, level: LogLevel = LogLevel.INFO
    ) -> None:
        self.logger = logger
        self.message = message
        self.level = level
        self.block_id = logger.write_line_with_block_id(message, level)
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.logger.write_line_end_block(
            self.block_id, f"done with {self.message}", self.level
        )

    def __enter__(self) -> "LoggerBlock":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()
