"""
Shared append-only log file with start-of-day rotation.

Every category ``Logger`` in the process writes through one ``LogWriter``.
The writer owns the physical file handle and serializes all writes with its
own lock; entries are flushed immediately and echoed to the console when
their level reaches the configured threshold.

Rotation happens once, when the writer is opened: if the fixed current file
(``0000current<tag>``) was created on an earlier day it is renamed to
``<YYYYmmddHHMMSS>.<n><tag>`` (its creation timestamp plus the first free
disambiguator) and a fresh current file is started. Same-day files are
appended to.

Architecture:
    ┌──────────┐ ┌──────────┐ ┌──────────┐
    │ Logger A │ │ Logger B │ │ Logger C │   own render lock each
    └────┬─────┘ └────┬─────┘ └────┬─────┘
         └────────────┼────────────┘
                 ┌────▼─────┐
                 │LogWriter │   shared write lock
                 └────┬─────┘
          ┌───────────┴───────────┐
    ┌─────▼──────┐          ┌─────▼─────┐
    │ log file   │          │  console  │
    └────────────┘          └───────────┘
"""

import os
import random
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Final, Optional, TextIO

from config_forge.configs.config_essentials import PathLike
from config_forge.exceptions import LogRotationError
from config_forge.log.log_levels import LogLevel

# ==========================================
# File Naming
# ==========================================

# Build variant tag of the log file names
BUILD_VARIANT_EXT: Final[str] = ".DBG.log" if __debug__ else ".REL.log"
CURRENT_FILE_STEM: Final[str] = "0000current"
ROTATED_TIMESTAMP_FORMAT: Final[str] = "%Y%m%d%H%M%S"


def current_file_path(logs_path: PathLike, ext: str = BUILD_VARIANT_EXT) -> Path:
    """Return the fixed path of the current log file inside ``logs_path``."""
    return Path(logs_path) / f"{CURRENT_FILE_STEM}{ext}"


def file_creation_time(path: PathLike) -> datetime:
    """
    Return the creation time of ``path``.

    Uses ``st_birthtime`` where the platform records it and falls back to the
    modification time elsewhere (most Linux filesystems through ``os.stat``).
    """
    stat = os.stat(path)
    created = getattr(stat, "st_birthtime", None)
    if created is None:
        created = stat.st_mtime
    return datetime.fromtimestamp(created)


def rotate_current_file(
    logs_path: PathLike,
    ext: str = BUILD_VARIANT_EXT,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """
    Move a current log file created on an earlier day out of the way.

    On platforms without ``st_birthtime`` (Linux) the modification time
    stands in for the creation time, both for the day comparison and for the
    rotated name. A file created yesterday but written to after midnight is
    then appended to rather than rotated.

    Args:
        logs_path: Directory holding the log files
        ext: Build variant tag appended to file names
        now: Current time, defaults to ``datetime.now()``

    Returns:
        The path the old file was moved to, or None if nothing was rotated
    """
    current = current_file_path(logs_path, ext)
    if not current.exists():
        return None

    created = file_creation_time(current)
    now = now or datetime.now()
    if created.date() == now.date():
        return None

    stamp = created.strftime(ROTATED_TIMESTAMP_FORMAT)
    index = 0
    while True:
        rotated = Path(logs_path) / f"{stamp}.{index}{ext}"
        index += 1
        if not rotated.exists():
            break

    current.rename(rotated)
    return rotated


# ==========================================
# Shared Process State
# ==========================================


class CategoryWidth:
    """
    Widest category name registered so far.

    The width only grows. Lines already written keep the padding that was
    current when they were rendered.
    """

    def __init__(self) -> None:
        self._width = 0
        self._lock = threading.Lock()

    def register(self, name: str) -> int:
        """Account for category ``name`` and return the resulting width."""
        with self._lock:
            if len(name) > self._width:
                self._width = len(name)
            return self._width

    @property
    def width(self) -> int:
        with self._lock:
            return self._width


class BlockIdGenerator:
    """Source of random 32-bit block correlation identifiers."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            return self._random.getrandbits(32)


# ==========================================
# Writer
# ==========================================


class LogWriter:
    """
    Single shared writer over the current log file.

    Attributes:
        path: Path of the file being appended to
        console_level: Minimum level echoed to the console
        rotated_to: Where a previous day's file was moved on open, if anywhere
    """

    def __init__(
        self,
        stream: TextIO,
        path: Path,
        console_level: LogLevel = LogLevel.INFO,
        console: Optional[TextIO] = None,
        rotated_to: Optional[Path] = None,
    ) -> None:
        self.path = path
        self.console_level = console_level
        self.rotated_to = rotated_to
        self._stream = stream
        self._console = console
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        logs_path: PathLike,
        console_level: LogLevel = LogLevel.INFO,
        *,
        ext: str = BUILD_VARIANT_EXT,
        now: Optional[datetime] = None,
        console: Optional[TextIO] = None,
    ) -> "LogWriter":
        """
        Rotate a stale current file and open the current file for appending.

        Args:
            logs_path: Directory for the log files, created if missing
            console_level: Minimum level echoed to the console
            ext: Build variant tag appended to file names
            now: Current time used for the rotation decision
            console: Console stream, defaults to ``sys.stdout`` at write time

        Returns:
            An open LogWriter

        Raises:
            LogRotationError: If the directory, rotation or file open fails
        """
        try:
            Path(logs_path).mkdir(parents=True, exist_ok=True)
            rotated_to = rotate_current_file(logs_path, ext, now)
            path = current_file_path(logs_path, ext)
            stream = open(path, "a", encoding="utf-8")
        except OSError as e:
            raise LogRotationError(f"cannot open log file in '{logs_path}'", e) from e
        return cls(stream, path, console_level, console, rotated_to)

    def write(self, text: str, level: LogLevel) -> None:
        """Append ``text`` to the file, flush, and echo it if ``level`` qualifies."""
        with self._lock:
            self._stream.write(text)
            self._stream.flush()
            if level >= self.console_level:
                console = self._console or sys.stdout
                console.write(text)

    @property
    def closed(self) -> bool:
        return self._stream.closed

    def close(self) -> None:
        with self._lock:
            if not self._stream.closed:
                self._stream.close()
