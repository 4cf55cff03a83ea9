"""Shared fixtures for the Config Forge test suite."""

import io
from typing import Iterator, List, Tuple

import pytest

from config_forge.configs.static_config import ConfigStore
from config_forge.context import ForgeContext
from config_forge.log.log_levels import LogLevel
from config_forge.log.log_writer import BlockIdGenerator, CategoryWidth, LogWriter

# Explicit build variant tag so file names do not depend on ``python -O``
TEST_EXT = ".DBG.log"


class RecordingLog:
    """LineLog keeping every message in memory."""

    def __init__(self) -> None:
        self.lines: List[Tuple[LogLevel, str]] = []

    def write_line(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        self.lines.append((level, message))

    @property
    def messages(self) -> List[str]:
        return [message for _, message in self.lines]

    def at(self, level: LogLevel) -> List[str]:
        return [message for lvl, message in self.lines if lvl == level]


@pytest.fixture
def recording_log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture
def store(recording_log: RecordingLog) -> ConfigStore:
    return ConfigStore(log=recording_log)


@pytest.fixture
def console() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def writer(tmp_path, console) -> Iterator[LogWriter]:
    log_writer = LogWriter.open(
        tmp_path / "logs", LogLevel.WARN, ext=TEST_EXT, console=console
    )
    yield log_writer
    log_writer.close()


@pytest.fixture
def category_width() -> CategoryWidth:
    return CategoryWidth()


@pytest.fixture
def block_ids() -> BlockIdGenerator:
    return BlockIdGenerator(seed=1234)


@pytest.fixture
def context(recording_log, tmp_path, monkeypatch) -> Iterator[ForgeContext]:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CONFIG_FORGE_LOGS_PATH", raising=False)
    monkeypatch.delenv("CONFIG_FORGE_LOG_LEVEL", raising=False)
    forge_context = ForgeContext(bootstrap_log=recording_log)
    yield forge_context
    forge_context.close()


def read_lines(log_writer: LogWriter) -> List[str]:
    """Return the lines currently in the writer's file."""
    return log_writer.path.read_text(encoding="utf-8").splitlines()
