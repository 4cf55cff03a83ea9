import os
import re
from datetime import datetime, timedelta

import pytest
from conftest import TEST_EXT

from config_forge.exceptions import LogRotationError
from config_forge.log.log_levels import LogLevel
from config_forge.log.log_writer import (
    CURRENT_FILE_STEM,
    BlockIdGenerator,
    LogWriter,
    current_file_path,
    file_creation_time,
    rotate_current_file,
)


def open_writer(logs_path, now=None, console=None):
    return LogWriter.open(
        logs_path, LogLevel.ERROR, ext=TEST_EXT, now=now, console=console
    )


def seed_current_file(logs_path, text="old entry\n"):
    logs_path.mkdir(parents=True, exist_ok=True)
    current = current_file_path(logs_path, TEST_EXT)
    current.write_text(text, encoding="utf-8")
    return current


def test_current_file_name(tmp_path):
    assert current_file_path(tmp_path, ".REL.log").name == f"{CURRENT_FILE_STEM}.REL.log"


def test_open_creates_directory_and_file(tmp_path, console):
    logs_path = tmp_path / "deep" / "logs"
    writer = open_writer(logs_path, console=console)
    try:
        assert writer.path == logs_path / f"0000current{TEST_EXT}"
        assert writer.path.is_file()
        assert writer.rotated_to is None
    finally:
        writer.close()


def test_writes_are_flushed_immediately(tmp_path, console):
    writer = open_writer(tmp_path, console=console)
    try:
        writer.write("first\n", LogLevel.INFO)
        assert writer.path.read_text(encoding="utf-8") == "first\n"
        assert console.getvalue() == ""
        writer.write("second\n", LogLevel.ERROR)
        assert console.getvalue() == "second\n"
    finally:
        writer.close()


def test_same_day_file_is_appended(tmp_path, console):
    current = seed_current_file(tmp_path)
    writer = open_writer(tmp_path, now=datetime.now(), console=console)
    try:
        writer.write("new entry\n", LogLevel.INFO)
        assert writer.rotated_to is None
    finally:
        writer.close()
    assert current.read_text(encoding="utf-8") == "old entry\nnew entry\n"


def test_previous_day_file_is_rotated(tmp_path, console):
    seed_current_file(tmp_path)
    tomorrow = datetime.now() + timedelta(days=1)
    writer = open_writer(tmp_path, now=tomorrow, console=console)
    try:
        writer.write("fresh\n", LogLevel.INFO)
    finally:
        writer.close()

    rotated = writer.rotated_to
    assert rotated is not None
    assert re.fullmatch(r"\d{14}\.0" + re.escape(TEST_EXT), rotated.name)
    assert rotated.read_text(encoding="utf-8") == "old entry\n"
    assert writer.path.read_text(encoding="utf-8") == "fresh\n"


def test_rotation_picks_first_free_disambiguator(tmp_path):
    created = datetime(2024, 1, 1, 12, 0, 0)
    current = seed_current_file(tmp_path, "first file\n")
    if hasattr(os.stat(current), "st_birthtime"):
        pytest.skip("creation time cannot be set on this platform")

    os.utime(current, (created.timestamp(), created.timestamp()))
    first = rotate_current_file(tmp_path, TEST_EXT, now=datetime(2024, 1, 2))

    current.write_text("second file\n", encoding="utf-8")
    os.utime(current, (created.timestamp(), created.timestamp()))
    second = rotate_current_file(tmp_path, TEST_EXT, now=datetime(2024, 1, 2))

    assert first.name == f"20240101120000.0{TEST_EXT}"
    assert second.name == f"20240101120000.1{TEST_EXT}"
    assert first.read_text(encoding="utf-8") == "first file\n"
    assert second.read_text(encoding="utf-8") == "second file\n"
    assert not current.exists()


def test_rotation_without_current_file(tmp_path):
    assert rotate_current_file(tmp_path, TEST_EXT) is None


def test_open_fails_when_logs_path_is_a_file(tmp_path):
    blocker = tmp_path / "logs"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(LogRotationError):
        open_writer(blocker)


def test_close_is_idempotent(tmp_path, console):
    writer = open_writer(tmp_path, console=console)
    writer.close()
    writer.close()
    assert writer.closed


def test_seeded_block_ids_are_reproducible():
    first = BlockIdGenerator(seed=7)
    second = BlockIdGenerator(seed=7)
    assert [first.next_id() for _ in range(5)] == [second.next_id() for _ in range(5)]


def test_modification_time_stands_in_for_creation_time(tmp_path):
    current = seed_current_file(tmp_path)
    if hasattr(os.stat(current), "st_birthtime"):
        pytest.skip("platform records creation times")

    yesterday = datetime.now() - timedelta(days=1)
    os.utime(current, (yesterday.timestamp(), yesterday.timestamp()))
    assert file_creation_time(current) == datetime.fromtimestamp(yesterday.timestamp())

    # Written to today, so it counts as today's file.
    with open(current, "a", encoding="utf-8") as f:
        f.write("late entry\n")
    assert rotate_current_file(tmp_path, TEST_EXT) is None
    assert current.exists()
