import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union

import pytest

from config_forge.configs.config_exceptions import (
    ConversionError,
    ConverterRegistryError,
)
from config_forge.configs.converters import (
    ConverterRegistry,
    EnumNameConverter,
    IsoDateTimeConverter,
    StructuredConverter,
)


class Color(Enum):
    RED = "red"
    GREEN = "green"


@dataclass
class Endpoint:
    hostName: str = "localhost"
    port: int = 80
    tags: List[str] = field(default_factory=list)


@pytest.fixture
def converter():
    return StructuredConverter()


# ==========================================
# Structured conversion
# ==========================================


@pytest.mark.parametrize(
    "data, value_type, expected",
    [
        (3, int, 3),
        (3, float, 3.0),
        (2.5, float, 2.5),
        ("abc", str, "abc"),
        (False, bool, False),
        (None, Optional[int], None),
        (7, Optional[int], 7),
        ("green", Color, Color.GREEN),
        ([1, 2], List[int], [1, 2]),
        ([1, 2], Tuple[int, ...], (1, 2)),
        ([1, "a"], Tuple[int, str], (1, "a")),
        ([1, 1, 2], Set[int], {1, 2}),
        (["a"], FrozenSet[str], frozenset({"a"})),
        ({"RED": 1}, Dict[Color, int], {Color.RED: 1}),
        ({"1": "x"}, Dict[int, str], {1: "x"}),
        ("a", Union[int, str], "a"),
        ("logs/app", Path, Path("logs/app")),
        ("2024-03-01", date, date(2024, 3, 1)),
        ("2024-03-01T10:20:30", datetime, datetime(2024, 3, 1, 10, 20, 30)),
    ],
)
def test_decode_accepts_matching_values(converter, data, value_type, expected):
    assert converter.decode(data, value_type) == expected


@pytest.mark.parametrize(
    "data, value_type",
    [
        (True, int),
        (True, float),
        ("3", int),
        (3, str),
        (1.5, int),
        ("blue", Color),
        ("x", List[int]),
        ([1, 2, 3], Tuple[int, str]),
        ({"BLUE": 1}, Dict[Color, int]),
        ("yesterday", datetime),
        (None, int),
    ],
)
def test_decode_rejects_mismatched_values(converter, data, value_type):
    with pytest.raises(ConversionError):
        converter.decode(data, value_type)


def test_encode_composites(converter):
    value = {Color.RED: [Path("a/b"), date(2024, 1, 2)], "plain": {3, 1, 2}}
    assert converter.encode(value) == {
        "RED": ["a/b", "2024-01-02"],
        "plain": [1, 2, 3],
    }
    assert converter.encode(Color.GREEN) == "green"
    assert converter.encode((1, "x")) == [1, "x"]


def test_dataclass_keys_follow_naming_policy(converter):
    endpoint = Endpoint("example.org", 8443, ["edge"])
    document = converter.encode(endpoint)
    assert document == {"host_name": "example.org", "port": 8443, "tags": ["edge"]}
    assert converter.decode(document, Endpoint) == endpoint


def test_dataclass_missing_keys_keep_field_defaults(converter):
    assert converter.decode({"port": 9}, Endpoint) == Endpoint(port=9)


def test_encode_unknown_type_fails(converter):
    with pytest.raises(ConversionError):
        converter.encode(object())


# ==========================================
# Custom converters
# ==========================================


def test_enum_name_converter():
    names = EnumNameConverter()
    assert names.encode(Color.RED, Color) == "RED"
    assert names.decode("GREEN", Color) is Color.GREEN
    with pytest.raises(ConversionError):
        names.decode("green", Color)
    with pytest.raises(ConversionError):
        names.decode(1, Color)


def test_iso_datetime_converter_drops_microseconds():
    stamps = IsoDateTimeConverter()
    value = datetime(2024, 5, 6, 7, 8, 9, 123456)
    assert stamps.encode(value, datetime) == "2024-05-06T07:08:09"
    assert stamps.decode("2024-05-06T07:08:09", datetime) == value.replace(
        microsecond=0
    )


# ==========================================
# Registry
# ==========================================


class CountingConverter:
    created = 0

    def __init__(self):
        type(self).created += 1

    def encode(self, value, value_type):
        return value

    def decode(self, data, value_type):
        return data


def test_registry_instantiates_lazily_and_once():
    CountingConverter.created = 0
    registry = ConverterRegistry()
    registry.register("counting", CountingConverter)
    assert "counting" not in registry
    assert CountingConverter.created == 0

    first = registry.get("counting")
    assert registry.get("counting") is first
    assert CountingConverter.created == 1
    assert "counting" in registry


def test_registry_shares_instance_across_threads():
    CountingConverter.created = 0
    registry = ConverterRegistry()
    results = []
    barrier = threading.Barrier(8)

    def fetch():
        barrier.wait()
        results.append(registry.get(CountingConverter))

    threads = [threading.Thread(target=fetch) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert CountingConverter.created == 1
    assert len({id(result) for result in results}) == 1


def test_registry_builtin_tags():
    registry = ConverterRegistry()
    assert isinstance(registry.get("enum_name"), EnumNameConverter)
    assert isinstance(registry.get("iso_datetime"), IsoDateTimeConverter)
    assert len(registry) == 2


def test_registry_unknown_tag_fails():
    with pytest.raises(ConverterRegistryError, match="unknown converter"):
        ConverterRegistry().get("missing")


def test_registry_refuses_replacing_converter_in_use():
    registry = ConverterRegistry()
    registry.get("enum_name")
    with pytest.raises(ConverterRegistryError):
        registry.register("enum_name", CountingConverter)


def test_registry_wraps_factory_failure():
    def broken():
        raise RuntimeError("boom")

    registry = ConverterRegistry()
    registry.register("broken", broken)
    with pytest.raises(ConverterRegistryError, match="broken"):
        registry.get("broken")
