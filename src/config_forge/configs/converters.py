"""
Value conversion between settings and the generic JSON document tree.

Every setting is converted with the ``StructuredConverter`` unless it declares
a custom converter tag, in which case the process-wide ``ConverterRegistry``
resolves the tag to a converter instance. Converter instances are created
lazily on first use and shared by every schema and by both the load and the
save path.

Architecture:
    ┌──────────────┐  tag   ┌───────────────────┐  factory  ┌───────────┐
    │ ConfigStore  ├───────►│ ConverterRegistry ├──────────►│ Converter │
    └──────┬───────┘        └───────────────────┘           └───────────┘
           │ no tag
           ▼
    ┌────────────────────┐
    │ StructuredConverter│
    └────────────────────┘
"""

import dataclasses
import threading
import types
from datetime import date, datetime
from enum import Enum
from pathlib import PurePath
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Optional,
    Protocol,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from config_forge.configs.config_essentials import JsonValue
from config_forge.configs.config_exceptions import (
    ConversionError,
    ConverterRegistryError,
)
from config_forge.configs.naming_policy import DEFAULT_NAMING_POLICY, NamingPolicy


class Converter(Protocol):
    """Protocol for objects converting values to and from document values."""

    def encode(self, value: Any, value_type: Any) -> JsonValue:
        """Convert ``value`` into a JSON-compatible document value."""
        ...

    def decode(self, data: JsonValue, value_type: Any) -> Any:
        """Convert document value ``data`` into an instance of ``value_type``."""
        ...


ConverterFactory = Callable[[], Converter]


# ==========================================
# Default Conversion
# ==========================================


class StructuredConverter:
    """
    Native conversion for primitive, composite and dataclass settings.

    Primitives are checked strictly: ``bool`` is never accepted as a number
    and numbers are never accepted as strings. Enum members are persisted by
    value. Dataclass fields use the naming policy for their keys.
    """

    def __init__(self, naming_policy: NamingPolicy = DEFAULT_NAMING_POLICY) -> None:
        self.naming_policy = naming_policy

    # ---------------- encoding ----------------

    def encode(self, value: Any, value_type: Any = Any) -> JsonValue:
        if value is None or isinstance(value, (bool, str)):
            return value
        if isinstance(value, Enum):
            return self.encode(value.value)
        if isinstance(value, (int, float)):
            return value
        if isinstance(value, PurePath):
            return value.as_posix()
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return {
                self.naming_policy.convert_name(f.name): self.encode(
                    getattr(value, f.name)
                )
                for f in dataclasses.fields(value)
            }
        if isinstance(value, dict):
            return {self._encode_key(k): self.encode(v) for k, v in value.items()}
        if isinstance(value, (set, frozenset)):
            try:
                items = sorted(value)
            except TypeError:
                items = list(value)
            return [self.encode(item) for item in items]
        if isinstance(value, (list, tuple)):
            return [self.encode(item) for item in value]
        raise ConversionError(
            f"no default conversion for value of type {type(value).__name__}"
        )

    @staticmethod
    def _encode_key(key: Any) -> str:
        if isinstance(key, Enum):
            return key.name
        if isinstance(key, str):
            return key
        if isinstance(key, int) and not isinstance(key, bool):
            return str(key)
        raise ConversionError(f"unsupported mapping key {key!r}")

    # ---------------- decoding ----------------

    def decode(self, data: JsonValue, value_type: Any) -> Any:
        if value_type is Any or value_type is object:
            return data
        if value_type is None or value_type is type(None):
            if data is not None:
                raise ConversionError(f"expected null, got {data!r}")
            return None

        origin = get_origin(value_type)
        if origin is Union or origin is types.UnionType:
            return self._decode_union(data, get_args(value_type))
        if origin is not None:
            return self._decode_generic(data, origin, get_args(value_type))

        if not isinstance(value_type, type):
            raise ConversionError(f"unsupported setting type {value_type!r}")
        if issubclass(value_type, Enum):
            try:
                return value_type(data)
            except ValueError as e:
                raise ConversionError(
                    f"{data!r} is not a valid {value_type.__name__}", e
                ) from e
        if value_type is bool:
            return self._expect(data, bool)
        if issubclass(value_type, int):
            if isinstance(data, bool) or not isinstance(data, int):
                raise ConversionError(f"expected integer, got {data!r}")
            return value_type(data)
        if value_type is float:
            if isinstance(data, bool) or not isinstance(data, (int, float)):
                raise ConversionError(f"expected number, got {data!r}")
            return float(data)
        if value_type is str:
            return self._expect(data, str)
        if issubclass(value_type, PurePath):
            return value_type(self._expect(data, str))
        if value_type is datetime or value_type is date:
            try:
                return value_type.fromisoformat(self._expect(data, str))
            except ValueError as e:
                raise ConversionError(f"invalid ISO-8601 value {data!r}", e) from e
        if dataclasses.is_dataclass(value_type):
            return self._decode_dataclass(data, value_type)
        if value_type in (list, tuple, set, frozenset, dict):
            return self._decode_generic(data, value_type, ())
        raise ConversionError(f"no default conversion for type {value_type.__name__}")

    @staticmethod
    def _expect(data: JsonValue, expected: type) -> Any:
        if not isinstance(data, expected):
            raise ConversionError(
                f"expected {expected.__name__}, got {type(data).__name__}"
            )
        return data

    def _decode_union(self, data: JsonValue, arms: tuple) -> Any:
        if data is None and type(None) in arms:
            return None
        errors = []
        for arm in arms:
            if arm is type(None):
                continue
            try:
                return self.decode(data, arm)
            except ConversionError as e:
                errors.append(str(e))
        raise ConversionError(f"{data!r} matches no union arm: {'; '.join(errors)}")

    def _decode_generic(self, data: JsonValue, origin: Any, args: tuple) -> Any:
        if origin is dict:
            mapping = self._expect(data, dict)
            key_type, item_type = args if args else (str, Any)
            return {
                self._decode_key(k, key_type): self.decode(v, item_type)
                for k, v in mapping.items()
            }

        items = self._expect(data, list)
        if origin is tuple:
            if not args or (len(args) == 2 and args[1] is Ellipsis):
                item_type = args[0] if args else Any
                return tuple(self.decode(item, item_type) for item in items)
            if len(args) != len(items):
                raise ConversionError(
                    f"expected {len(args)} items, got {len(items)}"
                )
            return tuple(self.decode(item, t) for item, t in zip(items, args))

        item_type = args[0] if args else Any
        decoded = [self.decode(item, item_type) for item in items]
        if origin is list:
            return decoded
        if origin in (set, frozenset):
            return origin(decoded)
        raise ConversionError(f"unsupported container type {origin!r}")

    @staticmethod
    def _decode_key(key: str, key_type: Any) -> Any:
        if key_type in (str, Any):
            return key
        if isinstance(key_type, type) and issubclass(key_type, Enum):
            try:
                return key_type[key]
            except KeyError as e:
                raise ConversionError(
                    f"'{key}' is not a {key_type.__name__} member", e
                ) from e
        if key_type is int:
            try:
                return int(key)
            except ValueError as e:
                raise ConversionError(f"'{key}' is not an integer key", e) from e
        raise ConversionError(f"unsupported mapping key type {key_type!r}")

    def _decode_dataclass(self, data: JsonValue, value_type: type) -> Any:
        mapping = self._expect(data, dict)
        hints = get_type_hints(value_type)
        kwargs: Dict[str, Any] = {}
        for f in dataclasses.fields(value_type):
            if not f.init:
                continue
            key = self.naming_policy.convert_name(f.name)
            if key in mapping:
                kwargs[f.name] = self.decode(mapping[key], hints.get(f.name, Any))
        try:
            return value_type(**kwargs)
        except TypeError as e:
            raise ConversionError(
                f"cannot build {value_type.__name__} from {sorted(mapping)}", e
            ) from e


# ==========================================
# Built-in Custom Converters
# ==========================================


class EnumNameConverter:
    """Persist enum settings by member name instead of value."""

    def encode(self, value: Any, value_type: Any) -> JsonValue:
        if not isinstance(value, Enum):
            raise ConversionError(f"expected enum member, got {value!r}")
        return value.name

    def decode(self, data: JsonValue, value_type: Any) -> Any:
        if not isinstance(data, str):
            raise ConversionError(f"expected enum name, got {data!r}")
        try:
            return value_type[data]
        except (KeyError, TypeError) as e:
            raise ConversionError(f"'{data}' is not a member of {value_type!r}", e) from e


class IsoDateTimeConverter:
    """Persist datetimes as ISO-8601 strings truncated to whole seconds."""

    def encode(self, value: Any, value_type: Any) -> JsonValue:
        if not isinstance(value, datetime):
            raise ConversionError(f"expected datetime, got {value!r}")
        return value.replace(microsecond=0).isoformat()

    def decode(self, data: JsonValue, value_type: Any) -> Any:
        if not isinstance(data, str):
            raise ConversionError(f"expected ISO-8601 string, got {data!r}")
        try:
            return datetime.fromisoformat(data)
        except ValueError as e:
            raise ConversionError(f"invalid ISO-8601 value {data!r}", e) from e


BUILTIN_CONVERTERS: Dict[Hashable, ConverterFactory] = {
    "enum_name": EnumNameConverter,
    "iso_datetime": IsoDateTimeConverter,
}


# ==========================================
# Converter Registry
# ==========================================


class ConverterRegistry:
    """
    Process-wide cache from converter tag to converter instance.

    Tags are resolved through registered factories; a converter class that
    was never registered may be used as its own tag and is instantiated with
    no arguments. Each tag is instantiated at most once.
    """

    def __init__(self) -> None:
        self._factories: Dict[Hashable, ConverterFactory] = dict(BUILTIN_CONVERTERS)
        self._instances: Dict[Hashable, Converter] = {}
        self._lock = threading.Lock()

    def register(self, tag: Hashable, factory: ConverterFactory) -> None:
        """
        Register a factory for ``tag``.

        Raises:
            ConverterRegistryError: If ``tag`` already has an instantiated converter
        """
        with self._lock:
            if tag in self._instances:
                raise ConverterRegistryError(
                    f"converter '{tag}' is already in use and cannot be replaced"
                )
            self._factories[tag] = factory

    def get(self, tag: Hashable) -> Converter:
        """
        Return the shared converter for ``tag``, creating it on first use.

        Raises:
            ConverterRegistryError: If no factory is known for ``tag``
        """
        with self._lock:
            converter = self._instances.get(tag)
            if converter is not None:
                return converter

            factory: Optional[ConverterFactory] = self._factories.get(tag)
            if factory is None:
                if not isinstance(tag, type):
                    raise ConverterRegistryError(f"unknown converter '{tag}'")
                factory = tag
            try:
                converter = factory()
            except Exception as e:
                raise ConverterRegistryError(
                    f"failed to create converter '{tag}'", e
                ) from e
            self._instances[tag] = converter
            return converter

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)

    def __contains__(self, tag: Hashable) -> bool:
        with self._lock:
            return tag in self._instances
