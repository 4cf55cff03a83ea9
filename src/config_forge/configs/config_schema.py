"""
Member descriptors for static settings classes.

A settings class ("schema") is a plain class whose public class-level
annotations are its settings; the class attributes hold the live values.
Each setting is described once by an immutable ``MemberDescriptor`` that
records its wire name, its semantic type, an optional converter tag and
whether it can be loaded (written to) and saved (read from).

Declaration markers:
    - ``ClassVar[...]`` annotations and ``_private`` names are not settings.
    - ``Annotated[T, Ignored]`` excludes a setting explicitly.
    - ``Annotated[T, WireName("key")]`` overrides the derived wire name.
    - ``Annotated[T, UseConverter(tag)]`` selects a custom converter.
    - ``static_property(T, fget, fset)`` declares a computed class-level
      setting; without ``fset`` it is save-only, without ``fget`` load-only.

Example:
    ```python
    class ServerSettings:
        FILE_SOURCE: ClassVar[str] = "config/server.json"

        host: str = "localhost"
        port: int = 8080
        mode: Annotated[Mode, UseConverter("enum_name")] = Mode.FAST

        @classmethod
        def set_defaults(cls) -> None:
            cls.host = "localhost"
            cls.port = 8080
            cls.mode = Mode.FAST
    ```
"""

import inspect
import threading
from dataclasses import dataclass, field
from typing import (
    Annotated,
    Any,
    Callable,
    ClassVar,
    Dict,
    Hashable,
    List,
    Optional,
    Tuple,
    get_args,
    get_origin,
    get_type_hints,
)

from config_forge.configs.config_exceptions import SchemaError
from config_forge.configs.naming_policy import DEFAULT_NAMING_POLICY, NamingPolicy

# ==========================================
# Declaration Markers
# ==========================================


@dataclass(frozen=True)
class WireName:
    """Override the on-disk key of a setting."""

    name: str


@dataclass(frozen=True)
class UseConverter:
    """Select a custom converter for a setting by registry tag."""

    tag: Hashable


class Ignored:
    """Marker excluding an annotated attribute from the schema."""


class StaticProperty:
    """
    Class-level computed setting.

    The getter receives the owning class; the setter receives the owning
    class and the new value. Reading the attribute on the class calls the
    getter. Assignment must go through the setter (``ConfigStore`` does this).

    Attributes:
        value_type: Semantic type used for conversion
        fget: Value provider, or None for a load-only setting
        fset: Update function, or None for a save-only setting
        wire_name: Optional wire name override
        converter: Optional custom converter tag
    """

    def __init__(
        self,
        value_type: Any,
        fget: Optional[Callable[[type], Any]] = None,
        fset: Optional[Callable[[type, Any], None]] = None,
        *,
        wire_name: Optional[str] = None,
        converter: Optional[Hashable] = None,
    ) -> None:
        self.value_type = value_type
        self.fget = fget
        self.fset = fset
        self.wire_name = wire_name
        self.converter = converter
        self.name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: Any, owner: Optional[type] = None) -> Any:
        if self.fget is None:
            raise AttributeError(f"setting '{self.name}' is load-only")
        return self.fget(owner if owner is not None else type(obj))

    def setter(self, fset: Callable[[type, Any], None]) -> "StaticProperty":
        """Return a copy of this property with ``fset`` as its update function."""
        return StaticProperty(
            self.value_type,
            self.fget,
            fset,
            wire_name=self.wire_name,
            converter=self.converter,
        )


def static_property(
    value_type: Any,
    fget: Optional[Callable[[type], Any]] = None,
    fset: Optional[Callable[[type, Any], None]] = None,
    *,
    wire_name: Optional[str] = None,
    converter: Optional[Hashable] = None,
) -> StaticProperty:
    """Declare a computed class-level setting."""
    return StaticProperty(
        value_type, fget, fset, wire_name=wire_name, converter=converter
    )


# ==========================================
# Member Descriptors
# ==========================================


@dataclass(frozen=True)
class MemberDescriptor:
    """
    Immutable description of one setting of a schema.

    Attributes:
        name: Python attribute name on the schema class
        wire_name: Key used in the persisted document
        value_type: Semantic type (annotation with markers stripped)
        converter: Custom converter tag, or None for default conversion
        readable: Whether a value provider exists (setting is saved)
        writable: Whether an update capability exists (setting is loaded)
    """

    name: str
    wire_name: str
    value_type: Any
    converter: Optional[Hashable] = None
    readable: bool = True
    writable: bool = True
    accessor: Optional[StaticProperty] = field(
        default=None, compare=False, repr=False
    )

    def get_value(self, schema: type) -> Any:
        """Read the current value of this setting from ``schema``."""
        if self.accessor is not None:
            return self.accessor.__get__(None, schema)
        return getattr(schema, self.name, None)

    def set_value(self, schema: type, value: Any) -> None:
        """Assign ``value`` to this setting on ``schema``."""
        if self.accessor is not None:
            if self.accessor.fset is None:
                raise AttributeError(f"setting '{self.name}' is save-only")
            self.accessor.fset(schema, value)
            return
        setattr(schema, self.name, value)


SchemaDescription = Tuple[MemberDescriptor, ...]

_description_cache: Dict[Tuple[type, NamingPolicy], SchemaDescription] = {}
_description_lock = threading.Lock()


def describe_schema(
    schema: type, naming_policy: NamingPolicy = DEFAULT_NAMING_POLICY
) -> SchemaDescription:
    """
    Return the member descriptors of ``schema``, discovering them once.

    Args:
        schema: Settings class to describe
        naming_policy: Policy deriving wire names from attribute names

    Returns:
        Tuple of descriptors in declaration order (base classes first)

    Raises:
        SchemaError: If annotations cannot be resolved or two settings share
            a wire name
    """
    key = (schema, naming_policy)
    with _description_lock:
        cached = _description_cache.get(key)
        if cached is None:
            cached = _discover_members(schema, naming_policy)
            _description_cache[key] = cached
        return cached


def _discover_members(
    schema: type, naming_policy: NamingPolicy
) -> SchemaDescription:
    if not inspect.isclass(schema):
        raise SchemaError(f"schema must be a class, got {schema!r}")

    try:
        hints = get_type_hints(schema, include_extras=True)
    except (NameError, TypeError) as e:
        raise SchemaError(
            f"cannot resolve annotations of {schema.__name__}", e
        ) from e

    members: List[MemberDescriptor] = []
    seen: set = set()
    for klass in reversed(schema.__mro__):
        if klass is object:
            continue

        for name in inspect.get_annotations(klass):
            if name in seen or name.startswith("_"):
                continue
            seen.add(name)
            descriptor = _describe_annotation(name, hints[name], naming_policy)
            if descriptor is not None:
                members.append(descriptor)

        for name, value in vars(klass).items():
            if name in seen or not isinstance(value, StaticProperty):
                continue
            seen.add(name)
            if name.startswith("_"):
                continue
            members.append(
                MemberDescriptor(
                    name=name,
                    wire_name=value.wire_name or naming_policy.convert_name(name),
                    value_type=value.value_type,
                    converter=value.converter,
                    readable=value.fget is not None,
                    writable=value.fset is not None,
                    accessor=value,
                )
            )

    # A subclass may shadow an annotated setting with a static property.
    members = [
        _resolve_shadowing(schema, member, naming_policy) for member in members
    ]

    wire_names: Dict[str, str] = {}
    for member in members:
        other = wire_names.setdefault(member.wire_name, member.name)
        if other != member.name:
            raise SchemaError(
                f"settings '{other}' and '{member.name}' of {schema.__name__} "
                f"share the wire name '{member.wire_name}'"
            )
    return tuple(members)


def _describe_annotation(
    name: str, hint: Any, naming_policy: NamingPolicy
) -> Optional[MemberDescriptor]:
    if hint is ClassVar or get_origin(hint) is ClassVar:
        return None

    wire_name: Optional[str] = None
    converter: Optional[Hashable] = None
    value_type = hint
    if get_origin(hint) is Annotated:
        value_type, *metadata = get_args(hint)
        for meta in metadata:
            if meta is Ignored or isinstance(meta, Ignored):
                return None
            if isinstance(meta, WireName):
                wire_name = meta.name
            elif isinstance(meta, UseConverter):
                converter = meta.tag
        if get_origin(value_type) is ClassVar:
            return None

    return MemberDescriptor(
        name=name,
        wire_name=wire_name or naming_policy.convert_name(name),
        value_type=value_type,
        converter=converter,
    )


def _resolve_shadowing(
    schema: type, member: MemberDescriptor, naming_policy: NamingPolicy
) -> MemberDescriptor:
    if member.accessor is not None:
        return member
    attr = inspect.getattr_static(schema, member.name, None)
    if not isinstance(attr, StaticProperty):
        return member
    return MemberDescriptor(
        name=member.name,
        wire_name=attr.wire_name or member.wire_name,
        value_type=attr.value_type,
        converter=attr.converter or member.converter,
        readable=attr.fget is not None,
        writable=attr.fset is not None,
        accessor=attr,
    )
