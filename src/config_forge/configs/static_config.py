"""
Self-healing store for static settings classes.

``ConfigStore`` loads the public class-level settings of a schema from a JSON
file, persists them back in canonical form, and regenerates the file from the
schema's ``set_defaults`` whenever a load cannot be trusted.

Load outcomes:
    - Missing file, zero-length file, ``null`` root, unparsable text, a
      conversion or assignment error, or a document with none of the
      schema's settings: regenerate.
    - Some settings absent: warn, keep current values for those, no
      regeneration.
    - All settings present: loaded.

``load`` never raises; every failure is reported through the store's
``LineLog`` and absorbed. ``save`` and ``regenerate`` raise normally.

Usage:
    ```python
    store = ConfigStore()
    store.load(ServerSettings, "config/server.json")
    ServerSettings.port = 9000
    store.save(ServerSettings, "config/server.json")
    ```
"""

import json
import os
import traceback
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from config_forge.configs.config_essentials import (
    ErrorCategory,
    JsonDict,
    JsonValue,
    PathLike,
    Result,
)
from config_forge.configs.config_exceptions import ConversionError, EnvVarError
from config_forge.configs.config_protocols import LineLog
from config_forge.configs.config_schema import MemberDescriptor, describe_schema
from config_forge.configs.converters import (
    Converter,
    ConverterRegistry,
    StructuredConverter,
)
from config_forge.configs.naming_policy import DEFAULT_NAMING_POLICY, NamingPolicy
from config_forge.log.console_log import ConsoleLog
from config_forge.log.log_levels import LogLevel

# Name of the zero-argument reset capability looked up on schemas
SET_DEFAULTS_METHOD = "set_defaults"

JSON_INDENT = 2


class LoadOutcome(Enum):
    """What ``ConfigStore.load`` did with a settings file."""

    LOADED = "loaded"
    PARTIAL_MATCH = "partial_match"
    REGENERATED_MISSING = "regenerated_missing"
    REGENERATED_EMPTY = "regenerated_empty"
    REGENERATED_PARSE_FAILURE = "regenerated_parse_failure"
    REGENERATED_CONVERSION_FAILURE = "regenerated_conversion_failure"
    REGENERATED_ZERO_MATCH = "regenerated_zero_match"
    NO_DEFAULTS_PROVIDER = "no_defaults_provider"

    @property
    def regenerated(self) -> bool:
        return self.name.startswith("REGENERATED_")


_OUTCOME_BY_CODE = {
    "MISSING_FILE": LoadOutcome.REGENERATED_MISSING,
    "EMPTY_DOCUMENT": LoadOutcome.REGENERATED_EMPTY,
    "NULL_DOCUMENT": LoadOutcome.REGENERATED_EMPTY,
    "READ_FAILURE": LoadOutcome.REGENERATED_PARSE_FAILURE,
    "PARSE_FAILURE": LoadOutcome.REGENERATED_PARSE_FAILURE,
}


# ==========================================
# Document Reading
# ==========================================


def strip_trailing_commas(text: str) -> str:
    """
    Remove commas that directly precede a closing brace or bracket.

    Commas inside string literals are left alone.

    Args:
        text: JSON text, possibly with trailing commas

    Returns:
        Text accepted by the standard ``json`` parser
    """
    out: List[str] = []
    pending_comma: Optional[int] = None
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            out.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char in "}]" and pending_comma is not None:
            del out[pending_comma]
            pending_comma = None
        elif not char.isspace():
            pending_comma = None

        if char == ",":
            pending_comma = len(out)
        elif char == '"':
            in_string = True
        out.append(char)
    return "".join(out)


def read_document(path: PathLike) -> Result[JsonValue]:
    """
    Read and parse the settings document at ``path``.

    Returns:
        Result with the parsed root value, or a failure coded
        ``MISSING_FILE``, ``EMPTY_DOCUMENT``, ``NULL_DOCUMENT``,
        ``READ_FAILURE`` or ``PARSE_FAILURE``
    """
    file_path = Path(path)
    if not file_path.is_file():
        return Result[JsonValue].failure(
            "MISSING_FILE",
            "file missing",
            context={"path": str(file_path)},
            category=ErrorCategory.RESOURCE,
        )

    try:
        if file_path.stat().st_size < 1:
            return Result[JsonValue].failure(
                "EMPTY_DOCUMENT",
                "file empty",
                context={"path": str(file_path)},
                category=ErrorCategory.RESOURCE,
            )
        text = file_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        return Result[JsonValue].failure(
            "READ_FAILURE",
            f"cannot read file: {e}",
            context={"path": str(file_path)},
            category=ErrorCategory.RESOURCE,
        )

    try:
        document = json.loads(strip_trailing_commas(text))
    except json.JSONDecodeError as e:
        return Result[JsonValue].failure(
            "PARSE_FAILURE",
            f"malformed document: {e}",
            context={"path": str(file_path)},
            category=ErrorCategory.VALIDATION,
        )

    if document is None:
        return Result[JsonValue].failure(
            "NULL_DOCUMENT",
            "file has null root object",
            context={"path": str(file_path)},
            category=ErrorCategory.VALIDATION,
        )
    return Result[JsonValue].success(document)


# ==========================================
# Store
# ==========================================


class ConfigStore:
    """
    Load, save and regenerate static settings classes.

    Attributes:
        converters: Shared registry resolving custom converter tags
        log: Where recovery actions are reported; replaced by the
            file-backed logger once logging has started
        naming_policy: Policy deriving wire names
    """

    def __init__(
        self,
        converters: Optional[ConverterRegistry] = None,
        log: Optional[LineLog] = None,
        naming_policy: NamingPolicy = DEFAULT_NAMING_POLICY,
    ) -> None:
        self.converters = converters if converters is not None else ConverterRegistry()
        self.log: LineLog = log if log is not None else ConsoleLog()
        self.naming_policy = naming_policy
        self.default_converter = StructuredConverter(naming_policy)

    # ---------------- load ----------------

    def load(self, schema: type, path: PathLike) -> LoadOutcome:
        """
        Load the settings of ``schema`` from ``path``, regenerating on failure.

        Never raises.

        Args:
            schema: Settings class to populate
            path: Settings file

        Returns:
            The LoadOutcome describing what happened
        """
        result = read_document(path)
        if result.error is not None:
            self.log.write_line(result.error.message)
            return self._recover(schema, path, _OUTCOME_BY_CODE[result.error.code])

        try:
            found, relevant = self._apply_document(schema, result.unwrap())
        except Exception:
            self.log.write_line(
                f"deserialization error:\n{traceback.format_exc()}", LogLevel.ERROR
            )
            return self._recover(
                schema, path, LoadOutcome.REGENERATED_CONVERSION_FAILURE
            )

        if relevant > 0:
            if found == 0:
                self.log.write_line("did not load any fields, assume file corruption")
                return self._recover(schema, path, LoadOutcome.REGENERATED_ZERO_MATCH)
            if found < relevant:
                self.log.write_line(
                    "Some fields did not get deserialized and retain their default "
                    f"value. Consider investigating {path}.",
                    LogLevel.WARN,
                )
                return LoadOutcome.PARTIAL_MATCH
        return LoadOutcome.LOADED

    def _apply_document(self, schema: type, document: JsonValue) -> Tuple[int, int]:
        if not isinstance(document, dict):
            raise ConversionError(
                f"document root must be an object, got {type(document).__name__}"
            )

        members = [m for m in self._describe(schema) if m.writable]
        staged: List[Tuple[MemberDescriptor, Any]] = []
        for member in members:
            if member.wire_name not in document:
                continue
            converter = self._converter_for(member)
            staged.append(
                (member, converter.decode(document[member.wire_name], member.value_type))
            )

        # Nothing is assigned until every present value has converted.
        previous = {
            member.name: member.get_value(schema)
            for member, _ in staged
            if member.readable
        }
        assigned: List[MemberDescriptor] = []
        try:
            for member, value in staged:
                member.set_value(schema, value)
                assigned.append(member)
        except Exception:
            # Undo the settings already assigned by this load.
            for member in reversed(assigned):
                if member.name in previous:
                    member.set_value(schema, previous[member.name])
            raise
        return len(staged), len(members)

    def _recover(self, schema: type, path: PathLike, outcome: LoadOutcome) -> LoadOutcome:
        try:
            if not self.regenerate(schema, path):
                return LoadOutcome.NO_DEFAULTS_PROVIDER
        except Exception:
            self.log.write_line(
                f"failed to regenerate {path}:\n{traceback.format_exc()}",
                LogLevel.ERROR,
            )
        return outcome

    # ---------------- regenerate ----------------

    def regenerate(self, schema: type, path: PathLike) -> bool:
        """
        Reset ``schema`` to its defaults and persist them to ``path``.

        Args:
            schema: Settings class to reset
            path: Settings file to write

        Returns:
            False if ``schema`` has no ``set_defaults``; its values are then
            left as they are

        Raises:
            OSError: If the file cannot be written
            ConfigError: If a default value cannot be converted
        """
        set_defaults = getattr(schema, SET_DEFAULTS_METHOD, None)
        if not callable(set_defaults):
            self.log.write_line(
                f"missing settings object, type {schema.__qualname__} is missing a "
                f"static method '{SET_DEFAULTS_METHOD}()', can't regenerate!",
                LogLevel.ERROR,
            )
            return False

        self.log.write_line("missing settings object, regenerating...")
        set_defaults()
        self.save(schema, path)
        self.log.write_line(f"defaults of {schema.__qualname__} written to {path}")
        return True

    # ---------------- save ----------------

    def save(self, schema: type, path: PathLike) -> None:
        """
        Write the readable settings of ``schema`` to ``path``.

        The destination directory is created if needed; the file is
        truncated and rewritten, pretty-printed.

        Raises:
            OSError: If the file cannot be written
            ConfigError: If a value cannot be converted
        """
        document = self.to_document(schema)
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(json.dumps(document, indent=JSON_INDENT, ensure_ascii=False))
            f.write("\n")

    def to_document(self, schema: type) -> JsonDict:
        """Return the canonical document for the current values of ``schema``."""
        document: JsonDict = {}
        for member in self._describe(schema):
            if not member.readable:
                continue
            converter = self._converter_for(member)
            document[member.wire_name] = converter.encode(
                member.get_value(schema), member.value_type
            )
        return document

    # ---------------- environment ----------------

    def apply_env_overrides(
        self, schema: type, environ: Optional[Mapping[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Override settings from environment variables named in ``schema.ENV_VARS``.

        ``ENV_VARS`` maps an environment variable to ``(attribute, type)``.
        Overrides are applied in memory only.

        Args:
            schema: Settings class to modify
            environ: Environment mapping, defaults to ``os.environ``

        Returns:
            Mapping of attribute name to the value applied

        Raises:
            EnvVarError: If a variable names an unknown or read-only setting,
                or its value cannot be converted
        """
        environ = os.environ if environ is None else environ
        env_vars = getattr(schema, "ENV_VARS", None) or {}
        members = {m.name: m for m in self._describe(schema)}

        applied: Dict[str, Any] = {}
        for env_var, (attr_name, value_type) in env_vars.items():
            if env_var not in environ:
                continue
            value = environ[env_var]

            member = members.get(attr_name)
            if member is None or not member.writable:
                raise EnvVarError(
                    f"Configuration attribute '{attr_name}' not found in "
                    f"{schema.__qualname__}"
                )
            try:
                typed_value = _convert_env_value(value, value_type)
            except (ValueError, TypeError, KeyError) as e:
                raise EnvVarError(
                    f"Invalid value '{value}' for {env_var}: {str(e)}", e
                ) from e

            member.set_value(schema, typed_value)
            applied[attr_name] = typed_value
            self.log.write_line(
                f"{schema.__qualname__}.{attr_name} overridden by {env_var}",
                LogLevel.VERBOSE,
            )
        return applied

    # ---------------- helpers ----------------

    def _describe(self, schema: type) -> Tuple[MemberDescriptor, ...]:
        return describe_schema(schema, self.naming_policy)

    def _converter_for(self, member: MemberDescriptor) -> Converter:
        if member.converter is None:
            return self.default_converter
        return self.converters.get(member.converter)


def _convert_env_value(value: str, value_type: Any) -> Any:
    if value_type is bool:
        return value.lower() in ("true", "yes", "1", "y")
    if isinstance(value_type, type) and issubclass(value_type, Enum):
        if value.upper() in value_type.__members__:
            return value_type[value.upper()]
        try:
            return value_type(value)
        except ValueError:
            return value_type(int(value))
    return value_type(value)
