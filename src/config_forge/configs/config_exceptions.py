"""
Exceptions raised by the static configuration store.

None of these cross ``ConfigStore.load``; they surface from ``save``,
``regenerate``, schema discovery and environment overrides.
"""

from config_forge.exceptions import ConfigForgeError


class ConfigError(ConfigForgeError):
    """Base exception for configuration errors."""

    pass


class SchemaError(ConfigError):
    """Raised when a settings class cannot be described as a schema."""

    pass


class ConversionError(ConfigError):
    """Raised when a value cannot be converted to or from the document tree."""

    pass


class ConverterRegistryError(ConfigError):
    """Raised when a converter tag cannot be resolved to a converter."""

    pass


class EnvVarError(ConfigError):
    """Raised when an environment variable cannot be processed."""

    pass
