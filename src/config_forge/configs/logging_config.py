"""
Settings of the logging subsystem.

``LoggerConfig`` is itself a static settings class loaded through the
``ConfigStore``, which is why the store reports through a bootstrap console
log until ``ForgeContext.start_logging`` has opened the shared log file.

Persisted form (``config/logger.json``):
    {
      "logs_path": "logs",
      "log_level": "INFO"
    }
"""

from typing import Annotated, ClassVar, Final

from config_forge.configs.config_essentials import EnvMapping
from config_forge.configs.config_schema import UseConverter
from config_forge.log.log_levels import LogLevel

DEFAULT_LOGS_PATH: Final[str] = "logs"
DEFAULT_LOG_LEVEL: Final[LogLevel] = LogLevel.INFO


class LoggerConfig:
    """
    Configuration of the shared log file.

    Attributes:
        logs_path: Directory holding the current and rotated log files
        log_level: Minimum level echoed to the console; every level is
            always written to the file
    """

    FILE_SOURCE: ClassVar[str] = "config/logger.json"

    # Environment variable mapping for configuration overrides
    ENV_VARS: ClassVar[EnvMapping] = {
        "CONFIG_FORGE_LOGS_PATH": ("logs_path", str),
        "CONFIG_FORGE_LOG_LEVEL": ("log_level", LogLevel),
    }

    logs_path: str = DEFAULT_LOGS_PATH
    log_level: Annotated[LogLevel, UseConverter("enum_name")] = DEFAULT_LOG_LEVEL

    @classmethod
    def set_defaults(cls) -> None:
        cls.logs_path = DEFAULT_LOGS_PATH
        cls.log_level = DEFAULT_LOG_LEVEL
