"""
Common exceptions shared across Config Forge modules.

This module provides base exceptions used throughout the Config Forge system,
ensuring consistent error handling and avoiding circular imports.
"""

from typing import Optional

# Generic Exception Classes


class ConfigForgeError(Exception):
    """Base exception for all Config Forge errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        """
        Initialize with detailed error message and optional cause.

        Args:
            message: Error description with context
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.__cause__ = cause
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        """Provide detailed error message including cause if available."""
        error_msg = self.message
        if self.cause:
            error_msg += f" | Cause: {str(self.cause)}"
        return error_msg


class LoggingError(ConfigForgeError):
    """Base exception for logging operations."""

    pass


class LogRotationError(LoggingError):
    """
    Raised when the current log file cannot be rotated or opened.

    The shared log file is foundational infrastructure, so this error is
    allowed to abort process startup.
    """

    pass
