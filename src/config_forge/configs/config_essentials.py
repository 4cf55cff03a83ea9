"""
Configuration Essentials Module

This module holds the shared type vocabulary of the static configuration
store: the JSON document tree types, path and environment mapping aliases,
and the Result pattern used to carry document read failures without
exceptions.

Type Categories:
    - Json types: Primitives, dictionaries, and lists for serialization
    - Configuration types: Environment override mappings
    - Result types: Monadic error handling patterns

Error Handling:
    - Fine-grained error categorization (validation, resource, configuration)
    - Severity classification for appropriate handling strategies
    - Context preservation for diagnostic traceability
"""

import json
import traceback
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Tuple,
    TypeAlias,
    TypeVar,
    Union,
    cast,
)

# ==========================================
# Generic Type Variables
# ==========================================

# Generic type parameter for configuration value types
T = TypeVar("T")

# ==========================================
# Basic Type Definitions
# ==========================================

# JSON-related type definitions for configuration serialization
JsonPrimitive = Union[str, int, float, bool, None]
JsonDict = Dict[str, "JsonValue"]  # Forward reference for recursion
JsonList = List["JsonValue"]  # Forward reference for recursion
JsonValue: TypeAlias = Union[JsonDict, JsonList, JsonPrimitive]

# Type alias for path-like objects
PathLike: TypeAlias = Union[str, Path]

# Environment variable name -> (attribute name, target type)
EnvMapping: TypeAlias = Dict[str, Tuple[str, Callable[..., Any]]]

# ==========================================
# Result and Error Handling Types
# ==========================================


class ErrorCategory(Enum):
    """Categories of errors for systematic handling and reporting."""

    VALIDATION = auto()  # Input validation failures
    RESOURCE = auto()  # Resource availability issues
    UNEXPECTED = auto()  # Unexpected failures
    CONFIGURATION = auto()  # Configuration errors


class ErrorSeverity(Enum):
    """Severity levels for errors to guide handling strategies."""

    FATAL = auto()  # System cannot continue operation
    ERROR = auto()  # Operation failed completely
    WARNING = auto()  # Operation completed with issues
    INFO = auto()  # Operation completed with non-critical adjustments


@dataclass(frozen=True)
class Error:
    """
    Immutable error object with context for accurate diagnostics.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        category: Error category for classification
        severity: Error severity for handling strategy
        context: Dictionary of additional contextual information
        trace: Optional stack trace for debugging
    """

    message: str
    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    trace: Optional[str] = None

    @classmethod
    def create(
        cls,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        context: Optional[Dict[str, Any]] = None,
    ) -> "Error":
        """
        Factory method for creating errors with standardized formatting.

        Args:
            message: Human-readable error description
            code: Machine-readable error code
            category: Error category for classification
            severity: Error severity for handling strategy
            context: Optional dictionary of contextual information

        Returns:
            Fully initialized Error object
        """
        serializable_context: Dict[str, Any] = {}
        if context:
            for k, v in context.items():
                if isinstance(v, (str, int, float, bool, type(None))):
                    serializable_context[k] = v
                else:
                    try:
                        json.dumps({k: v})
                        serializable_context[k] = v
                    except TypeError:
                        serializable_context[k] = str(v)

        trace = traceback.format_exc()
        return cls(
            message=message,
            code=code,
            category=category,
            severity=severity,
            context=serializable_context,
            trace=None if trace.startswith("NoneType: None") else trace,
        )


@dataclass(frozen=True)
class Result(Generic[T]):
    """Monadic result type for functional error handling without exceptions.

    Encapsulates either a success value (`value`) or an error object (`error`).

    Attributes:
        value: The success value (present if `is_success` is True).
        error: The error object (present if `is_success` is False).
    """

    value: Optional[T] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        """Check if the result represents a successful operation."""
        return self.error is None

    @property
    def is_failure(self) -> bool:
        """Check if the result represents a failed operation."""
        return self.error is not None

    def unwrap(self) -> T:
        """Return the success value, raising ValueError if the result is a failure.

        Raises:
            ValueError: If the result contains an error.

        Returns:
            The success value of type T.
        """
        if not self.is_success:
            error_msg = "Cannot unwrap a failed result"
            if self.error:
                error_msg += f": {self.error.code} - {self.error.message}"
            raise ValueError(error_msg)
        return cast(T, self.value)

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        """Create a success Result."""
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> "Result[T]":
        """Create a failure Result using the Error factory."""
        error = Error.create(
            message=message,
            code=code,
            category=category,
            severity=severity,
            context=context,
        )
        return cls(error=error)


# ==========================================
# Module Exports
# ==========================================

__all__ = [
    # Basic Types
    "JsonPrimitive",
    "JsonDict",
    "JsonList",
    "JsonValue",
    "PathLike",
    "EnvMapping",
    # Error Handling
    "ErrorCategory",
    "ErrorSeverity",
    "Error",
    "Result",
    # Generics
    "T",
]
