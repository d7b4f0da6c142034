"""
Structured error types for trace-spine.

A small hierarchy of typed errors with metadata for reporting and root
cause analysis. The playback scheduler itself never raises to its caller;
these errors cover the edges around it: trace files that cannot be read,
settings that do not validate, and options a caller got wrong.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       SpineError                             │
        │  (category, context, cause)                                  │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigError          PlaybackError                          │
        │  (CONFIG)             (PLAYBACK)                             │
        │       │                    │                                 │
        │  InvalidConfigError   TraceLoadError (PARSE)                 │
        │                       TraceValidationError (VALIDATION)      │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = TraceLoadError("Trace file not found")
    >>> error.with_context(path="traces/run-001.json")
    TraceLoadError('Trace file not found', category=PARSE)
    >>> error.context.path
    'traces/run-001.json'

Usage:
    from tracespine.core.errors import TraceLoadError

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TraceLoadError("Invalid JSON", cause=e).with_context(path=str(path))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    CONFIG = "CONFIG"
    PARSE = "PARSE"
    VALIDATION = "VALIDATION"
    PLAYBACK = "PLAYBACK"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured context attached to an error.

    Attributes:
        run_id: Playback run identifier
        path: Trace file path being read
        step_index: Index of the offending step, if any
        metadata: Additional key-value pairs
    """

    run_id: str | None = None
    path: str | None = None
    step_index: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["run_id", "path", "step_index"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SpineError(Exception):
    """
    Base exception for all trace-spine errors.

    Subclasses set ``default_category`` to classify themselves.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TraceLoadError("Failed").with_context(path="trace.json")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(SpineError):
    """Configuration error. The caller must fix the configuration."""

    default_category = ErrorCategory.CONFIG


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# PLAYBACK ERRORS
# =============================================================================


class PlaybackError(SpineError):
    """Base class for errors around trace playback."""

    default_category = ErrorCategory.PLAYBACK


class TraceLoadError(PlaybackError):
    """A trace file could not be read or decoded."""

    default_category = ErrorCategory.PARSE


class TraceValidationError(TraceLoadError):
    """A trace document was decoded but does not match the trace schema."""

    default_category = ErrorCategory.VALIDATION


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, SpineError):
        return error.category
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SpineError",
    "ConfigError",
    "InvalidConfigError",
    "PlaybackError",
    "TraceLoadError",
    "TraceValidationError",
    "categorize_error",
]
