"""
trace-spine core primitives: errors, logging, settings.
"""

from tracespine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    PlaybackError,
    SpineError,
    TraceLoadError,
    TraceValidationError,
)
from tracespine.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "SpineError",
    "ConfigError",
    "InvalidConfigError",
    "PlaybackError",
    "TraceLoadError",
    "TraceValidationError",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
]
