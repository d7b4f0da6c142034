"""Tests for tracespine.core.errors module."""

import pytest

from tracespine.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    PlaybackError,
    SpineError,
    TraceLoadError,
    TraceValidationError,
    categorize_error,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.run_id is None
        assert ctx.path is None
        assert ctx.metadata == {}

    def test_to_dict_includes_set_fields(self):
        """to_dict includes only non-None fields, metadata flattened."""
        ctx = ErrorContext(run_id="run-1", step_index=0, metadata={"key": "value"})
        d = ctx.to_dict()
        assert d == {"run_id": "run-1", "step_index": 0, "key": "value"}


class TestSpineError:
    """Test the base error."""

    def test_defaults(self):
        error = SpineError("boom")
        assert str(error) == "boom"
        assert error.message == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.cause is None

    def test_explicit_category(self):
        assert SpineError("x", category=ErrorCategory.CONFIG).category == ErrorCategory.CONFIG

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        error = SpineError("wrapped", cause=cause)
        assert error.__cause__ is cause

    def test_with_context_sets_known_fields_and_metadata(self):
        error = TraceLoadError("Failed").with_context(path="trace.json", attempt=2)

        assert isinstance(error, TraceLoadError)
        assert error.context.path == "trace.json"
        assert error.context.metadata == {"attempt": 2}

    def test_to_dict(self):
        error = TraceLoadError("Failed", cause=OSError("gone")).with_context(path="t.json")
        d = error.to_dict()

        assert d["error_type"] == "TraceLoadError"
        assert d["message"] == "Failed"
        assert d["category"] == "PARSE"
        assert d["context"] == {"path": "t.json"}
        assert d["cause"] == "gone"

    def test_repr(self):
        assert repr(TraceValidationError("nope")) == "TraceValidationError('nope', category=VALIDATION)"


class TestHierarchy:
    """Test subclass categories and inheritance."""

    @pytest.mark.parametrize("cls, category", [
        (ConfigError, ErrorCategory.CONFIG),
        (PlaybackError, ErrorCategory.PLAYBACK),
        (TraceLoadError, ErrorCategory.PARSE),
        (TraceValidationError, ErrorCategory.VALIDATION),
    ])
    def test_default_categories(self, cls, category):
        assert cls("x").category == category

    def test_validation_error_is_a_load_error(self):
        assert issubclass(TraceValidationError, TraceLoadError)
        assert issubclass(TraceLoadError, PlaybackError)

    def test_invalid_config_error(self):
        error = InvalidConfigError("step_interval_ms", -5)

        assert isinstance(error, ConfigError)
        assert error.key == "step_interval_ms"
        assert error.value == -5
        assert "step_interval_ms" in error.message
        assert "-5" in error.message

    def test_invalid_config_error_custom_message(self):
        assert InvalidConfigError("k", 1, "custom").message == "custom"


class TestCategorizeError:
    def test_spine_error(self):
        assert categorize_error(TraceLoadError("x")) == ErrorCategory.PARSE

    def test_value_error(self):
        assert categorize_error(ValueError("x")) == ErrorCategory.VALIDATION

    def test_other(self):
        assert categorize_error(RuntimeError("x")) == ErrorCategory.UNKNOWN
