"""Playback settings for trace-spine.

Defaults for the CLI and any integrating layer that wants environment-driven
configuration. The scheduler itself takes explicit arguments; nothing in
``tracespine.playback`` reads the environment.

Fields
──────
step_interval_ms : Fixed per-step duration when no duration function applies
auto_start       : Begin playback as soon as a scheduler is built
duration_source  : ``fixed`` (step_interval_ms) or ``recorded`` (step durations)
duration_scale   : Multiplier applied to recorded step durations
log_level        : structlog log level
log_json         : JSON log output (None = auto-detect from the terminal)

Examples:
    >>> import os
    >>> os.environ["TRACESPINE_STEP_INTERVAL_MS"] = "250"
    >>> clear_settings_cache()
    >>> get_settings().step_interval_ms
    250.0
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PlaybackSettings(BaseSettings):
    """Environment-driven playback defaults (prefix ``TRACESPINE_``)."""

    model_config = SettingsConfigDict(
        env_prefix="TRACESPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Playback ─────────────────────────────────────────────────
    step_interval_ms: float = Field(default=1800.0, ge=0)
    auto_start: bool = True
    duration_source: Literal["fixed", "recorded"] = "fixed"
    duration_scale: float = Field(default=1.0, gt=0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v!r}")
        return level


_settings_cache: dict[str, PlaybackSettings] = {}


def get_settings(*, _force_reload: bool = False) -> PlaybackSettings:
    """Load, validate, and cache a :class:`PlaybackSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = PlaybackSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()
