"""Per-step duration functions.

A duration function has the signature ``(step, index) -> milliseconds`` and
is passed to :class:`~tracespine.playback.scheduler.PlaybackScheduler` as
``get_step_duration``. Whatever it returns is run through
:func:`clamp_duration` before a timer is armed.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

from tracespine.playback.models import TraceStep

DurationFn = Callable[[TraceStep, int], float]

DEFAULT_STEP_INTERVAL_MS = 1800.0


def clamp_duration(value: Any) -> float:
    """Coerce ``value`` to a schedulable delay in milliseconds.

    Negative, non-finite and non-numeric values become ``0.0``.
    """
    try:
        ms = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(ms) or ms < 0:
        return 0.0
    return ms


def fixed_interval(ms: float) -> DurationFn:
    """Duration function that gives every step the same ``ms``."""
    interval = clamp_duration(ms)

    def _duration(step: TraceStep, index: int) -> float:
        return interval

    return _duration


def recorded_duration(
    scale: float = 1.0,
    minimum_ms: float = 0.0,
    maximum_ms: float | None = None,
    fallback_ms: float = DEFAULT_STEP_INTERVAL_MS,
) -> DurationFn:
    """Duration function that replays each step's recorded ``duration_ms``.

    Args:
        scale: Multiplier applied to the recorded duration (0.5 = twice as fast).
        minimum_ms: Lower bound after scaling.
        maximum_ms: Upper bound after scaling, if any.
        fallback_ms: Used for steps with no recorded duration.
    """

    def _duration(step: TraceStep, index: int) -> float:
        if step.duration_ms is None:
            ms = clamp_duration(fallback_ms)
        else:
            ms = clamp_duration(step.duration_ms) * scale
        ms = max(ms, minimum_ms)
        if maximum_ms is not None:
            ms = min(ms, maximum_ms)
        return clamp_duration(ms)

    return _duration
