"""
Trace playback — replay a recorded run step by step.

Modules:
    models     TraceStep, FlowEdge, ExecutionProgress snapshots
    edges      EdgeIndex for (source, target) lookup
    timers     Timer backends (asyncio, manual virtual clock)
    durations  Per-step duration functions
    scheduler  PlaybackScheduler
    trace_io   Loading trace documents (JSON/YAML)
"""

from tracespine.playback.durations import (
    DEFAULT_STEP_INTERVAL_MS,
    clamp_duration,
    fixed_interval,
    recorded_duration,
)
from tracespine.playback.edges import EdgeIndex
from tracespine.playback.models import (
    ExecutionProgress,
    FlowEdge,
    NodeExecutionState,
    StepStatus,
    TraceStep,
)
from tracespine.playback.scheduler import PlaybackScheduler, play
from tracespine.playback.timers import (
    AsyncioTimerBackend,
    ManualTimerBackend,
    TimerBackend,
    TimerHandle,
)
from tracespine.playback.trace_io import Trace, load_trace, parse_trace

__all__ = [
    # Models
    "TraceStep",
    "FlowEdge",
    "StepStatus",
    "NodeExecutionState",
    "ExecutionProgress",
    "EdgeIndex",
    # Scheduling
    "PlaybackScheduler",
    "play",
    "TimerBackend",
    "TimerHandle",
    "AsyncioTimerBackend",
    "ManualTimerBackend",
    # Durations
    "DEFAULT_STEP_INTERVAL_MS",
    "clamp_duration",
    "fixed_interval",
    "recorded_duration",
    # Trace files
    "Trace",
    "load_trace",
    "parse_trace",
]
