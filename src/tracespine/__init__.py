"""
trace-spine - deterministic trace playback.

Replays the recorded steps of a workflow run over time and publishes
immutable progress snapshots for renderers to highlight nodes and edges.
"""

__version__ = "0.1.0"

from tracespine.playback import (  # noqa: E402
    EdgeIndex,
    ExecutionProgress,
    FlowEdge,
    ManualTimerBackend,
    NodeExecutionState,
    PlaybackScheduler,
    TraceStep,
    load_trace,
)

__all__ = [
    "__version__",
    "EdgeIndex",
    "ExecutionProgress",
    "FlowEdge",
    "ManualTimerBackend",
    "NodeExecutionState",
    "PlaybackScheduler",
    "TraceStep",
    "load_trace",
]
