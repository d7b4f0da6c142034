"""Playback data model: trace steps, flow edges and progress snapshots.

``TraceStep`` and ``FlowEdge`` are read-only inputs supplied by whatever
produced the trace. ``ExecutionProgress`` is the snapshot the scheduler
publishes: a frozen value that is replaced wholesale on every change and
never mutated after it has been handed out.

Architecture::

    TraceStep (node_id, status, ...)   FlowEdge (id, source, target)
          │                                   │
          └──────────────┬────────────────────┘
                         ▼
                 PlaybackScheduler
                         │  publishes
                         ▼
    ExecutionProgress
    ├── is_running / run_id
    ├── current_step_index / current_step
    ├── node_states      (read-only mapping, absent = idle)
    ├── completed_edges  (frozenset, grows within a run)
    ├── active_edge_id
    └── elapsed_ms
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any


class StepStatus(str, Enum):
    """Known step outcomes. The scheduler only distinguishes ``ERROR``."""

    SUCCESS = "success"
    ERROR = "error"
    RUNNING = "running"
    SKIPPED = "skipped"
    PENDING = "pending"


class NodeExecutionState(str, Enum):
    """Playback state of one graph node."""

    IDLE = "idle"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ERROR = "error"


# camelCase keys used by trace producers -> field names
_STEP_KEY_ALIASES = {
    "nodeId": "node_id",
    "nodeLabel": "node_label",
    "nodeType": "node_type",
    "startedAt": "started_at",
    "duration": "duration_ms",
}


@dataclass(frozen=True)
class TraceStep:
    """One replayed unit of execution, bound to a graph node.

    Attributes:
        node_id: Node this step executes.
        status: Terminal outcome (``success``, ``error``, ...).
        id: Step identifier from the trace, if any.
        node_label: Human-readable node label.
        node_type: Node kind (trigger, model, tool, ...).
        started_at: ISO timestamp recorded for the step.
        duration_ms: Recorded duration in milliseconds.
        input: Recorded step input summary.
        output: Recorded step output summary.
        metadata: Any extra fields carried by the trace.
    """

    node_id: str
    status: str = StepStatus.SUCCESS.value
    id: str = ""
    node_label: str = ""
    node_type: str = ""
    started_at: str | None = None
    duration_ms: float | None = None
    input: str | None = None
    output: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.status, Enum):
            object.__setattr__(self, "status", self.status.value)

    @property
    def is_error(self) -> bool:
        """True when the step ended in error."""
        return self.status == StepStatus.ERROR.value

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""
        d: dict[str, Any] = {"node_id": self.node_id, "status": self.status}
        for key in ("id", "node_label", "node_type"):
            value = getattr(self, key)
            if value:
                d[key] = value
        for key in ("started_at", "duration_ms", "input", "output"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        if self.metadata:
            d["metadata"] = dict(self.metadata)
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TraceStep:
        """Deserialize from a dict using either camelCase or snake_case keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = dict(data.get("metadata") or {})
        for key, value in data.items():
            if key == "metadata":
                continue
            name = _STEP_KEY_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value
        if extra:
            kwargs["metadata"] = extra
        return cls(**kwargs)


@dataclass(frozen=True)
class FlowEdge:
    """A directed edge between two graph nodes."""

    id: str
    source: str
    target: str
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.label is not None:
            d["label"] = self.label
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FlowEdge:
        return cls(
            id=data["id"],
            source=data["source"],
            target=data["target"],
            label=data.get("label"),
        )


@dataclass(frozen=True)
class ExecutionProgress:
    """Immutable snapshot of playback state at one instant.

    ``current_step_index`` is ``-1`` until the first step executes. A
    finished run keeps its ``node_states`` and ``completed_edges`` but clears
    ``current_step`` and ``active_edge_id``, so it can be told apart from a
    run that never started by ``current_step_index >= 0``.
    """

    is_running: bool = False
    run_id: str | None = None
    current_step_index: int = -1
    current_step: TraceStep | None = None
    node_states: Mapping[str, NodeExecutionState] = field(
        default_factory=lambda: MappingProxyType({})
    )
    completed_edges: frozenset[str] = frozenset()
    active_edge_id: str | None = None
    elapsed_ms: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.node_states, MappingProxyType):
            object.__setattr__(self, "node_states", MappingProxyType(dict(self.node_states)))
        if not isinstance(self.completed_edges, frozenset):
            object.__setattr__(self, "completed_edges", frozenset(self.completed_edges))

    @classmethod
    def initial(cls, run_id: str | None = None, *, is_running: bool = False) -> ExecutionProgress:
        """Fresh snapshot with nothing visited."""
        return cls(is_running=is_running, run_id=run_id)

    def replace(self, **changes: Any) -> ExecutionProgress:
        """Return a new snapshot with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def node_state(self, node_id: str) -> NodeExecutionState:
        """State of ``node_id``; unvisited nodes are idle."""
        return self.node_states.get(node_id, NodeExecutionState.IDLE)

    @property
    def executing_node(self) -> str | None:
        for node_id, state in self.node_states.items():
            if state is NodeExecutionState.EXECUTING:
                return node_id
        return None

    @property
    def is_finished(self) -> bool:
        """True once the run has played its last step."""
        return (
            not self.is_running
            and self.current_step_index >= 0
            and self.current_step is None
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "is_running": self.is_running,
            "run_id": self.run_id,
            "current_step_index": self.current_step_index,
            "current_step": self.current_step.to_dict() if self.current_step else None,
            "node_states": {k: v.value for k, v in self.node_states.items()},
            "completed_edges": sorted(self.completed_edges),
            "active_edge_id": self.active_edge_id,
            "elapsed_ms": self.elapsed_ms,
        }
