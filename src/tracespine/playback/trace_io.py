"""Pydantic models for trace documents, plus file loading.

A trace document carries the ordered steps of one run and the edges of the
graph they walk. JSON and YAML are both accepted; the format is chosen by
file suffix (``.yaml`` / ``.yml`` → YAML, anything else → JSON).

Example YAML::

    run_id: drun-001
    steps:
      - nodeId: n1
        nodeLabel: "Cron: Every Hour"
        status: success
        duration: 2
      - nodeId: n2
        status: error
    edges:
      - {id: e1, source: n1, target: n2}

Usage::

    from tracespine.playback.trace_io import load_trace

    trace = load_trace("traces/drun-001.yaml")
    scheduler = PlaybackScheduler(trace.steps, trace.edges, trace.run_id)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from tracespine.core.errors import TraceLoadError, TraceValidationError
from tracespine.playback.edges import EdgeIndex
from tracespine.playback.models import FlowEdge, TraceStep

_YAML_SUFFIXES = {".yaml", ".yml"}


class TraceStepSpec(BaseModel):
    """One step entry of a trace document."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    node_id: str = Field(..., min_length=1, alias="nodeId")
    status: str = Field(default="success", min_length=1)
    id: str = ""
    node_label: str = Field(default="", alias="nodeLabel")
    node_type: str = Field(default="", alias="nodeType")
    started_at: str | None = Field(default=None, alias="startedAt")
    duration_ms: float | None = Field(default=None, alias="duration")
    input: str | None = None
    output: str | None = None

    def to_step(self) -> TraceStep:
        """Convert to the ``TraceStep`` dataclass, keeping unknown fields as metadata."""
        return TraceStep(
            node_id=self.node_id,
            status=self.status,
            id=self.id,
            node_label=self.node_label,
            node_type=self.node_type,
            started_at=self.started_at,
            duration_ms=self.duration_ms,
            input=self.input,
            output=self.output,
            metadata=dict(self.model_extra or {}),
        )


class TraceEdgeSpec(BaseModel):
    """One edge entry of a trace document."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    label: str | None = None

    def to_edge(self) -> FlowEdge:
        return FlowEdge(id=self.id, source=self.source, target=self.target, label=self.label)


class TraceSpec(BaseModel):
    """Top-level trace document."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    run_id: str | None = Field(default=None, alias="runId")
    steps: list[TraceStepSpec]
    edges: list[TraceEdgeSpec] = Field(default_factory=list)

    def to_trace(self, default_run_id: str | None = None) -> Trace:
        return Trace(
            run_id=self.run_id or default_run_id,
            steps=tuple(s.to_step() for s in self.steps),
            edges=tuple(e.to_edge() for e in self.edges),
        )


@dataclass(frozen=True)
class Trace:
    """A loaded trace: run id, ordered steps, graph edges."""

    run_id: str | None
    steps: tuple[TraceStep, ...]
    edges: tuple[FlowEdge, ...]

    @property
    def error_steps(self) -> list[int]:
        """Indices of steps that ended in error."""
        return [i for i, s in enumerate(self.steps) if s.is_error]

    def unmatched_transitions(self) -> list[tuple[int, str, str]]:
        """Consecutive step pairs with no connecting edge.

        Returns ``(index, source_node, target_node)`` where ``index`` is the
        position of the target step.
        """
        index = EdgeIndex(self.edges)
        missing = []
        for i in range(1, len(self.steps)):
            source, target = self.steps[i - 1].node_id, self.steps[i].node_id
            if index.find(source, target) is None:
                missing.append((i, source, target))
        return missing

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "steps": [s.to_dict() for s in self.steps],
            "edges": [e.to_dict() for e in self.edges],
        }


def parse_trace(data: Any, *, default_run_id: str | None = None) -> Trace:
    """Validate an already-decoded trace document.

    Raises:
        TraceValidationError: If ``data`` does not match the trace schema.
    """
    try:
        spec = TraceSpec.model_validate(data)
    except PydanticValidationError as e:
        raise TraceValidationError(
            f"Invalid trace document: {e.error_count()} validation error(s)", cause=e
        ) from e
    return spec.to_trace(default_run_id)


def load_trace(path: str | Path) -> Trace:
    """Load and validate a trace file.

    The run id defaults to the file stem when the document has none.

    Raises:
        TraceLoadError: If the file is missing or cannot be decoded.
        TraceValidationError: If the decoded document is not a valid trace.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TraceLoadError(f"Cannot read trace file: {e.strerror or e}", cause=e).with_context(
            path=str(path)
        ) from e

    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise TraceLoadError(f"Cannot decode trace file: {e}", cause=e).with_context(
            path=str(path)
        ) from e

    try:
        return parse_trace(data, default_run_id=path.stem)
    except TraceValidationError as e:
        e.with_context(path=str(path))
        raise
