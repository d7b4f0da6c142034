"""
Shared pytest fixtures and configuration for trace-spine tests.

This module provides:
- Location-based markers (unit / integration)
- Settings cache and logging context cleanup
- Sample traces: the linear chain A -> B -> C and a richer recorded run
- A manual (virtual clock) timer backend

Usage:
    Fixtures are auto-discovered by pytest; use them as function arguments.

    def test_something(linear_steps, linear_edges, timers):
        ...
"""

import os
import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure tracespine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tracespine.core.logging import clear_context
from tracespine.core.settings import clear_settings_cache
from tracespine.playback import FlowEdge, ManualTimerBackend, TraceStep


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "cli" in test_path.parts or "asyncio" in test_path.name:
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_fixture(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings, TRACESPINE_* env vars and logging config around each test."""
    for key in list(os.environ):
        if key.startswith("TRACESPINE_"):
            monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    clear_context()
    yield
    clear_settings_cache()
    clear_context()
    structlog.reset_defaults()


# =============================================================================
# Sample Trace Fixtures
# =============================================================================


@pytest.fixture
def timers() -> ManualTimerBackend:
    """Virtual-clock timer backend; nothing fires until advanced."""
    return ManualTimerBackend()


@pytest.fixture
def linear_steps() -> list[TraceStep]:
    """A(success) -> B(success) -> C(error)."""
    return [
        TraceStep("A", status="success"),
        TraceStep("B", status="success"),
        TraceStep("C", status="error"),
    ]


@pytest.fixture
def linear_edges() -> list[FlowEdge]:
    return [
        FlowEdge("e1", "A", "B"),
        FlowEdge("e2", "B", "C"),
    ]


@pytest.fixture
def recorded_trace_data() -> dict:
    """A recorded run in the camelCase shape trace producers emit."""
    return {
        "runId": "drun-001",
        "steps": [
            {"id": "dt-1", "nodeId": "n1", "nodeLabel": "Cron: Every Hour", "nodeType": "trigger",
             "status": "success", "startedAt": "2026-02-13T14:15:00Z", "duration": 2},
            {"id": "dt-2", "nodeId": "n2", "nodeLabel": "Input Validation", "nodeType": "security",
             "status": "success", "startedAt": "2026-02-13T14:15:00Z", "duration": 45},
            {"id": "dt-3", "nodeId": "n3", "nodeLabel": "Fetch Market Data", "nodeType": "tool",
             "status": "error", "startedAt": "2026-02-13T14:15:01Z", "duration": 820,
             "toolInfo": {"httpStatus": 429}},
            {"id": "dt-4", "nodeId": "n5", "nodeLabel": "Alert", "nodeType": "action",
             "status": "success", "startedAt": "2026-02-13T14:15:02Z", "duration": 12},
        ],
        "edges": [
            {"id": "e1-2", "source": "n1", "target": "n2"},
            {"id": "e2-3", "source": "n2", "target": "n3"},
            {"id": "e3-4", "source": "n3", "target": "n4"},
        ],
    }
