"""Tests for EdgeIndex and the duration helpers."""

from __future__ import annotations

import math

import pytest

from tracespine.playback.durations import clamp_duration, fixed_interval, recorded_duration
from tracespine.playback.edges import EdgeIndex
from tracespine.playback.models import FlowEdge, TraceStep


class TestEdgeIndex:
    def test_find(self):
        index = EdgeIndex([FlowEdge("e1", "a", "b"), FlowEdge("e2", "b", "c")])
        assert index.find("a", "b") == "e1"
        assert index.find("b", "c") == "e2"

    def test_direction_matters(self):
        index = EdgeIndex([FlowEdge("e1", "a", "b")])
        assert index.find("b", "a") is None

    def test_unknown_pair(self):
        assert EdgeIndex().find("a", "b") is None

    def test_first_edge_wins_for_duplicate_pairs(self):
        index = EdgeIndex([
            FlowEdge("first", "a", "b"),
            FlowEdge("second", "a", "b"),
        ])
        assert index.find("a", "b") == "first"
        assert len(index) == 2

    def test_accepts_mappings(self):
        index = EdgeIndex([{"id": "e1", "source": "a", "target": "b", "label": "ok"}])
        assert index.find("a", "b") == "e1"
        assert list(index)[0].label == "ok"


class TestClampDuration:
    @pytest.mark.parametrize("value, expected", [
        (100, 100.0),
        (0, 0.0),
        (12.5, 12.5),
        ("250", 250.0),
        (-1, 0.0),
        (math.nan, 0.0),
        (math.inf, 0.0),
        (-math.inf, 0.0),
        (None, 0.0),
        ("soon", 0.0),
    ])
    def test_clamp(self, value, expected):
        assert clamp_duration(value) == expected


class TestDurationFunctions:
    def test_fixed_interval(self):
        fn = fixed_interval(250)
        assert fn(TraceStep("a"), 0) == 250
        assert fn(TraceStep("b"), 7) == 250

    def test_fixed_interval_clamps(self):
        assert fixed_interval(-3)(TraceStep("a"), 0) == 0

    def test_recorded_duration_uses_step_duration(self):
        fn = recorded_duration()
        assert fn(TraceStep("a", duration_ms=820), 0) == 820

    def test_recorded_duration_scale_and_bounds(self):
        fn = recorded_duration(scale=0.5, minimum_ms=10, maximum_ms=300)
        assert fn(TraceStep("a", duration_ms=820), 0) == 300
        assert fn(TraceStep("a", duration_ms=2), 0) == 10
        assert fn(TraceStep("a", duration_ms=100), 0) == 50

    def test_recorded_duration_fallback(self):
        fn = recorded_duration(scale=10, fallback_ms=40)
        assert fn(TraceStep("a"), 0) == 40
