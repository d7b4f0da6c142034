"""
CLI: ``trace-spine replay`` / ``trace-spine inspect`` — play back trace files.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import typer
from rich.table import Table

from tracespine.cli.utils import (
    console,
    echo_json,
    fail,
    format_progress,
    load_settings,
    print_dict,
    print_node_states,
)
from tracespine.core.errors import SpineError
from tracespine.core.logging import LogContext, configure_logging
from tracespine.playback.durations import DurationFn, recorded_duration
from tracespine.playback.models import ExecutionProgress
from tracespine.playback.scheduler import PlaybackScheduler, play
from tracespine.playback.trace_io import Trace, load_trace


def _load(trace_path: Path) -> Trace:
    try:
        return load_trace(trace_path)
    except SpineError as e:
        fail(e)


async def _replay_live(
    trace: Trace,
    on_progress: Callable[[ExecutionProgress], None],
    *,
    step_interval_ms: float,
    get_step_duration: DurationFn | None,
    auto_start: bool = False,
) -> ExecutionProgress:
    """Play ``trace`` in real time on the running loop until it finishes.

    With ``auto_start`` the scheduler arms its own first step; otherwise
    playback begins with an explicit ``start()``.
    """
    done = asyncio.Event()

    def _listener(progress: ExecutionProgress) -> None:
        try:
            on_progress(progress)
        finally:
            if not progress.is_running:
                done.set()

    with PlaybackScheduler(
        trace.steps,
        trace.edges,
        trace.run_id,
        auto_start=auto_start,
        step_interval_ms=step_interval_ms,
        get_step_duration=get_step_duration,
    ) as scheduler:
        scheduler.subscribe(_listener)
        # an auto-started run has step 0 armed already; empty traces never auto-start
        if not scheduler.is_running:
            scheduler.start()
        await done.wait()
        return scheduler.progress


def replay(
    trace_path: Path = typer.Argument(..., help="Trace file (.json, .yaml, .yml)"),
    interval_ms: float | None = typer.Option(
        None, "--interval-ms", "-i", min=0, help="Fixed per-step duration in milliseconds"
    ),
    recorded: bool | None = typer.Option(
        None, "--recorded/--fixed", help="Use each step's recorded duration"
    ),
    scale: float | None = typer.Option(
        None, "--scale", "-s", min=0, help="Multiplier for recorded durations"
    ),
    instant: bool = typer.Option(False, "--instant", help="Use a virtual clock; do not wait"),
    json_out: bool = typer.Option(False, "--json", help="One JSON snapshot per line"),
) -> None:
    """Replay a trace, printing every progress snapshot."""
    settings = load_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    trace = _load(trace_path)
    step_interval_ms = settings.step_interval_ms if interval_ms is None else interval_ms
    use_recorded = settings.duration_source == "recorded" if recorded is None else recorded
    duration_fn = (
        recorded_duration(
            scale=settings.duration_scale if scale is None else scale,
            fallback_ms=step_interval_ms,
        )
        if use_recorded
        else None
    )

    total = len(trace.steps)

    def _render(progress: ExecutionProgress) -> None:
        if json_out:
            echo_json(progress.to_dict())
        else:
            console.print(format_progress(progress, total))

    with LogContext(run_id=trace.run_id):
        if instant:
            snapshots = play(
                trace.steps,
                trace.edges,
                trace.run_id,
                step_interval_ms=step_interval_ms,
                get_step_duration=duration_fn,
            )
            for snapshot in snapshots:
                _render(snapshot)
            final = snapshots[-1]
        else:
            final = asyncio.run(
                _replay_live(
                    trace,
                    _render,
                    step_interval_ms=step_interval_ms,
                    get_step_duration=duration_fn,
                    auto_start=settings.auto_start,
                )
            )

    if not json_out:
        print_node_states(final, title=f"Run {trace.run_id}")


def inspect(
    trace_path: Path = typer.Argument(..., help="Trace file (.json, .yaml, .yml)"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Summarise a trace and list step transitions with no matching edge."""
    trace = _load(trace_path)
    missing = trace.unmatched_transitions()
    summary = {
        "run_id": trace.run_id,
        "steps": len(trace.steps),
        "edges": len(trace.edges),
        "nodes": len({s.node_id for s in trace.steps}),
        "error_steps": trace.error_steps,
        "unmatched_transitions": len(missing),
    }

    if json_out:
        summary["unmatched"] = [
            {"step_index": i, "source": source, "target": target} for i, source, target in missing
        ]
        echo_json(summary)
        return

    print_dict(summary, title=f"Trace: {trace_path.name}")
    if missing:
        table = Table(title="Transitions without an edge", pad_edge=False)
        table.add_column("step")
        table.add_column("source")
        table.add_column("target")
        for i, source, target in missing:
            table.add_row(str(i), source, target)
        console.print(table)
