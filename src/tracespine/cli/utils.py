"""
CLI utility helpers — output formatting and error reporting.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tracespine.core.errors import SpineError
from tracespine.core.settings import PlaybackSettings, get_settings
from tracespine.playback.models import ExecutionProgress, NodeExecutionState

console = Console()
err_console = Console(stderr=True)

_STATE_STYLES = {
    NodeExecutionState.IDLE: "dim",
    NodeExecutionState.EXECUTING: "bold yellow",
    NodeExecutionState.COMPLETED: "green",
    NodeExecutionState.ERROR: "bold red",
}


def fail(error: SpineError) -> NoReturn:
    """Report a ``SpineError`` and exit with code 1."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    context = error.context.to_dict()
    for k, v in context.items():
        err_console.print(f"  [cyan]{k}[/cyan]: {v}")
    raise typer.Exit(code=1)


def load_settings() -> PlaybackSettings:
    """Load playback settings, exiting with code 1 if the environment is invalid."""
    try:
        return get_settings()
    except ValidationError as e:
        console.print(f"[bold red]Invalid configuration[/bold red]: {escape(str(e))}")
        raise typer.Exit(code=1) from e


def echo_json(payload: Any) -> None:
    """Write one compact JSON document per line."""
    typer.echo(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


def format_progress(progress: ExecutionProgress, total_steps: int) -> str:
    """One-line rich markup summary of a snapshot."""
    if progress.current_step_index < 0:
        if progress.is_running:
            return f"[dim]run {progress.run_id} starting ({total_steps} steps)[/dim]"
        return "[dim]idle[/dim]"

    if progress.is_finished:
        errors = sum(1 for s in progress.node_states.values() if s is NodeExecutionState.ERROR)
        return (
            f"[bold]finished[/bold] {progress.current_step_index + 1}/{total_steps} steps, "
            f"{len(progress.completed_edges)} edges, {errors} error node(s), "
            f"{progress.elapsed_ms:.0f} ms"
        )

    step = progress.current_step
    position = f"[{progress.current_step_index + 1}/{total_steps}]"
    if step is None or not progress.is_running:
        return f"{position} [yellow]stopped[/yellow]"

    label = f"{step.node_label} ({step.node_id})" if step.node_label else step.node_id
    edge = f" via [magenta]{progress.active_edge_id}[/magenta]" if progress.active_edge_id else ""
    status = "[red]error[/red]" if step.is_error else step.status
    return f"{position} [bold yellow]{label}[/bold yellow] {status}{edge}  [dim]{progress.elapsed_ms:.0f} ms[/dim]"


def print_node_states(progress: ExecutionProgress, *, title: str = "Nodes") -> None:
    """Render the final node states as a table."""
    if not progress.node_states:
        console.print("[dim]No nodes visited.[/dim]")
        return
    table = Table(title=title, show_lines=False, pad_edge=False)
    table.add_column("node")
    table.add_column("state")
    for node_id, state in progress.node_states.items():
        style = _STATE_STYLES.get(state, "")
        table.add_row(node_id, f"[{style}]{state.value}[/{style}]" if style else state.value)
    console.print(table)
