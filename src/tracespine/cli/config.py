"""
CLI: ``trace-spine config`` — configuration inspection.
"""

from __future__ import annotations

import typer

from tracespine.cli.utils import console, load_settings

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show the effective playback settings."""
    settings = load_settings()

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            typer.echo(f"TRACESPINE_{key.upper()}={'' if value is None else value}")
        return

    from rich.table import Table

    table = Table(title="Playback settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, "auto" if value is None else str(value))
    console.print(table)
