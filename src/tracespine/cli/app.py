"""
Root Typer application for the trace-spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="trace-spine",
    help="trace-spine — deterministic playback of recorded workflow runs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("trace-spine")
        except PackageNotFoundError:
            from tracespine import __version__ as v
        typer.echo(f"trace-spine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """trace-spine CLI — replay and inspect execution traces."""


# ── Sub-command registration ─────────────────────────────────────────────

from tracespine.cli.config import app as config_app  # noqa: E402
from tracespine.cli.replay import inspect, replay  # noqa: E402

app.command("replay")(replay)
app.command("inspect")(inspect)
app.add_typer(config_app, name="config", help="Configuration inspection")


if __name__ == "__main__":
    app()
