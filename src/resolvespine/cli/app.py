"""
Root Typer application for the resolve-spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from resolvespine import __version__
from resolvespine.core.logging import configure_logging

app = Typer(
    name="resolve-spine",
    help="resolve-spine: compile documents and resolve their provider calls.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"resolve-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", envvar="RESOLVESPINE_LOG_LEVEL", help="Log level"),
) -> None:
    """resolve-spine CLI: compile, inspect packages, serve."""
    configure_logging(level=log_level, json_format=False)


# ── Sub-command registration ─────────────────────────────────────────────

from resolvespine.cli.compile import compile_command  # noqa: E402
from resolvespine.cli.packages import app as packages_app  # noqa: E402
from resolvespine.cli.serve import serve_command  # noqa: E402

app.command("compile")(compile_command)
app.command("serve")(serve_command)
app.add_typer(packages_app, name="packages", help="Provider package inspection.")
