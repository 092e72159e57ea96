"""
CLI: ``resolve-spine packages`` - inspect registered provider packages.
"""

from __future__ import annotations

from pathlib import Path

import typer

from resolvespine.api.routers.packages import summarize
from resolvespine.cli.utils import build_compiler, print_json, print_table

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_packages(
    catalog_dir: Path | None = typer.Option(None, "--catalog-dir", help="Directory catalog of external packages"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List internal and external packages."""
    compiler = build_compiler(catalog_dir)
    rows = [summarize(pkg).model_dump() for pkg in compiler.manager.get_packages()]
    if as_json:
        print_json(rows)
        return
    for row in rows:
        row["definitions"] = ", ".join(row["definitions"])
    print_table(rows, title="Packages")
