"""
CLI utility helpers: consoles, compiler construction, output.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from resolvespine.core.errors import ResolveSpineError
from resolvespine.core.settings import get_settings
from resolvespine.resolver import Compiler, new_compiler_with_default_internal_packages
from resolvespine.runtime.catalog import DirectoryCatalog

console = Console()
err_console = Console(stderr=True)


# ── Compiler helper ──────────────────────────────────────────────────────


def build_compiler(catalog_dir: Path | None = None) -> Compiler:
    """Compiler with built-in packages plus the directory catalog, if any.

    ``catalog_dir`` falls back to ``RESOLVESPINE_CATALOG_DIR`` when external
    packages are enabled.
    """
    settings = get_settings()
    if catalog_dir is None and settings.enable_external_packages:
        catalog_dir = settings.catalog_dir

    catalog = DirectoryCatalog(catalog_dir) if catalog_dir is not None else None
    compiler = new_compiler_with_default_internal_packages(
        catalog=catalog,
        resync_period=settings.resync_period_seconds,
    )
    if catalog is not None:
        try:
            compiler.manager.load_external_packages()
        except ResolveSpineError as e:
            fail(str(e), title="Catalog error")
    return compiler


# ── Output helpers ───────────────────────────────────────────────────────


def fail(message: str, *, title: str = "Error", code: int = 1) -> None:
    """Print an error to stderr and exit."""
    err_console.print(f"[bold red]{title}[/bold red]: {message}", markup=True, highlight=False, soft_wrap=True)
    raise typer.Exit(code=code)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)
