"""
CLI: ``resolve-spine compile`` - compile a document and resolve its calls.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer

from resolvespine.cli.utils import build_compiler, fail
from resolvespine.core.context import CallContext
from resolvespine.core.errors import CompileError, ResolutionError, ResolveSpineError
from resolvespine.core.settings import get_settings
from resolvespine.document.printer import OutputFormat, print_document
from resolvespine.resolver import DISABLE_RESOLVE_PROVIDER_FUNCTIONS


def compile_command(
    file: str = typer.Argument(..., help="Source file, or - for stdin"),
    path: str | None = typer.Option(None, "--path", "-p", help="Print only the sub-tree at this path"),
    fmt: OutputFormat = typer.Option(OutputFormat.JSON, "--format", "-f", help="Output format"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", min=0, help="Resolve deadline in seconds"),
    no_resolve: bool = typer.Option(False, "--no-resolve", help="Compile only, leave provider calls pending"),
    catalog_dir: Path | None = typer.Option(None, "--catalog-dir", help="Directory catalog of external packages"),
) -> None:
    """Compile FILE, resolve provider calls and print the result."""
    if file == "-":
        text = sys.stdin.read()
    else:
        source = Path(file)
        if not source.is_file():
            fail(f"{file} does not exist", title="Usage error", code=2)
        text = source.read_text(encoding="utf-8")

    ctx = CallContext.background()
    timeout = timeout if timeout is not None else get_settings().default_resolve_timeout_seconds
    if timeout is not None:
        ctx = ctx.with_timeout(timeout)

    compiler = build_compiler(catalog_dir)
    options = [DISABLE_RESOLVE_PROVIDER_FUNCTIONS] if no_resolve else []
    try:
        document = compiler.compile_source(ctx, text, *options)
        output = print_document(document, fmt, path=path)
    except CompileError as e:
        fail(str(e), title="Compile error")
    except ResolutionError as e:
        fail(str(e), title="Resolve error")
    except ResolveSpineError as e:
        fail(str(e))

    typer.echo(output, nl=not output.endswith("\n"))
