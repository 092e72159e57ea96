"""
CLI: ``resolve-spine serve`` - start the compile server.
"""

from __future__ import annotations

import typer
import uvicorn

from resolvespine.cli.utils import console
from resolvespine.core.settings import get_settings


def serve_command(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the resolve-spine compile server."""
    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    console.print(f"[bold green]Starting resolve-spine[/bold green] on {host}:{port}")
    uvicorn.run(
        "resolvespine.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )
