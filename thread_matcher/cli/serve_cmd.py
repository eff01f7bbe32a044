"""Serve mode: run the FastAPI thread API under uvicorn."""

import sys

import typer
import uvicorn

from thread_matcher.api import create_app
from thread_matcher.config import API_PORT, CONVERSATION_SOURCE

from .shared import console, logger


def serve(
    port: int = typer.Option(API_PORT, "--port", "-p", help="Port for the API server"),
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Bind host"),
) -> None:
    """Start the thread discovery/review API."""
    log = logger.bind(command="serve", port=port)
    log.info("serve.start", source=CONVERSATION_SOURCE)
    app = create_app()
    console.print(f"[green]Starting thread API on http://{host}:{port}[/green] (source: {CONVERSATION_SOURCE})")
    console.print("[dim]Endpoints: /threads/..., /config/matching, GET /health[/dim]")
    try:
        uvicorn.run(app, host=host, port=port, log_level="info", timeout_graceful_shutdown=15)
    except KeyboardInterrupt:
        console.print("\n[dim]Shutting down...[/dim]")
        sys.exit(0)
