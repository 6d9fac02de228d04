"""Quill CLI — run the server, create tables, check a running instance.

Usage:
    quill serve --port 3000 --reload     # Run the API under uvicorn
    quill init-db                        # Create tables on QUILL_DATABASE_URL
    quill health                         # GET /health on a running server
"""

from __future__ import annotations

import asyncio
import json
import os
import sys

import click
import httpx

from quill import __version__

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("QUILL_API_URL", DEFAULT_API_URL).rstrip("/")


@click.group()
@click.version_option(version=__version__, prog_name="quill")
def main():
    """Quill — blog platform API."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: QUILL_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: QUILL_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API server."""
    import uvicorn

    from quill.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "quill.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,  # structlog owns logging
    )


@main.command("init-db")
def init_db():
    """Create all tables (use Alembic migrations for upgrades)."""
    from quill.config import get_settings
    from quill.db.engine import Database

    async def _create():
        db = Database.from_settings(get_settings())
        try:
            await db.create_all()
        finally:
            await db.dispose()

    asyncio.run(_create())
    click.secho("Tables created.", fg="green")


@main.command()
def health():
    """Check a running server's /health endpoint."""
    try:
        r = httpx.get(f"{_api_url()}/health", timeout=10.0)
    except httpx.HTTPError as e:
        click.secho(f"Cannot reach {_api_url()}: {e}", fg="red", err=True)
        sys.exit(1)

    data = r.json()
    color = "green" if data.get("status") == "healthy" else "yellow"
    click.secho(json.dumps(data, indent=2), fg=color)
    if data.get("status") != "healthy":
        sys.exit(1)


if __name__ == "__main__":
    main()
