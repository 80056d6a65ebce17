"""API server command."""

import click
import uvicorn

from autogeorge.api.app import create_app
from autogeorge.cli.commands.common import load_config


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on")
def serve(host: str, port: int) -> None:
    """Serve the cron and admin HTTP API."""
    config = load_config()
    click.echo(f"Serving AutoGeorge API on http://{host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)
