"""Database initialization command."""

import click

from autogeorge.cli.commands.common import load_config
from autogeorge.database.connection import init_database


@click.command("init-db")
def init_db() -> None:
    """Create the database schema (safe to run on an existing database)."""
    config = load_config()
    db = init_database(config.db_path)
    try:
        tables = [
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        ]
    finally:
        db.close()

    click.echo(f"Database ready: {config.db_path}")
    click.echo(f"Tables: {', '.join(tables)}")
