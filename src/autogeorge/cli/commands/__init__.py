"""CLI commands for AutoGeorge."""

from autogeorge.cli.commands.db import init_db
from autogeorge.cli.commands.health import health
from autogeorge.cli.commands.run import run_all, run_stage
from autogeorge.cli.commands.serve import serve
from autogeorge.cli.commands.sources import sources

__all__ = ["init_db", "run_stage", "run_all", "serve", "health", "sources"]
