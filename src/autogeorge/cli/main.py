"""Command-line interface for AutoGeorge."""

import click

from autogeorge.__version__ import __version__
from autogeorge.cli.commands import health, init_db, run_all, run_stage, serve, sources


@click.group()
@click.version_option(version=__version__, prog_name="autogeorge")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """AutoGeorge - automated news publishing for WordPress.

    Polls RSS feeds, writes articles with an LLM, finds featured images and
    publishes to WordPress, one cron stage at a time.
    """
    ctx.ensure_object(dict)


# Register commands
cli.add_command(init_db)
cli.add_command(run_stage)
cli.add_command(run_all)
cli.add_command(serve)
cli.add_command(health)
cli.add_command(sources)


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
