"""Helpers shared by CLI commands."""

import click

from autogeorge.core.config import Config
from autogeorge.utils.logging import setup_logging


def load_config(configure_logging: bool = True) -> Config:
    """Load configuration from the environment or abort the command."""
    try:
        config = Config()  # type: ignore
        config.validate_paths()
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        click.echo("Please ensure .env file exists with required settings.", err=True)
        raise click.Abort()

    if configure_logging:
        setup_logging(
            log_level=config.log_level,
            log_format=config.log_format,
            log_dir=config.log_dir,
        )
    return config
