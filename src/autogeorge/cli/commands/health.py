"""Health check command for system diagnostics."""

import sys

import click

from autogeorge.cli.commands.common import load_config
from autogeorge.core.enums import HealthStatus
from autogeorge.database.connection import DatabaseConnection
from autogeorge.services.health_service import HealthService
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

_MARKS = {
    HealthStatus.HEALTHY: "✓",
    HealthStatus.DEGRADED: "⚠",
    HealthStatus.UNHEALTHY: "✗",
}


@click.command()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show detailed health information",
)
def health(verbose: bool) -> None:
    """
    Check system health and display diagnostics.

    Runs the same checks as the health-monitor stage (database, core data,
    RSS sources and pipeline) without storing them. Exits with status 1
    when any service is unhealthy.
    """
    config = load_config(configure_logging=False)

    click.echo("AutoGeorge Health Check")
    click.echo("=" * 50)

    db = DatabaseConnection(config.db_path)
    try:
        snapshot = HealthService(config, db).current_health()
    except Exception as e:
        click.echo(f"❌ Health check failed: {e}", err=True)
        logger.exception("health_check_error")
        sys.exit(1)
    finally:
        db.close()

    for check in snapshot.checks:
        click.echo(
            f"  {_MARKS[check.status]} {check.service}: {check.status.value} "
            f"({check.response_time_ms} ms)"
        )
        if check.error:
            click.echo(f"    - Error: {check.error}", err=True)
        if verbose:
            for key, value in check.details.items():
                click.echo(f"    - {key}: {value}")

    click.echo("=" * 50)
    if snapshot.overall == HealthStatus.UNHEALTHY:
        click.echo("❌ Overall Status: UNHEALTHY")
        sys.exit(1)
    if snapshot.overall == HealthStatus.DEGRADED:
        click.echo("⚠ Overall Status: DEGRADED")
    else:
        click.echo("✅ Overall Status: HEALTHY")
