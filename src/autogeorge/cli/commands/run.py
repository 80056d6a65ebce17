"""Run pipeline stages from the command line."""

import asyncio
import json
from typing import Any, Dict

import click

from autogeorge.cli.commands.common import load_config
from autogeorge.database.connection import DatabaseConnection
from autogeorge.pipeline.orchestrator import StageRunner, stage_names
from autogeorge.utils.exceptions import StageLockedError


def _echo_json(results: Dict[str, Any]) -> None:
    click.echo(json.dumps(results, indent=2, ensure_ascii=False, default=str))


@click.command("run-stage")
@click.argument("stage", type=click.Choice(stage_names()))
def run_stage(stage: str) -> None:
    """Run one cron stage once and print its summary.

    Examples:
        autogeorge run-stage poll-feeds
        autogeorge run-stage auto-image
    """
    config = load_config()
    db = DatabaseConnection(config.db_path)

    try:
        results = asyncio.run(StageRunner(config, db).run_stage(stage))
        _echo_json(results)

    except StageLockedError as e:
        click.echo(f"Stage {e.stage} is already running (holder: {e.holder})", err=True)
        raise click.Abort()

    except KeyboardInterrupt:
        click.echo("\nStage interrupted by user.", err=True)
        raise click.Abort()

    except Exception as e:
        click.echo(f"\nStage {stage} failed: {e}", err=True)
        raise click.Abort()

    finally:
        db.close()


@click.command("run-all")
def run_all() -> None:
    """Run poll-feeds, auto-generation, auto-image and auto-publish in order."""
    config = load_config()
    db = DatabaseConnection(config.db_path)

    click.echo("AutoGeorge Pipeline")
    click.echo("=" * 50)
    click.echo(f"Database: {config.db_path}")
    click.echo("=" * 50)

    try:
        summary = asyncio.run(StageRunner(config, db).run_all())
        _echo_json(summary)
        click.echo("\nPipeline completed successfully!")

    except StageLockedError as e:
        click.echo(f"Stage {e.stage} is already running (holder: {e.holder})", err=True)
        raise click.Abort()

    except KeyboardInterrupt:
        click.echo("\nPipeline interrupted by user.", err=True)
        raise click.Abort()

    except Exception as e:
        click.echo(f"\nPipeline failed: {e}", err=True)
        raise click.Abort()

    finally:
        db.close()
