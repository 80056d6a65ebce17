"""Feed source management commands."""

from pathlib import Path
from typing import Optional

import click

from autogeorge.cli.commands.common import load_config
from autogeorge.core.enums import SourceStatus, SourceType
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.source_repository import SourceRepository
from autogeorge.services.config_loader import load_sources_config
from autogeorge.utils.exceptions import ConfigurationError


@click.group()
def sources() -> None:
    """Manage feed sources."""


@sources.command("add")
@click.argument("name")
@click.argument("url")
@click.option(
    "--type",
    "source_type",
    type=click.Choice([t.value for t in SourceType]),
    default=SourceType.RSS.value,
    show_default=True,
)
@click.option("--site-id", default=None, help="WordPress site the source feeds")
@click.option("--paused", is_flag=True, help="Create the source paused")
def add_source(
    name: str, url: str, source_type: str, site_id: Optional[str], paused: bool
) -> None:
    """Add a source.

    Examples:
        autogeorge sources add "ANSA" https://www.ansa.it/sito/ansait_rss.xml
    """
    config = load_config()
    db = DatabaseConnection(config.db_path)
    try:
        source = SourceRepository(db).create(
            name=name,
            url=url,
            source_type=SourceType(source_type),
            status=SourceStatus.PAUSED if paused else SourceStatus.ACTIVE,
            site_id=site_id,
        )
    finally:
        db.close()
    click.echo(f"Added source {source.name} ({source.id})")


@sources.command("import")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_sources(file_path: Path) -> None:
    """Add the sources listed in a YAML file, skipping URLs already present."""
    config = load_config()
    try:
        declared = load_sources_config(file_path)
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()

    db = DatabaseConnection(config.db_path)
    repo = SourceRepository(db)
    try:
        known_urls = {s.url for s in repo.list_all()}
        added = 0
        for entry in declared:
            url = str(entry.url)
            if url in known_urls:
                click.echo(f"  - {entry.name}: already present")
                continue
            repo.create(
                name=entry.name,
                url=url,
                source_type=entry.type,
                status=SourceStatus.ACTIVE if entry.enabled else SourceStatus.PAUSED,
            )
            known_urls.add(url)
            added += 1
            click.echo(f"  + {entry.name}")
    finally:
        db.close()

    click.echo(f"Imported {added} of {len(declared)} source(s)")


@sources.command("list")
def list_sources() -> None:
    """List sources with their last fetch status."""
    config = load_config(configure_logging=False)
    db = DatabaseConnection(config.db_path)
    try:
        all_sources = SourceRepository(db).list_all()
    finally:
        db.close()

    if not all_sources:
        click.echo("No sources configured.")
        return

    click.echo(f"{'Name':<30} {'Type':<9} {'Status':<8} {'Last fetch':<20} URL")
    click.echo("-" * 100)
    for source in all_sources:
        last_fetch = source.last_fetch_at.strftime("%Y-%m-%d %H:%M") if source.last_fetch_at else "never"
        click.echo(
            f"{source.name[:30]:<30} {source.type.value:<9} {source.status.value:<8} "
            f"{last_fetch:<20} {source.url or ''}"
        )
        if source.last_error:
            click.echo(f"    last error: {source.last_error}")
