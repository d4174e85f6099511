"""CLI tools for CareTrack data administration."""

import anyio
import click

from caretrack.core.config import Settings
from caretrack.core.errors import AppError, format_error_for_display
from caretrack.core.structured_logging import configure_logging
from caretrack.storage import StorageProvider, create_storage


def _run(settings: Settings, operation):
    """Initialize storage, run ``operation(storage)`` and close it again."""

    async def runner():
        storage: StorageProvider = create_storage(settings)
        await storage.initialize()
        try:
            return await operation(storage)
        finally:
            await storage.close()

    try:
        return anyio.run(runner)
    except AppError as e:
        raise click.ClickException(format_error_for_display(e)) from e


@click.group()
@click.option("--data-dir", default=None, help="Override DATA_DIR")
@click.pass_context
def cli(ctx: click.Context, data_dir: str | None):
    """CareTrack CLI tools."""
    overrides = {"DATA_DIR": data_dir} if data_dir else {}
    settings = Settings(**overrides)
    configure_logging(settings.LOG_LEVEL)
    ctx.obj = settings


@cli.command()
@click.pass_obj
def init(settings: Settings):
    """Create the data directory and empty collection files."""

    async def operation(storage):
        return None

    _run(settings, operation)
    click.echo(f"✓ Storage initialized ({settings.STORAGE_TYPE})")


@cli.command()
@click.pass_obj
def backup(settings: Settings):
    """Snapshot every collection into a timestamped backup."""

    async def operation(storage):
        return await storage.create_backup()

    backup_id = _run(settings, operation)
    click.echo(f"✓ Backup created: {backup_id}")


@cli.command()
@click.argument("backup_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_obj
def restore(settings: Settings, backup_id: str, yes: bool):
    """
    Replace all collections with a backup.

    Example:
        caretrack restore 2026-01-05T09-30-00-123456+00-00
    """
    if not yes:
        click.confirm(f"Restore {backup_id}? Current data will be overwritten", abort=True)

    async def operation(storage):
        await storage.restore_backup(backup_id)

    _run(settings, operation)
    click.echo(f"✓ Restored backup {backup_id}")


@cli.command("list-backups")
@click.pass_obj
def list_backups(settings: Settings):
    """List backups, newest first."""

    async def operation(storage):
        return await storage.list_backups()

    backups = _run(settings, operation)
    if not backups:
        click.echo("No backups found")
        return
    for backup_id in backups:
        click.echo(backup_id)


@cli.command()
@click.pass_obj
def stats(settings: Settings):
    """Show record counts per collection."""

    async def operation(storage):
        return await storage.get_stats()

    result = _run(settings, operation)
    click.echo(f"Total records: {result.total_records}")
    for name, count in result.records_by_collection.items():
        click.echo(f"  {name}: {count}")
    click.echo(f"Size: {result.total_size_bytes} bytes")
    click.echo(f"Last backup: {result.last_backup or 'never'}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host: str, port: int):
    """Run the API server."""
    import uvicorn

    uvicorn.run("caretrack.main:app", host=host, port=port)


if __name__ == "__main__":
    cli()
