# cli/commands/backup.py
import click
from pathlib import Path
from typing import Optional
from core.exceptions import SnapshotError
from core.services.backup_service import BackupService, disk_space, is_backup_due
from core.state.store import LibraryStore
from core.utils.formatting import utc_now
from ..utils import confirm_or_abort, fail, get_storage, get_store, warn_if_unsaved

@click.group()
def backup():
    """Backup and restore"""
    pass

@backup.command()
@click.option('--force', is_flag=True, help='Back up even if the schedule says it is not due')
def run(force: bool):
    """Write a backup to every enabled destination

    Suitable for a daily cron job: without --force nothing happens until the
    configured frequency says a backup is due.
    """
    store = get_store()
    settings = store.state.backup_settings
    if not force and not is_backup_due(settings):
        click.echo(f"No backup due (last backup {settings.last_backup_date or 'never'}, {settings.frequency.value})")
        return
    now = utc_now()
    written = BackupService(store.storage).run(store.state, now)
    if not written:
        fail("No backup was written, check the backup settings and free disk space")
    for path in written:
        click.echo(click.style("Wrote ", fg='green') + str(path))
    store.dispatch('record_backup', when=now)
    warn_if_unsaved(store)

@backup.command()
@click.option('--output', type=click.Path(dir_okay=False, writable=True), default=None,
              help='File to write (default: bibliopi_backup_<date>.json in the current directory)')
def export(output: Optional[str]):
    """Export the whole library as a JSON file"""
    store = get_store()
    filename, data = store.storage.export_snapshot(store.state)
    target = Path(output or filename)
    target.write_bytes(data)
    click.echo(click.style("Exported to ", fg='green') + str(target))

@backup.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Restore without asking')
def restore(file: str, yes: bool):
    """Replace the library with a backup file"""
    confirm_or_abort("Restoring replaces everything in the current library. Continue?", yes)
    storage = get_storage()
    store = LibraryStore(storage)
    try:
        state = store.restore(Path(file).read_bytes())
    except SnapshotError as e:
        fail(str(e))
    click.echo(click.style("Restored ", fg='green') +
               f"{len(state.books)} books, {len(state.users)} users, {len(state.locations)} locations")

@backup.command(name='list')
def list_backups():
    """List backups in the local backup directory"""
    service = BackupService(get_storage())
    backups = service.list_backups()
    if not backups:
        click.echo(f"No backups in {service.backup_dir}")
        return
    for path in backups:
        click.echo(f"{path.name}  {path.stat().st_size / 1024:.1f} KB")

@backup.command()
def status():
    """Show the schedule and free space at each destination"""
    store = get_store()
    settings = store.state.backup_settings
    service = BackupService(store.storage)
    due = is_backup_due(settings)
    click.echo(f"Frequency: {settings.frequency.value}")
    click.echo(f"Last backup: {settings.last_backup_date or 'never'}")
    click.echo("Due: " + (click.style('yes', fg='yellow') if due else click.style('no', fg='green')))
    for directory in service.destinations(settings):
        space = disk_space(directory)
        color = 'red' if space.free_mb < service.min_free_mb else 'green'
        click.echo(f"{directory}: " + click.style(f"{space.free_mb:,.0f} MB free", fg=color) +
                   f" ({space.percent_used:.0f}% used)")
