# cli/utils.py
import click
from typing import List, Any, Callable, Optional, Dict
from core.models.state import AppState, Book, Location, User
from core.sa.database import Database
from core.services.storage_service import StorageService
from core.state.store import LibraryStore
from core.state.selectors import (
    find_book, find_location, find_user, resolve_location_label, select_active_user,
)
from core.utils.formatting import format_currency

DATE_FORMATS = ['%Y-%m-%d']


def get_storage() -> StorageService:
    """Storage for the database named by BIBLIOPI_DATABASE_URL"""
    return StorageService(Database())


def get_store() -> LibraryStore:
    return LibraryStore(get_storage())


def echo_error(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg='red'), err=True)


def fail(message: str):
    """Print an error and stop the command with a non-zero exit code"""
    echo_error(message)
    raise click.Abort()


def confirm_or_abort(message: str, yes: bool) -> None:
    """Ask before a destructive action unless --yes was given"""
    if not yes:
        click.confirm(message, abort=True)


def warn_if_unsaved(store: LibraryStore) -> None:
    if store.unreadable_storage:
        click.echo(click.style(
            "Warning: the stored library could not be read, so changes were not saved. "
            "Run 'bibliopi backup restore' or 'bibliopi setup reset' first.", fg='yellow'), err=True)
    elif not store.last_save_ok:
        click.echo(click.style("Warning: changes could not be saved", fg='yellow'), err=True)


def lookup_book(state: AppState, ref: str) -> Book:
    """Find a book by id, ISBN or exact title, aborting if there is no match"""
    book = find_book(state, ref)
    if book is None:
        matches = [b for b in state.books if b.isbn == ref or b.title.lower() == ref.lower()]
        if len(matches) > 1:
            fail(f"'{ref}' matches {len(matches)} books, use the book id")
        book = matches[0] if matches else None
    if book is None:
        fail(f"Book '{ref}' not found")
    return book


def lookup_user(state: AppState, ref: Optional[str]) -> Optional[User]:
    """Find a user by id or name. No reference means the active user."""
    if not ref:
        return select_active_user(state)
    user = find_user(state, ref) or next(
        (u for u in state.users if u.name.lower() == ref.lower()), None
    )
    if user is None:
        fail(f"User '{ref}' not found")
    return user


def lookup_location(state: AppState, ref: str) -> Location:
    location = find_location(state, ref)
    if location is None:
        matches = [l for l in state.locations if resolve_location_label(state, l.id).lower() == ref.lower()]
        if len(matches) == 1:
            location = matches[0]
    if location is None:
        fail(f"Location '{ref}' not found")
    return location


def money(state: AppState, value: Optional[float]) -> str:
    if not state.qol_settings.show_value:
        return '***'
    return format_currency(value)


def book_line(state: AppState, book: Book) -> str:
    """One-line summary used by list commands"""
    return (
        click.style(book.id, fg='cyan') + "  "
        + click.style(book.title, bold=True)
        + f" by {book.author}"
        + click.style(f"  [{resolve_location_label(state, book.location_id)}]", fg='blue')
    )


class ProgressTracker:
    """Tracks progress and manages skipped records during imports"""

    def __init__(self, verbose: bool = False):
        self.processed = 0
        self.imported = 0
        self.skipped: List[Dict[str, str]] = []
        self.verbose = verbose

    def add_skipped(self, name: str, reason: str, color: str = 'yellow'):
        """Add a skipped record to the tracking"""
        self.skipped.append({
            'name': name,
            'reason': reason,
            'color': color
        })

    def increment_processed(self):
        self.processed += 1

    def increment_imported(self):
        self.imported += 1

    def print_results(self, item_type: str = 'records'):
        """Print the results of the operation"""
        click.echo("\n" + click.style("Results:", fg='blue'))
        click.echo(click.style("Processed: ", fg='blue') +
                  click.style(str(self.processed), fg='cyan') +
                  click.style(f" {item_type}", fg='blue'))
        click.echo(click.style("Imported: ", fg='blue') +
                  click.style(str(self.imported), fg='green') +
                  click.style(" books", fg='blue'))

        if self.skipped and self.verbose:
            click.echo("\n" + click.style("Skipped records:", fg='yellow'))
            for skip_info in self.skipped:
                click.echo(click.style(f"  {skip_info['name']}: {skip_info['reason']}", fg=skip_info['color']))
        elif self.skipped:
            click.echo(click.style(f"\nSkipped {len(self.skipped)} records. ", fg='yellow') +
                      click.style("Use --verbose to see details.", fg='blue'))


def create_progress_bar(items: List[Any], verbose: bool = False,
                       label: str = 'Processing',
                       item_name_func: Optional[Callable[[Any], str]] = None) -> click.progressbar:
    """Create a standardized progress bar for bulk operations"""
    return click.progressbar(
        items,
        label=click.style(label, fg='blue'),
        item_show_func=lambda x: click.style(item_name_func(x), fg='cyan') if x and verbose and item_name_func else None,
        show_eta=True,
        show_percent=True,
        width=50
    )
