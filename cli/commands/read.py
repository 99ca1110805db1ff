# cli/commands/read.py
import click
from typing import Optional
from core.models.state import ReadStatus
from core.state.selectors import find_book, reading_entry
from core.utils.formatting import format_date
from ..utils import confirm_or_abort, fail, get_store, lookup_book, lookup_user, warn_if_unsaved

@click.group()
def read():
    """Reading history commands"""
    pass

user_option = click.option('--user', 'user_ref', default=None, help='User id or name (default: active user)')

def _apply(intent: str, ref: str, user_ref: Optional[str]):
    store = get_store()
    b = lookup_book(store.state, ref)
    user = lookup_user(store.state, user_ref)
    if user is None:
        fail("No users yet, run 'bibliopi setup run' first")
    store.dispatch(intent, book_id=b.id, user_id=user.id)
    warn_if_unsaved(store)
    entry = reading_entry(lookup_user(store.state, user.id), b.id)
    if entry is None:
        click.echo(f"'{b.title}': no history for {user.name}")
    else:
        click.echo(f"'{b.title}': {click.style(entry.status.value, fg='cyan')} for {user.name} "
                   f"({entry.read_count or 0} reads)")

@read.command()
@click.argument('ref')
@user_option
def done(ref: str, user_ref: Optional[str]):
    """Mark a book as finished"""
    _apply('complete_reading', ref, user_ref)

@read.command()
@click.argument('ref')
@user_option
def again(ref: str, user_ref: Optional[str]):
    """Start re-reading a finished book"""
    _apply('resume_reading', ref, user_ref)

@read.command()
@click.argument('ref')
@user_option
def toggle(ref: str, user_ref: Optional[str]):
    """Finish an unread book, or move a finished one back to reading"""
    _apply('toggle_read_status', ref, user_ref)

@read.command()
@click.argument('ref')
@user_option
def undo(ref: str, user_ref: Optional[str]):
    """Undo the most recent finish"""
    _apply('undo_last_read', ref, user_ref)

@read.command()
@click.argument('ref')
@user_option
@click.option('--yes', is_flag=True, help='Reset without asking')
def reset(ref: str, user_ref: Optional[str], yes: bool):
    """Forget all reading history for a book"""
    confirm_or_abort("Clear the reading history for this book?", yes)
    _apply('reset_history', ref, user_ref)

@read.command()
@user_option
@click.option('--status', type=click.Choice([s.value for s in ReadStatus]), default=None,
              help='Only show entries with this status')
def history(user_ref: Optional[str], status: Optional[str]):
    """Show a user's reading history"""
    state = get_store().state
    user = lookup_user(state, user_ref)
    if user is None:
        fail("No users yet, run 'bibliopi setup run' first")
    entries = [h for h in user.history if status is None or h.status.value == status]
    if not entries:
        click.echo(f"No reading history for {user.name}")
        return
    click.echo(click.style(f"Reading history for {user.name}", fg='blue'))
    for entry in entries:
        b = find_book(state, entry.book_id)
        title = b.title if b else f"(deleted book {entry.book_id})"
        click.echo(f"  {title}: {entry.status.value}, {entry.read_count or 0} reads, "
                   f"last finished {format_date(entry.date_finished)}")
