# cli/commands/loan.py
import click
from typing import Optional
from core.state.loans import new_loan
from core.state.selectors import (
    borrower_label, find_book, find_loan, is_overdue, open_loans_for_book, overdue_loans,
)
from core.utils.formatting import format_date, utc_now
from ..utils import confirm_or_abort, fail, get_store, lookup_book, lookup_user, warn_if_unsaved

@click.group()
def loan():
    """Lending commands"""
    pass

@loan.command()
@click.argument('ref')
@click.option('--to', 'borrower', default=None, help='Name of a borrower outside the family')
@click.option('--user', 'user_ref', default=None, help='Family member borrowing the book')
def add(ref: str, borrower: Optional[str], user_ref: Optional[str]):
    """Lend a book

    Example:
        bibliopi loan add "The Giver" --to "Rahul"
    """
    if not borrower and not user_ref:
        fail("Give a borrower with --to or --user")
    store = get_store()
    b = lookup_book(store.state, ref)
    user = lookup_user(store.state, user_ref) if user_ref else None
    if open_loans_for_book(store.state, b.id):
        click.echo(click.style(f"Note: '{b.title}' already has an open loan", fg='yellow'))
    created = new_loan(b.id, user_id=user.id if user else None, borrower_name=borrower)
    store.dispatch('create_loan', loan=created)
    warn_if_unsaved(store)
    click.echo(click.style(f"Lent '{b.title}' to {borrower_label(store.state, created)}", fg='green') +
               f" (loan {created.id})")

@loan.command(name='return')
@click.argument('loan_id')
def return_(loan_id: str):
    """Mark a loan as returned"""
    store = get_store()
    existing = find_loan(store.state, loan_id)
    if existing is None:
        fail(f"Loan '{loan_id}' not found")
    if existing.return_date is not None:
        click.echo(f"Loan already returned on {format_date(existing.return_date)}")
        return
    store.dispatch('return_loan', loan_id=loan_id)
    warn_if_unsaved(store)
    click.echo(click.style("Returned", fg='green'))

@loan.command()
@click.argument('loan_id')
@click.option('--yes', is_flag=True, help='Delete without asking')
def delete(loan_id: str, yes: bool):
    """Delete a loan record"""
    store = get_store()
    if find_loan(store.state, loan_id) is None:
        fail(f"Loan '{loan_id}' not found")
    confirm_or_abort("Delete this loan record?", yes)
    store.dispatch('delete_loan', loan_id=loan_id)
    warn_if_unsaved(store)
    click.echo(click.style("Loan deleted", fg='yellow'))

@loan.command(name='list')
@click.option('--all', 'show_all', is_flag=True, help='Include returned loans')
@click.option('--overdue', is_flag=True, help='Only show overdue loans')
def list_loans(show_all: bool, overdue: bool):
    """List loans"""
    state = get_store().state
    now = utc_now()
    if overdue:
        loans = overdue_loans(state, now)
    else:
        loans = [l for l in state.loans if show_all or l.return_date is None]
    if not loans:
        click.echo("No loans")
        return
    for l in loans:
        b = find_book(state, l.book_id)
        title = b.title if b else 'Unknown book'
        line = f"{click.style(l.id, fg='cyan')}  {title} -> {borrower_label(state, l)} since {format_date(l.loan_date)}"
        if l.return_date:
            line += click.style(f" (returned {format_date(l.return_date)})", fg='green')
        elif is_overdue(l, now):
            line += click.style(" OVERDUE", fg='red')
        click.echo(line)
