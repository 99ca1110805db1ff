# cli/commands/report.py
import click
from core.state.selectors import (
    book_value, borrower_label, contributor_share, dashboard_stats, find_book,
    genre_distribution, maintenance_report, read_next, select_active_user, visible_books,
)
from core.utils.formatting import format_date, utc_now
from ..utils import book_line, get_store, money

@click.group()
def report():
    """Dashboard, maintenance and analytics reports"""
    pass

@report.command()
def dashboard():
    """Overview for the active user"""
    state = get_store().state
    stats = dashboard_stats(state, utc_now())
    user = select_active_user(state)
    if state.is_demo_mode:
        click.echo(click.style("Demo library - run 'bibliopi setup run' to start your own", fg='yellow'))
    if user:
        click.echo(click.style(f"Hello, {user.name}", bold=True))
    click.echo(f"Books: {stats.total_books} ({stats.new_this_week} new this week)")
    click.echo(f"Read: {stats.read_books} ({stats.read_percentage}%)  Pages read: {stats.total_pages_read:,}")
    click.echo(f"Collection value: {money(state, stats.total_value)}")
    if stats.top_reader:
        click.echo(f"Top reader: {stats.top_reader} ({stats.top_reader_reads} reads)")
    if stats.overdue_loans:
        click.echo(click.style(f"Overdue loans: {stats.overdue_loans}", fg='red'))
    if stats.recently_added:
        click.echo(click.style("\nRecently added", fg='blue'))
        for b in stats.recently_added:
            click.echo("  " + book_line(state, b))
    suggestions = read_next(state, user, limit=3)
    if suggestions:
        click.echo(click.style("\nRead next", fg='blue'))
        for b in suggestions:
            click.echo("  " + book_line(state, b))

@report.command()
def maintenance():
    """Books needing attention: unplaced, overdue or damaged"""
    state = get_store().state
    result = maintenance_report(state, utc_now())
    if not result.pending:
        click.echo(click.style("All clear", fg='green'))
        return
    if result.unassigned_books:
        click.echo(click.style(f"Unassigned books ({len(result.unassigned_books)})", fg='yellow'))
        for b in result.unassigned_books:
            click.echo("  " + book_line(state, b))
    if result.overdue_loans:
        click.echo(click.style(f"Overdue loans ({len(result.overdue_loans)})", fg='red'))
        for loan in result.overdue_loans:
            b = find_book(state, loan.book_id)
            click.echo(f"  {b.title if b else 'Unknown book'} -> {borrower_label(state, loan)} "
                       f"since {format_date(loan.loan_date)}")
    if result.damaged_books:
        click.echo(click.style(f"Damaged books ({len(result.damaged_books)})", fg='red'))
        for b in result.damaged_books:
            click.echo("  " + book_line(state, b))

@report.command()
def analytics():
    """Genre mix, contributors and collection value"""
    state = get_store().state
    books = visible_books(state, select_active_user(state))
    click.echo(click.style("Top genres", fg='blue'))
    for genre, count in genre_distribution(books):
        click.echo(f"  {genre}: {count}")
    click.echo(click.style("Contributors", fg='blue'))
    for user, count, percent in contributor_share(state):
        click.echo(f"  {user.name}: {count} books ({percent}%)")
    if books:
        average = sum(book_value(b) for b in books) / len(books)
        click.echo(f"Average value: {money(state, average)}")
