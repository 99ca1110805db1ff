# cli/commands/book.py
import click
from typing import Optional
from core.exceptions import BiblioPiError
from core.models.state import BookCondition, BookDraft
from core.services.ai_service import EnrichmentService
from core.services.metadata_service import MetadataService
from core.state.books import create_book_from_draft
from core.state.selectors import (
    LIBRARY_TABS, filter_library, open_loans_for_book, reading_entry, resolve_location_label,
)
from core.utils.formatting import format_date
from ..utils import (
    book_line, confirm_or_abort, fail, get_store, lookup_book, lookup_location, lookup_user,
    money, warn_if_unsaved,
)

@click.group()
def book():
    """Catalogue commands"""
    pass

def _print_draft(draft: BookDraft):
    click.echo(f"  Title: {draft.title or '?'}")
    click.echo(f"  Author: {draft.author or '?'}")
    if draft.isbn:
        click.echo(f"  ISBN: {draft.isbn}")
    if draft.genres:
        click.echo(f"  Genres: {', '.join(draft.genres)}")
    if draft.summary:
        click.echo(f"  Summary: {draft.summary}")

def _add_draft(store, draft: BookDraft, location: Optional[str]):
    location_id = lookup_location(store.state, location).id if location else None
    new_book = create_book_from_draft(store.state, draft, location_id=location_id)
    store.dispatch('upsert_book', book=new_book)
    warn_if_unsaved(store)
    click.echo(click.style("Added: ", fg='green') + book_line(store.state, new_book))

@book.command(name='list')
@click.option('--search', default='', help='Match title, author or ISBN')
@click.option('--tab', type=click.Choice(LIBRARY_TABS), default='all', help='Library tab')
@click.option('--user', 'user_ref', default=None, help='View as this user (default: active user)')
def list_books(search: str, tab: str, user_ref: Optional[str]):
    """List books visible to a user

    Example:
        bibliopi book list --tab unread
        bibliopi book list --search tolkien
    """
    state = get_store().state
    user = lookup_user(state, user_ref)
    books = filter_library(state, user, search=search, tab=tab)
    if not books:
        click.echo("No books found")
        return
    for b in books:
        click.echo(book_line(state, b))
    click.echo(click.style(f"\n{len(books)} books", fg='blue'))

@book.command()
@click.argument('ref')
def show(ref: str):
    """Show details for a book (id, ISBN or title)"""
    store = get_store()
    state = store.state
    b = lookup_book(state, ref)
    click.echo(click.style(b.title, bold=True) + f" by {b.author}")
    click.echo(f"  ID: {b.id}")
    click.echo(f"  ISBN: {b.isbn or '-'}")
    click.echo(f"  Location: {resolve_location_label(state, b.location_id)}")
    click.echo(f"  Condition: {b.condition.value}")
    click.echo(f"  Value: {money(state, b.estimated_value)} (paid {money(state, b.purchase_price)})")
    if b.genres:
        click.echo(f"  Genres: {', '.join(b.genres)}")
    if b.tags:
        click.echo(f"  Tags: {', '.join(b.tags)}")
    if b.min_age:
        click.echo(f"  Minimum age: {b.min_age}")
    click.echo(f"  Added: {format_date(b.added_date)} by {b.added_by_user_name or 'Unknown'}")
    if b.summary:
        click.echo(f"\n{b.summary}")
    for label, value in (('Parental advice', b.parental_advice),
                         ('Understanding guide', b.understanding_guide),
                         ('Cultural reference', b.cultural_reference)):
        if value:
            click.echo(f"\n{label}: {value}")
    for user in state.users:
        entry = reading_entry(user, b.id)
        if entry:
            click.echo(f"  {user.name}: {entry.status.value} ({entry.read_count or 0} reads)")
    for loan in open_loans_for_book(state, b.id):
        click.echo(click.style(f"  On loan since {format_date(loan.loan_date)} ({loan.id})", fg='yellow'))

@book.command()
@click.option('--title', required=True, help='Book title')
@click.option('--author', required=True, help='Author name')
@click.option('--isbn', default=None, help='ISBN')
@click.option('--genre', 'genres', multiple=True, help='Genre (repeatable)')
@click.option('--summary', default=None, help='Short summary')
@click.option('--value', type=float, default=None, help='Estimated value')
@click.option('--pages', type=int, default=None, help='Total pages')
@click.option('--min-age', type=int, default=None, help='Minimum reader age')
@click.option('--location', default=None, help='Location id or label')
def add(title, author, isbn, genres, summary, value, pages, min_age, location):
    """Add a book by hand"""
    store = get_store()
    draft = BookDraft(
        title=title, author=author, isbn=isbn, genres=list(genres), summary=summary,
        estimated_value=value, total_pages=pages, min_age=min_age,
    )
    _add_draft(store, draft, location)

@book.command()
@click.argument('isbn')
@click.option('--add/--no-add', 'add_book', default=False, help='Add the book to the library if found')
@click.option('--location', default=None, help='Location id or label for the new book')
def lookup(isbn: str, add_book: bool, location: Optional[str]):
    """Look up a book by ISBN on Open Library and Google Books

    Example:
        bibliopi book lookup 9780141439518 --add
    """
    store = get_store()
    service = MetadataService(google_key=store.state.api_settings.google_key)
    draft = service.lookup_isbn(isbn)
    if draft is None:
        fail("Book not found via ISBN")
    click.echo(click.style("Found:", fg='green'))
    _print_draft(draft)
    if add_book:
        _add_draft(store, draft, location)

@book.command()
@click.argument('image', type=click.Path(exists=True, dir_okay=False))
@click.option('--add/--no-add', 'add_book', default=False, help='Add the recognised book to the library')
@click.option('--location', default=None, help='Location id or label for the new book')
def scan(image: str, add_book: bool, location: Optional[str]):
    """Identify a book from a photo of its cover"""
    store = get_store()
    click.echo("Analyzing cover...")
    try:
        draft = EnrichmentService(store.state.ai_settings).analyze_cover(image)
    except BiblioPiError as e:
        fail(str(e))
    _print_draft(draft)
    if add_book:
        _add_draft(store, draft, location)

@book.command()
@click.argument('ref')
def enrich(ref: str):
    """Fill in summary, age guidance and value using the AI provider"""
    store = get_store()
    b = lookup_book(store.state, ref)
    try:
        draft = EnrichmentService(store.state.ai_settings).enrich_text(b.title, b.author)
    except BiblioPiError as e:
        fail(str(e))
    store.dispatch('enrich_book', book_id=b.id, draft=draft)
    warn_if_unsaved(store)
    click.echo(click.style(f"Enriched '{b.title}'", fg='green'))

@book.command()
@click.argument('ref')
@click.option('--title', default=None)
@click.option('--author', default=None)
@click.option('--isbn', default=None)
@click.option('--condition', type=click.Choice([c.value for c in BookCondition]), default=None)
@click.option('--location', default=None, help='Location id or label')
@click.option('--price', type=float, default=None, help='Purchase price')
@click.option('--value', type=float, default=None, help='Estimated value')
@click.option('--min-age', type=int, default=None)
@click.option('--signed/--not-signed', default=None)
@click.option('--first-edition/--not-first-edition', default=None)
def edit(ref, title, author, isbn, condition, location, price, value, min_age, signed, first_edition):
    """Change details of a book"""
    store = get_store()
    b = lookup_book(store.state, ref)
    for label, text in (('Title', title), ('Author', author)):
        if text is not None and not text.strip():
            fail(f"{label} cannot be blank")
    update = {
        'title': title.strip() if title else None,
        'author': author.strip() if author else None,
        'isbn': isbn,
        'condition': BookCondition(condition) if condition else None,
        'location_id': lookup_location(store.state, location).id if location else None,
        'purchase_price': price,
        'estimated_value': value,
        'min_age': min_age,
        'is_signed': signed,
        'is_first_edition': first_edition,
    }
    update = {k: v for k, v in update.items() if v is not None}
    if not update:
        click.echo("Nothing to change")
        return
    store.dispatch('upsert_book', book=b.model_copy(update=update))
    warn_if_unsaved(store)
    click.echo(click.style(f"Updated '{b.title}'", fg='green'))

@book.command()
@click.argument('ref')
@click.option('--yes', is_flag=True, help='Delete without asking')
def delete(ref: str, yes: bool):
    """Remove a book from the library"""
    store = get_store()
    b = lookup_book(store.state, ref)
    confirm_or_abort(f"Delete '{b.title}'?", yes)
    store.dispatch('delete_book', book_id=b.id)
    warn_if_unsaved(store)
    click.echo(click.style(f"Deleted '{b.title}'", fg='yellow'))

@book.command()
@click.argument('ref')
@click.option('--user', 'user_ref', default=None, help='User id or name (default: active user)')
def favorite(ref: str, user_ref: Optional[str]):
    """Add or remove a book from favorites"""
    store = get_store()
    b = lookup_book(store.state, ref)
    user = lookup_user(store.state, user_ref)
    if user is None:
        fail("No users yet, run 'bibliopi setup run' first")
    store.dispatch('toggle_favorite', book_id=b.id, user_id=user.id)
    warn_if_unsaved(store)
    now_favorite = b.id in lookup_user(store.state, user.id).favorites
    click.echo(f"'{b.title}' {'added to' if now_favorite else 'removed from'} {user.name}'s favorites")
