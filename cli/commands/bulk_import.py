# cli/commands/bulk_import.py
import click
from core.exceptions import BiblioPiError
from core.models.state import BookDraft
from core.services.import_service import parse_bulk_path, validate_imported_book
from core.services.metadata_service import MetadataService
from core.utils.http import JsonClient
from core.utils.rate_limit import RateLimiter
from ..utils import ProgressTracker, create_progress_bar, fail, get_store, warn_if_unsaved

def _fill_from_lookup(service: MetadataService, draft: BookDraft) -> BookDraft:
    """Fill fields the file left empty with ISBN lookup results"""
    found = service.lookup_isbn(draft.isbn) if draft.isbn else None
    if found is None:
        return draft
    missing = {
        name: value for name, value in found.model_dump().items()
        if value not in (None, [], '') and getattr(draft, name, None) in (None, [], '', 0)
    }
    return draft.model_copy(update=missing)

@click.command(name='import')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--dry-run', is_flag=True, help='Show what would be imported without making changes')
@click.option('--lookup/--no-lookup', default=False, help='Complete records by looking up their ISBN')
@click.option('--verbose/--no-verbose', default=False, help='Show detailed progress')
def import_books(file: str, dry_run: bool, lookup: bool, verbose: bool):
    """Import books from a CSV or JSON file

    CSV files need a header row with at least title and author. Separate
    multiple genres or tags with a pipe, e.g. Fantasy|Classic.

    Example:
        bibliopi import books.csv --dry-run
        bibliopi import books.json --lookup
    """
    try:
        records = parse_bulk_path(file)
    except BiblioPiError as e:
        fail(str(e))

    click.echo(f"Found {len(records)} records")
    tracker = ProgressTracker(verbose)
    service = MetadataService(JsonClient(rate_limiter=RateLimiter())) if lookup else None
    store = get_store()
    if service:
        service.google_key = store.state.api_settings.google_key

    accepted = []
    with create_progress_bar(records, verbose, label='Reading records',
                             item_name_func=lambda r: str(r.get('title', '')) if isinstance(r, dict) else '') as bar:
        for record in bar:
            tracker.increment_processed()
            name = str(record.get('title') or '(untitled)') if isinstance(record, dict) else '(not an object)'
            if not validate_imported_book(record):
                tracker.add_skipped(name, 'missing title or author')
                continue
            try:
                draft = BookDraft.model_validate(record)
            except ValueError as e:
                tracker.add_skipped(name, f"invalid fields: {e}", color='red')
                continue
            if service:
                draft = _fill_from_lookup(service, draft)
            accepted.append(draft)

    if dry_run:
        for draft in accepted:
            click.echo(f"Would import: {draft.title} by {draft.author}")
        tracker.print_results()
        return

    before = len(store.state.books)
    store.dispatch('import_books', drafts=accepted)
    warn_if_unsaved(store)
    tracker.imported = len(store.state.books) - before
    tracker.print_results()
