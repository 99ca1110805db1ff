# core/state/books.py
import logging
from datetime import datetime
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from core.models.state import AppState, Book, BookCondition, BookDraft, ReadStatus
from core.services.import_service import validate_imported_book
from core.state.onboarding import store_search_link
from core.state.selectors import select_active_user
from core.tagging import generate_auto_tags, merge_tags
from core.utils.formatting import generate_id, utc_now

logger = logging.getLogger(__name__)

UNKNOWN_ISBN = 'UNKNOWN'
UNKNOWN_TITLE = 'Unknown Title'
UNKNOWN_AUTHOR = 'Unknown'

# Kept from the stored copy when an update leaves them empty
_PROVENANCE_FIELDS = ('added_by_user_id', 'added_by_user_name', 'added_date')


def upsert_book(state: AppState, book: Book) -> AppState:
    """Replace the book with the same id, or append it.

    Provenance (who added it and when) is preserved unless the incoming book
    sets it explicitly.
    """
    books = list(state.books)
    for index, existing in enumerate(books):
        if existing.id == book.id:
            keep = {
                name: getattr(existing, name)
                for name in _PROVENANCE_FIELDS
                if getattr(book, name) is None
            }
            books[index] = book.model_copy(update=keep) if keep else book
            break
    else:
        books.append(book)
    return state.model_copy(update={'books': books})


def create_book_from_draft(
    state: AppState,
    draft: Union[BookDraft, dict],
    now: Optional[datetime] = None,
    location_id: Optional[str] = None,
) -> Book:
    """Build a new catalogue entry from scanned or imported metadata.

    The book is attributed to the active user and tagged from its title and
    summary. It is not added to the state; pass it to upsert_book.

    Raises:
        pydantic.ValidationError: If a draft field has the wrong type
    """
    if isinstance(draft, dict):
        draft = BookDraft.model_validate(draft)
    user = select_active_user(state)

    values = draft.model_dump(mode='json', by_alias=True, exclude_none=True)
    title = draft.title or UNKNOWN_TITLE
    summary = draft.summary or ''
    values.update({
        'id': generate_id(),
        'title': title,
        'author': draft.author or UNKNOWN_AUTHOR,
        'isbn': draft.isbn or UNKNOWN_ISBN,
        'status': ReadStatus.UNREAD.value,
        'condition': BookCondition.GOOD.value,
        'locationId': location_id,
        'addedByUserId': user.id if user else None,
        'addedByUserName': user.name if user else None,
        'addedDate': (now or utc_now()).isoformat(),
        'tags': merge_tags(draft.tags, generate_auto_tags(title, summary)),
        'amazonLink': draft.amazon_link or store_search_link(title),
    })
    return Book.model_validate(values)


def add_book_from_draft(
    state: AppState,
    draft: Union[BookDraft, dict],
    now: Optional[datetime] = None,
    location_id: Optional[str] = None,
) -> AppState:
    return upsert_book(state, create_book_from_draft(state, draft, now, location_id))


def enrich_book(state: AppState, book_id: str, draft: BookDraft) -> AppState:
    """Copy looked-up metadata onto an existing book.

    Only fields the draft actually provides are written; tags are merged.
    Unknown books leave the state unchanged.
    """
    book = next((b for b in state.books if b.id == book_id), None)
    if book is None:
        return state
    update = {
        name: value
        for name, value in draft.model_dump(exclude={'tags'}).items()
        if name in Book.model_fields and value not in (None, [], '')
    }
    update['tags'] = merge_tags(book.tags, draft.tags)
    return upsert_book(state, book.model_copy(update=update))


def import_books(
    state: AppState,
    drafts: Iterable[Union[BookDraft, dict]],
    now: Optional[datetime] = None,
) -> AppState:
    """Append every draft that has both a title and an author.

    Records that fail validation are dropped; the caller reports how many
    books were added.
    """
    now = now or utc_now()
    created = []
    for draft in drafts:
        if not validate_imported_book(draft):
            continue
        try:
            created.append(create_book_from_draft(state, draft, now))
        except ValidationError as e:
            logger.warning("Skipping import record %r: %s", draft, e)
    logger.info("Imported %d books", len(created))
    if not created:
        return state
    return state.model_copy(update={'books': list(state.books) + created})


def delete_book(state: AppState, book_id: str) -> AppState:
    """Remove a book. No-op when the id is unknown."""
    books = [b for b in state.books if b.id != book_id]
    if len(books) == len(state.books):
        return state
    return state.model_copy(update={'books': books})
