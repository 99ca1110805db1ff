# core/state/history.py
"""Per-user reading history.

Every operation resolves the user through the active-user fallback and
returns the state unchanged when there is nobody to record against. A
Completed entry keeps read_count equal to len(read_dates).

After each change the book's own status is recomputed as a library-wide
summary (Completed if anyone completed it, else Reading if anyone is reading
it). Per-user truth lives only in User.history.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from core.models.state import AppState, ReadEntry, ReadStatus
from core.state.selectors import reading_entry, resolve_user
from core.utils.formatting import utc_now

logger = logging.getLogger(__name__)


def library_status(state: AppState, book_id: str) -> ReadStatus:
    statuses = set()
    for user in state.users:
        entry = reading_entry(user, book_id)
        if entry is not None:
            statuses.add(entry.status)
    if ReadStatus.COMPLETED in statuses:
        return ReadStatus.COMPLETED
    if ReadStatus.READING in statuses:
        return ReadStatus.READING
    return ReadStatus.UNREAD


def _sync_book_status(state: AppState, book_id: str) -> AppState:
    status = library_status(state, book_id)
    books = [
        b.model_copy(update={'status': status}) if b.id == book_id and b.status != status else b
        for b in state.books
    ]
    return state.model_copy(update={'books': books})


def _update_history(
    state: AppState,
    book_id: str,
    user_id: Optional[str],
    change: Callable[[Optional[ReadEntry]], Optional[ReadEntry]],
) -> AppState:
    """Apply `change` to the user's entry for the book.

    `change` receives the current entry (or None) and returns the new entry,
    or None to remove it.
    """
    user = resolve_user(state, user_id)
    if user is None:
        logger.debug("No users, ignoring history change for %s", book_id)
        return state

    current = reading_entry(user, book_id)
    updated = change(current)
    if updated is current:
        return state

    history: List[ReadEntry]
    if updated is None:
        history = [h for h in user.history if h.book_id != book_id]
    elif current is None:
        history = list(user.history) + [updated]
    else:
        history = [updated if h.book_id == book_id else h for h in user.history]
    new_user = user.model_copy(update={'history': history})
    users = [new_user if u.id == user.id else u for u in state.users]
    return _sync_book_status(state.model_copy(update={'users': users}), book_id)


def _finish(entry: Optional[ReadEntry], book_id: str, now: datetime) -> ReadEntry:
    if entry is None:
        return ReadEntry(
            book_id=book_id,
            status=ReadStatus.COMPLETED,
            date_finished=now,
            read_count=1,
            read_dates=[now],
        )
    # Entries written before read dates were tracked may lack a count
    previous = entry.read_count if entry.read_count is not None else max(len(entry.read_dates), 1)
    return entry.model_copy(update={
        'status': ReadStatus.COMPLETED,
        'date_finished': now,
        'read_count': previous + 1,
        'read_dates': list(entry.read_dates) + [now],
    })


def complete_reading(
    state: AppState,
    book_id: str,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AppState:
    """Record a finished read. Already-completed entries are left alone."""
    now = now or utc_now()

    def change(entry):
        if entry is not None and entry.status == ReadStatus.COMPLETED:
            return entry
        return _finish(entry, book_id, now)

    return _update_history(state, book_id, user_id, change)


def resume_reading(
    state: AppState,
    book_id: str,
    user_id: Optional[str] = None,
) -> AppState:
    """Mark a completed book as being read again without touching its counters"""
    def change(entry):
        if entry is None or entry.status != ReadStatus.COMPLETED:
            return entry
        return entry.model_copy(update={'status': ReadStatus.READING})

    return _update_history(state, book_id, user_id, change)


def toggle_read_status(
    state: AppState,
    book_id: str,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AppState:
    """Complete an unfinished book, or move a completed one back to Reading"""
    user = resolve_user(state, user_id)
    entry = reading_entry(user, book_id)
    if entry is not None and entry.status == ReadStatus.COMPLETED:
        return resume_reading(state, book_id, user_id)
    return complete_reading(state, book_id, user_id, now)


def undo_last_read(
    state: AppState,
    book_id: str,
    user_id: Optional[str] = None,
) -> AppState:
    """Drop the most recent finish date and recompute the entry from what remains"""
    def change(entry):
        if entry is None:
            return entry
        dates = list(entry.read_dates)
        if dates:
            dates.pop()
        return entry.model_copy(update={
            'read_dates': dates,
            'read_count': len(dates),
            'date_finished': dates[-1] if dates else None,
            'status': ReadStatus.COMPLETED if dates else ReadStatus.UNREAD,
        })

    return _update_history(state, book_id, user_id, change)


def reset_history(
    state: AppState,
    book_id: str,
    user_id: Optional[str] = None,
) -> AppState:
    """Forget the user's history for a book entirely"""
    return _update_history(state, book_id, user_id, lambda entry: None)
