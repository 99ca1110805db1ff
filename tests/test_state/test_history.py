# tests/test_state/test_history.py
import itertools
import random
import pytest
from datetime import timedelta

from core.models.state import AppState, ReadEntry, ReadStatus
from core.state.history import (
    complete_reading, library_status, reset_history, resume_reading, toggle_read_status, undo_last_read,
)
from core.state.selectors import find_user, reading_entry


def entry_for(state, user_id, book_id):
    return reading_entry(find_user(state, user_id), book_id)


def assert_in_sync(entry):
    assert (entry.read_count or 0) == len(entry.read_dates)


def test_first_toggle_completes(family_state, now):
    """Test that toggling an unread book creates a completed entry with one read."""
    state = toggle_read_status(family_state, 'book-1', 'u-kid', now=now)
    entry = entry_for(state, 'u-kid', 'book-1')
    assert entry.status == ReadStatus.COMPLETED
    assert entry.read_count == 1
    assert entry.read_dates == [now]
    assert entry.date_finished == now
    assert entry_for(family_state, 'u-kid', 'book-1') is None


def test_toggle_completed_resumes_without_touching_counters(family_state, now):
    """Test that toggling a completed book moves it to Reading and keeps its counters."""
    state = toggle_read_status(family_state, 'book-1', 'u-kid', now=now)
    state = toggle_read_status(state, 'book-1', 'u-kid', now=now + timedelta(days=1))
    entry = entry_for(state, 'u-kid', 'book-1')
    assert entry.status == ReadStatus.READING
    assert entry.read_count == 1
    assert entry.read_dates == [now]


def test_finishing_a_reread_increments(family_state, now):
    """Test that finishing a book being re-read appends a date and increments the count."""
    later = now + timedelta(days=10)
    state = complete_reading(family_state, 'book-1', 'u-kid', now=now)
    state = resume_reading(state, 'book-1', 'u-kid')
    state = complete_reading(state, 'book-1', 'u-kid', now=later)
    entry = entry_for(state, 'u-kid', 'book-1')
    assert entry.status == ReadStatus.COMPLETED
    assert entry.read_count == 2
    assert entry.read_dates == [now, later]
    assert entry.date_finished == later


def test_finishing_entry_without_count_treats_it_as_one(family_state, admin, now):
    """Test that an older entry with no read count counts as one previous read."""
    legacy = admin.model_copy(update={
        'history': [ReadEntry(book_id='book-1', status=ReadStatus.READING)]
    })
    state = family_state.model_copy(update={'users': [legacy] + family_state.users[1:]})
    state = complete_reading(state, 'book-1', 'u-admin', now=now)
    assert entry_for(state, 'u-admin', 'book-1').read_count == 2


def test_complete_reading_on_completed_is_noop(family_state, now):
    """Test that completing an already completed entry changes nothing."""
    state = complete_reading(family_state, 'book-1', 'u-kid', now=now)
    assert complete_reading(state, 'book-1', 'u-kid', now=now + timedelta(days=1)) is state


def test_read_then_undo_restores_fresh_entry(family_state, now):
    """Test that a read followed by an undo leaves zero reads and Unread."""
    state = toggle_read_status(family_state, 'book-2', 'u-kid', now=now)
    state = undo_last_read(state, 'book-2', 'u-kid')
    entry = entry_for(state, 'u-kid', 'book-2')
    assert entry.read_count == 0
    assert entry.read_dates == []
    assert entry.status == ReadStatus.UNREAD
    assert entry.date_finished is None


def test_undo_recomputes_date_finished(family_state, now):
    """Test that undoing the latest of two reads falls back to the earlier date."""
    later = now + timedelta(days=5)
    state = complete_reading(family_state, 'book-1', 'u-kid', now=now)
    state = resume_reading(state, 'book-1', 'u-kid')
    state = complete_reading(state, 'book-1', 'u-kid', now=later)
    state = undo_last_read(state, 'book-1', 'u-kid')
    entry = entry_for(state, 'u-kid', 'book-1')
    assert entry.read_count == 1
    assert entry.date_finished == now
    assert entry.status == ReadStatus.COMPLETED


def test_read_after_undo_to_zero_stays_in_sync(family_state, now):
    """Test that finishing again after undoing every read keeps count and dates equal."""
    state = complete_reading(family_state, 'book-1', 'u-kid', now=now)
    state = undo_last_read(state, 'book-1', 'u-kid')
    state = toggle_read_status(state, 'book-1', 'u-kid', now=now)
    entry = entry_for(state, 'u-kid', 'book-1')
    assert entry.read_count == 1
    assert_in_sync(entry)


def test_count_matches_dates_for_any_sequence(family_state, now):
    """Test that every sequence of toggles and undos keeps the read count equal to the dates."""
    operations = ['toggle', 'undo']
    for sequence in itertools.product(operations, repeat=6):
        state = family_state
        for step, op in enumerate(sequence):
            when = now + timedelta(days=step)
            if op == 'toggle':
                state = toggle_read_status(state, 'book-1', 'u-kid', now=when)
            else:
                state = undo_last_read(state, 'book-1', 'u-kid')
            entry = entry_for(state, 'u-kid', 'book-1')
            if entry is not None:
                assert_in_sync(entry)


def test_count_matches_dates_for_random_sequences(family_state, now):
    """Test the count/dates invariant over longer random sequences including resumes."""
    rng = random.Random(1234)
    for _ in range(50):
        state = family_state
        for step in range(25):
            op = rng.choice(['toggle', 'undo', 'complete', 'resume'])
            when = now + timedelta(hours=step)
            if op == 'toggle':
                state = toggle_read_status(state, 'book-1', 'u-kid', now=when)
            elif op == 'undo':
                state = undo_last_read(state, 'book-1', 'u-kid')
            elif op == 'complete':
                state = complete_reading(state, 'book-1', 'u-kid', now=when)
            else:
                state = resume_reading(state, 'book-1', 'u-kid')
            entry = entry_for(state, 'u-kid', 'book-1')
            if entry is not None:
                assert_in_sync(entry)


def test_undo_without_entry_is_noop(family_state):
    """Test that undo on a book the user never read changes nothing."""
    assert undo_last_read(family_state, 'book-1', 'u-kid') is family_state


def test_reset_history(family_state, now):
    """Test that reset removes the entry and is a no-op when absent."""
    state = complete_reading(family_state, 'book-1', 'u-kid', now=now)
    state = reset_history(state, 'book-1', 'u-kid')
    assert entry_for(state, 'u-kid', 'book-1') is None
    assert reset_history(state, 'book-1', 'u-kid') is state


def test_unknown_user_falls_back_to_active_user(family_state, now):
    """Test that an unknown user id records history against the active user."""
    state = complete_reading(family_state, 'book-1', 'ghost', now=now)
    assert entry_for(state, 'u-admin', 'book-1').status == ReadStatus.COMPLETED
    assert entry_for(state, 'u-kid', 'book-1') is None


def test_no_users_returns_state_unchanged(now):
    """Test that history operations on a library without users do nothing."""
    state = AppState()
    for operation in (complete_reading, toggle_read_status):
        assert operation(state, 'demo-9780141439518', None, now=now) is state
    for operation in (resume_reading, undo_last_read, reset_history):
        assert operation(state, 'demo-9780141439518', None) is state


def test_history_is_per_user(family_state, now):
    """Test that one user's reads do not appear in another user's history."""
    state = complete_reading(family_state, 'book-1', 'u-admin', now=now)
    assert entry_for(state, 'u-admin', 'book-1') is not None
    assert entry_for(state, 'u-kid', 'book-1') is None


def test_book_status_is_library_wide_summary(family_state, now):
    """Test that the book's status reflects any user's completion and falls back when undone."""
    state = complete_reading(family_state, 'book-1', 'u-kid', now=now)
    assert state.books[0].status == ReadStatus.COMPLETED

    state = resume_reading(state, 'book-1', 'u-kid')
    assert state.books[0].status == ReadStatus.READING

    state = complete_reading(state, 'book-1', 'u-admin', now=now)
    assert state.books[0].status == ReadStatus.COMPLETED
    assert library_status(state, 'book-1') == ReadStatus.COMPLETED

    state = reset_history(state, 'book-1', 'u-admin')
    state = reset_history(state, 'book-1', 'u-kid')
    assert state.books[0].status == ReadStatus.UNREAD


def test_history_does_not_mutate_input(family_state, now):
    """Test that operations leave the original state untouched."""
    before = family_state.model_dump()
    toggle_read_status(family_state, 'book-1', 'u-kid', now=now)
    assert family_state.model_dump() == before
