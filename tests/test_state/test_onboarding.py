# tests/test_state/test_onboarding.py
import pytest

from core.models.state import AiProvider, AiSettings, DbSettings, DbType, LocationType, Role, Theme
from core.state.onboarding import (
    DEFAULT_ROOMS, STARTER_BOOKS, build_room, initial_state, initialize_from_onboarding,
)
from core.state.selectors import select_active_user


def test_initial_state_is_demo_catalogue():
    """Test that a fresh install shows the starter books in demo mode."""
    state = initial_state()
    assert not state.is_setup_complete
    assert state.is_demo_mode
    assert state.users == []
    assert len(state.books) == len(STARTER_BOOKS) == 8
    assert all(b.id.startswith('demo-') for b in state.books)


def test_build_room():
    """Test that each room comes with two shelves and a spot."""
    room, *children = build_room('Study')
    assert room.type == LocationType.ROOM
    assert [(c.name, c.type) for c in children] == [
        ('Shelf A', LocationType.SHELF), ('Shelf B', LocationType.SHELF), ('Box 1', LocationType.SPOT),
    ]
    assert all(c.parent_id == room.id for c in children)


def test_initialize_from_onboarding(now):
    """Test that onboarding creates the admin, rooms and owned copies of the starter books."""
    ai = AiSettings(provider=AiProvider.OLLAMA)
    state = initialize_from_onboarding(
        initial_state(), 'Priya', ai, ['Living Room', 'Kids Room'], STARTER_BOOKS[:2], now=now,
    )
    assert state.is_setup_complete
    assert not state.is_demo_mode
    assert state.loans == []
    assert state.ai_settings == ai

    admin = select_active_user(state)
    assert admin.name == 'Priya'
    assert admin.role == Role.ADMIN
    assert state.current_user == admin.id

    rooms = [l for l in state.locations if l.type == LocationType.ROOM]
    assert [r.name for r in rooms] == ['Living Room', 'Kids Room']
    assert len(state.locations) == 8

    assert len(state.books) == 2
    first = state.books[0]
    assert first.added_by_user_id == admin.id
    assert first.added_date == now
    assert first.location_id == rooms[0].id
    assert first.purchase_price == pytest.approx(STARTER_BOOKS[0].estimated_value * 0.8)
    assert first.amazon_link == 'https://www.amazon.in/s?k=Pride%20and%20Prejudice'
    assert not first.id.startswith('demo-')


def test_onboarding_defaults(now):
    """Test the fallbacks for a blank name and no rooms."""
    state = initialize_from_onboarding(initial_state(), '  ', AiSettings(), ['', ' '], [], now=now)
    assert state.users[0].name == 'Admin'
    rooms = [l.name for l in state.locations if l.type == LocationType.ROOM]
    assert rooms == DEFAULT_ROOMS
    assert state.books == []


def test_onboarding_keeps_theme_and_takes_db_settings(now):
    """Test that the theme carries over and database settings are applied when given."""
    start = initial_state().model_copy(update={'theme': Theme.LIGHT})
    db = DbSettings(type=DbType.POSTGRES, host='nas.local')
    state = initialize_from_onboarding(start, 'Priya', AiSettings(), ['Den'], [], db_settings=db, now=now)
    assert state.theme == Theme.LIGHT
    assert state.db_settings == db
