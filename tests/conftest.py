# tests/conftest.py
import sys
import pytest
from pathlib import Path
from datetime import date, datetime, UTC, timedelta

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from core.models.state import (
    AppState, Book, BookCondition, Location, LocationType, Loan, Role, User,
)
from core.sa.database import Database
from core.services.storage_service import StorageService

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


def years_ago(years: int) -> date:
    """A birth date giving exactly `years` of age for the rest of this year"""
    return date(date.today().year - years, 1, 1)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def database(tmp_path):
    """A fresh SQLite database file per test"""
    db = Database(f"sqlite:///{tmp_path / 'test_library.db'}")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def storage(database):
    return StorageService(database, key='test_slot')


@pytest.fixture
def admin():
    return User(
        id='u-admin', name='Priya', dob=years_ago(38), gender='Female', role=Role.ADMIN,
        education_level='Postgraduate', parent_role='Mom', profession='Doctor',
    )


@pytest.fixture
def child():
    return User(id='u-kid', name='Ananya', dob=years_ago(10), gender='Female', role=Role.USER)


@pytest.fixture
def locations():
    return [
        Location(id='room-1', name='Living Room', type=LocationType.ROOM),
        Location(id='shelf-1', name='Shelf A', type=LocationType.SHELF, parent_id='room-1'),
        Location(id='spot-1', name='Box 1', type=LocationType.SPOT, parent_id='shelf-1'),
    ]


@pytest.fixture
def books():
    return [
        Book(
            id='book-1', title='Dune', author='Frank Herbert', isbn='9780441013593',
            genres=['Sci-Fi', 'Classic'], min_age=14, location_id='shelf-1',
            estimated_value=500, total_pages=400,
            added_by_user_id='u-admin', added_by_user_name='Priya', added_date=NOW - timedelta(days=2),
        ),
        Book(
            id='book-2', title='The Gruffalo', author='Julia Donaldson',
            genres=['Picture Book'], min_age=3, condition=BookCondition.DAMAGED,
            purchase_price=200, total_pages=32,
            added_by_user_id='u-kid', added_by_user_name='Ananya', added_date=NOW - timedelta(days=20),
        ),
        Book(
            id='book-3', title="The Wizard's Tale", author='A. Writer', genres=['Fantasy', 'Classic'],
            location_id='missing-loc', added_by_user_id='u-admin', added_date=NOW - timedelta(days=40),
        ),
    ]


@pytest.fixture
def family_state(admin, child, locations, books):
    """A set-up library with two users, a small location tree and three books"""
    return AppState(
        is_setup_complete=True,
        is_demo_mode=False,
        users=[admin, child],
        current_user='u-admin',
        locations=locations,
        books=books,
        loans=[
            Loan(id='loan-1', book_id='book-1', borrower_name='Rahul', loan_date=NOW - timedelta(days=31)),
        ],
    )


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    """Point the CLI at a temporary database"""
    url = f"sqlite:///{tmp_path / 'cli_library.db'}"
    monkeypatch.setenv('BIBLIOPI_DATABASE_URL', url)
    monkeypatch.setenv('BIBLIOPI_BACKUP_DIR', str(tmp_path / 'backups'))
    monkeypatch.setenv('BIBLIOPI_MIN_BACKUP_FREE_MB', '0')
    return url
