# core/state/onboarding.py
"""First-run setup: the demo catalogue and the onboarding transition."""
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional
from urllib.parse import quote

from core.models.state import (
    AiSettings, AppState, Book, BookCondition, DbSettings, Location,
    LocationType, Role, User,
)
from core.utils.formatting import generate_id, utc_now

logger = logging.getLogger(__name__)

DEFAULT_ROOMS = ['Living Room', 'Study']
PURCHASE_PRICE_RATIO = 0.8
STORE_SEARCH_URL = 'https://www.amazon.in/s?k={}'

# Sub-locations created inside every onboarding room
DEFAULT_SUB_LOCATIONS = [
    ('Shelf A', LocationType.SHELF),
    ('Shelf B', LocationType.SHELF),
    ('Box 1', LocationType.SPOT),
]

STARTER_BOOKS: List[Book] = [
    Book(
        id='demo-9780141439518', isbn='9780141439518',
        title='Pride and Prejudice', author='Jane Austen',
        genres=['Classic', 'Romance'], tags=['Essential', 'example', 'dummy'], min_age=12,
        cover_url='https://covers.openlibrary.org/b/id/14549557-L.jpg', estimated_value=450,
        summary='A romantic novel of manners following Elizabeth Bennet.',
        added_by_user_name='Dad',
    ),
    Book(
        id='demo-9780743273565', isbn='9780743273565',
        title='The Great Gatsby', author='F. Scott Fitzgerald',
        genres=['Classic', 'Fiction'], tags=['American Dream', 'example', 'dummy'], min_age=14,
        cover_url='https://covers.openlibrary.org/b/id/8408332-L.jpg', estimated_value=600,
        summary="Jay Gatsby's pursuit of Daisy Buchanan in the Jazz Age.",
        added_by_user_name='Mom',
    ),
    Book(
        id='demo-9780439139601', isbn='9780439139601',
        title="Harry Potter & Sorcerer's Stone", author='J.K. Rowling',
        genres=['Fantasy', 'Kid'], tags=['Magic', 'example', 'dummy'], min_age=9,
        cover_url='https://covers.openlibrary.org/b/id/10522194-L.jpg', estimated_value=800,
        summary="A young wizard's first year at Hogwarts.",
        added_by_user_name='Teenage Kid',
    ),
    Book(
        id='demo-9780141381381', isbn='9780141381381',
        title='Diary of a Wimpy Kid', author='Jeff Kinney',
        genres=['Comedy', 'Kid'], tags=['School', 'example', 'dummy'], min_age=7,
        cover_url='https://covers.openlibrary.org/b/id/11130384-L.jpg', estimated_value=299,
        summary='Middle school life as told by Greg Heffley.',
        added_by_user_name='Teenage Kid',
    ),
    Book(
        id='demo-9780345391803', isbn='9780345391803',
        title="The Hitchhiker's Guide to the Galaxy", author='Douglas Adams',
        genres=['Sci-Fi', 'Comedy'], tags=['Space', 'example', 'dummy'], min_age=10,
        cover_url='https://covers.openlibrary.org/b/id/12632205-L.jpg', estimated_value=350,
        summary="Arthur Dent travels the galaxy after Earth's destruction.",
        added_by_user_name='Dad',
    ),
    Book(
        id='demo-9780064404990', isbn='9780064404990',
        title='The Giver', author='Lois Lowry',
        genres=['Dystopian', 'Young Adult'], tags=['example', 'dummy'], min_age=12,
        cover_url='https://covers.openlibrary.org/b/id/14540455-L.jpg', estimated_value=400,
        summary='In a world with no pain or color, Jonas receives memories.',
        added_by_user_name='Teenage Kid',
    ),
    Book(
        id='demo-9780140228021', isbn='9780140228021',
        title='Malgudi Days', author='R.K. Narayan',
        genres=['Indian Fiction', 'Classic'], tags=['example', 'India', 'dummy'], min_age=10,
        cover_url='https://covers.openlibrary.org/b/id/14352123-L.jpg', estimated_value=250,
        summary='Short stories set in the town of Malgudi.',
        added_by_user_name='Mom',
    ),
    Book(
        id='demo-9780060244194', isbn='9780060244194',
        title='Where the Wild Things Are', author='Maurice Sendak',
        genres=['Picture Book', 'Preschool'], tags=['example', 'dummy'], min_age=3,
        cover_url='https://covers.openlibrary.org/b/id/10123512-L.jpg', estimated_value=300,
        summary="Max's journey to the land of wild things.",
        added_by_user_name='Preschool Kid',
    ),
]


def store_search_link(title: Optional[str]) -> str:
    return STORE_SEARCH_URL.format(quote(title or '', safe=''))


def initial_state() -> AppState:
    """The demo catalogue shown before setup has been completed"""
    return AppState(books=list(STARTER_BOOKS))


def build_room(name: str) -> List[Location]:
    """A room plus its default shelves and spot"""
    room = Location(id=generate_id(), name=name, type=LocationType.ROOM)
    children = [
        Location(id=generate_id(), name=child_name, type=child_type, parent_id=room.id)
        for child_name, child_type in DEFAULT_SUB_LOCATIONS
    ]
    return [room] + children


def initialize_from_onboarding(
    state: AppState,
    admin_name: str,
    ai_settings: AiSettings,
    rooms: Iterable[str],
    starter_books: Iterable[Book],
    db_settings: Optional[DbSettings] = None,
    admin_dob: Optional[date] = None,
    now: Optional[datetime] = None,
) -> AppState:
    """Replace the demo catalogue with a real household.

    Creates one Admin profile, the given rooms (with default sub-locations)
    and copies of the starter books owned by that admin. Theme and the
    remaining settings carry over from `state`.
    """
    now = now or utc_now()
    admin = User(
        id=generate_id(),
        name=admin_name.strip() or 'Admin',
        dob=admin_dob,
        role=Role.ADMIN,
        avatar_seed=admin_name.strip() or 'Admin',
    )

    room_names = [r.strip() for r in rooms if r and r.strip()] or list(DEFAULT_ROOMS)
    locations: List[Location] = []
    for name in room_names:
        locations.extend(build_room(name))
    first_room_id = locations[0].id

    books = []
    for template in starter_books:
        books.append(template.model_copy(update={
            'id': generate_id(),
            'added_by_user_id': admin.id,
            'added_by_user_name': admin.name,
            'added_date': now,
            'condition': BookCondition.GOOD,
            'is_first_edition': False,
            'is_signed': False,
            'location_id': first_room_id,
            'purchase_price': (template.estimated_value or 0) * PURCHASE_PRICE_RATIO,
            'amazon_link': store_search_link(template.title),
        }))

    logger.info(
        "Onboarding complete: admin=%s rooms=%d books=%d",
        admin.name, len(room_names), len(books)
    )
    return state.model_copy(update={
        'is_setup_complete': True,
        'is_demo_mode': False,
        'users': [admin],
        'current_user': admin.id,
        'locations': locations,
        'books': books,
        'loans': [],
        'ai_settings': ai_settings,
        'db_settings': db_settings or state.db_settings,
    })
