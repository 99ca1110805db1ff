# core/state/selectors.py
"""Read-only queries over an AppState.

Screens and commands read the state through these helpers instead of walking
the collections themselves, so fallbacks such as "first user when the current
user is unknown" live in exactly one place.
"""
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple

from core.models.state import (
    AppState, Book, BookCondition, Loan, Location, ReadEntry, ReadStatus, User,
)
from core.utils.formatting import calculate_age, utc_now

OVERDUE_AFTER = timedelta(days=30)
NEW_BOOK_WINDOW = timedelta(days=7)
LIBRARY_TABS = ('all', 'unread', 'favorites', 'recent')

UNASSIGNED_LABEL = 'Unassigned'
UNKNOWN_LABEL = 'Unknown'


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def find_user(state: AppState, user_id: Optional[str]) -> Optional[User]:
    if not user_id:
        return None
    return next((u for u in state.users if u.id == user_id), None)


def find_book(state: AppState, book_id: Optional[str]) -> Optional[Book]:
    if not book_id:
        return None
    return next((b for b in state.books if b.id == book_id), None)


def find_location(state: AppState, location_id: Optional[str]) -> Optional[Location]:
    if not location_id:
        return None
    return next((l for l in state.locations if l.id == location_id), None)


def find_loan(state: AppState, loan_id: Optional[str]) -> Optional[Loan]:
    if not loan_id:
        return None
    return next((l for l in state.loans if l.id == loan_id), None)


def select_active_user(state: AppState) -> Optional[User]:
    """The current profile, falling back to the first user.

    Returns None only when there are no users at all.
    """
    return find_user(state, state.current_user) or (state.users[0] if state.users else None)


def resolve_user(state: AppState, user_id: Optional[str]) -> Optional[User]:
    """The user with `user_id`, or the active user when the id matches nothing"""
    return find_user(state, user_id) or select_active_user(state)


def user_age(user: User) -> Optional[int]:
    if user.dob is not None:
        return calculate_age(user.dob)
    return user.age


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def resolve_location_label(state: AppState, location_id: Optional[str]) -> str:
    """Human readable placement such as 'Living Room > Shelf A'"""
    if not location_id:
        return UNASSIGNED_LABEL
    location = find_location(state, location_id)
    if location is None:
        return UNKNOWN_LABEL
    parent = find_location(state, location.parent_id)
    if parent is not None:
        return f"{parent.name} > {location.name}"
    return location.name


def child_locations(state: AppState, parent_id: Optional[str]) -> List[Location]:
    return [l for l in state.locations if l.parent_id == parent_id]


def location_depth(state: AppState, location_id: str) -> int:
    """Number of parent hops up to a root. Rooms are depth 0."""
    depth = 0
    seen = {location_id}
    location = find_location(state, location_id)
    while location is not None and location.parent_id:
        if location.parent_id in seen:
            break
        seen.add(location.parent_id)
        location = find_location(state, location.parent_id)
        if location is None:
            break
        depth += 1
    return depth


def descendant_ids(state: AppState, location_id: str) -> Set[str]:
    """All locations below `location_id`, collected breadth first"""
    found: Set[str] = set()
    queue = deque([location_id])
    while queue:
        parent = queue.popleft()
        for child in child_locations(state, parent):
            if child.id not in found and child.id != location_id:
                found.add(child.id)
                queue.append(child.id)
    return found


def location_tree(state: AppState) -> List[Tuple[int, Location]]:
    """Locations in display order as (depth, location) pairs, rooms first"""
    known = {l.id for l in state.locations}
    roots = [l for l in state.locations if not l.parent_id or l.parent_id not in known]
    ordered: List[Tuple[int, Location]] = []
    visited: Set[str] = set()

    def walk(location: Location, depth: int) -> None:
        if location.id in visited:
            return
        visited.add(location.id)
        ordered.append((depth, location))
        for child in child_locations(state, location.id):
            walk(child, depth + 1)

    for root in roots:
        walk(root, 0)
    return ordered


def books_at_location(state: AppState, location_id: str) -> List[Book]:
    return [b for b in state.books if b.location_id == location_id]


# ---------------------------------------------------------------------------
# Reading history
# ---------------------------------------------------------------------------

def reading_entry(user: Optional[User], book_id: str) -> Optional[ReadEntry]:
    if user is None:
        return None
    return next((h for h in user.history if h.book_id == book_id), None)


def is_read_by(user: Optional[User], book_id: str) -> bool:
    entry = reading_entry(user, book_id)
    return entry is not None and entry.status == ReadStatus.COMPLETED


def completed_reads(user: User) -> int:
    """Total completed reads including re-reads"""
    return sum(
        (h.read_count or 1) for h in user.history if h.status == ReadStatus.COMPLETED
    )


# ---------------------------------------------------------------------------
# Loans
# ---------------------------------------------------------------------------

def is_overdue(loan: Loan, now: Optional[datetime] = None) -> bool:
    """An unreturned loan older than 30 days"""
    if loan.return_date is not None:
        return False
    return loan.loan_date < (now or utc_now()) - OVERDUE_AFTER


def overdue_loans(state: AppState, now: Optional[datetime] = None) -> List[Loan]:
    now = now or utc_now()
    return [l for l in state.loans if is_overdue(l, now)]


def open_loans(state: AppState) -> List[Loan]:
    return [l for l in state.loans if l.return_date is None]


def open_loans_for_book(state: AppState, book_id: str) -> List[Loan]:
    return [l for l in open_loans(state) if l.book_id == book_id]


def is_on_loan(state: AppState, book_id: str) -> bool:
    return bool(open_loans_for_book(state, book_id))


def borrower_label(state: AppState, loan: Loan) -> str:
    user = find_user(state, loan.user_id)
    if user is not None:
        return user.name
    return loan.borrower_name or 'Guest'


# ---------------------------------------------------------------------------
# Library views
# ---------------------------------------------------------------------------

def book_value(book: Book) -> float:
    return book.estimated_value or book.purchase_price or 0


def visible_books(state: AppState, user: Optional[User]) -> List[Book]:
    """Books the user may see given each book's minimum age"""
    age = user_age(user) if user is not None else None
    if not age:
        return list(state.books)
    return [b for b in state.books if not b.min_age or b.min_age <= age]


def _added_sort_key(book: Book) -> datetime:
    return book.added_date or datetime.min.replace(tzinfo=utc_now().tzinfo)


def recently_added(books: List[Book], limit: Optional[int] = None) -> List[Book]:
    ordered = sorted(books, key=_added_sort_key, reverse=True)
    return ordered[:limit] if limit is not None else ordered


def filter_library(
    state: AppState,
    user: Optional[User] = None,
    search: str = '',
    tab: str = 'all',
) -> List[Book]:
    """Books matching a search term and library tab for the given user.

    Tabs: all, unread, favorites, recent (all books, newest first).
    """
    user = user or select_active_user(state)
    term = (search or '').strip().lower()
    results = []
    for book in visible_books(state, user):
        if term and not (
            term in book.title.lower()
            or term in book.author.lower()
            or (book.isbn and term in book.isbn.lower())
        ):
            continue
        if tab == 'unread' and is_read_by(user, book.id):
            continue
        if tab == 'favorites' and (user is None or book.id not in user.favorites):
            continue
        results.append(book)
    if tab == 'recent':
        return recently_added(results)
    return results


def read_next(state: AppState, user: Optional[User], limit: int = 5) -> List[Book]:
    """Visible books the user has never started"""
    started = {h.book_id for h in user.history} if user else set()
    return [b for b in visible_books(state, user) if b.id not in started][:limit]


@dataclass
class DashboardStats:
    total_books: int = 0
    new_this_week: int = 0
    read_books: int = 0
    read_percentage: int = 0
    total_value: float = 0
    total_pages_read: int = 0
    top_reader: Optional[str] = None
    top_reader_reads: int = 0
    overdue_loans: int = 0
    recently_added: List[Book] = field(default_factory=list)


def dashboard_stats(state: AppState, now: Optional[datetime] = None) -> DashboardStats:
    now = now or utc_now()
    user = select_active_user(state)
    books = visible_books(state, user)

    stats = DashboardStats(total_books=len(books))
    stats.new_this_week = sum(1 for b in books if b.added_date and b.added_date >= now - NEW_BOOK_WINDOW)
    stats.read_books = sum(1 for b in books if is_read_by(user, b.id))
    if books:
        stats.read_percentage = round(stats.read_books / len(books) * 100)
    stats.total_value = sum(book_value(b) for b in books)

    if user is not None:
        for entry in user.history:
            if entry.status != ReadStatus.COMPLETED:
                continue
            book = find_book(state, entry.book_id)
            stats.total_pages_read += ((book.total_pages if book else 0) or 0) * (entry.read_count or 1)

    if state.users:
        leader = max(state.users, key=completed_reads)
        stats.top_reader = leader.name
        stats.top_reader_reads = completed_reads(leader)

    stats.overdue_loans = len(overdue_loans(state, now))
    stats.recently_added = recently_added(books, 5)
    return stats


@dataclass
class MaintenanceReport:
    unassigned_books: List[Book] = field(default_factory=list)
    overdue_loans: List[Loan] = field(default_factory=list)
    damaged_books: List[Book] = field(default_factory=list)

    @property
    def pending(self) -> int:
        return len(self.unassigned_books) + len(self.overdue_loans) + len(self.damaged_books)


def maintenance_report(state: AppState, now: Optional[datetime] = None) -> MaintenanceReport:
    return MaintenanceReport(
        unassigned_books=[b for b in state.books if not b.location_id],
        overdue_loans=overdue_loans(state, now),
        damaged_books=[b for b in state.books if b.condition == BookCondition.DAMAGED],
    )


def genre_distribution(books: List[Book], limit: int = 5) -> List[Tuple[str, int]]:
    counts: Counter = Counter()
    for book in books:
        counts.update(book.genres)
    return counts.most_common(limit)


def contributor_share(state: AppState, limit: int = 3) -> List[Tuple[User, int, int]]:
    """(user, books added, percent of collection) for the first `limit` users"""
    total = len(state.books)
    added: Dict[str, int] = Counter(b.added_by_user_id for b in state.books if b.added_by_user_id)
    shares = []
    for user in state.users[:limit]:
        count = added.get(user.id, 0)
        shares.append((user, count, round(count / total * 100) if total else 0))
    return shares
