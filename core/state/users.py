# core/state/users.py
import logging
from datetime import date
from typing import Optional

from core.exceptions import ProfileValidationError
from core.models.state import AppState, Role, User
from core.state.selectors import find_user, resolve_user
from core.utils.formatting import calculate_age, calculate_grade

logger = logging.getLogger(__name__)

ADMIN_MIN_AGE = 18


def with_derived_fields(user: User, today: Optional[date] = None) -> User:
    """Recompute age and grade from the birth date.

    Readers get a school grade; admins show their education level instead.
    """
    age = calculate_age(user.dob, today) if user.dob else None
    if user.role == Role.USER:
        grade = calculate_grade(user.dob, today) if user.dob else None
    else:
        grade = user.education_level
    return user.model_copy(update={'age': age, 'grade': grade})


def validate_user(user: User, today: Optional[date] = None) -> None:
    """Check a profile before it is saved.

    Raises:
        ProfileValidationError: If the name or birth date is missing, the
            birth date is in the future, or an admin is under 18
    """
    if not user.name or not user.name.strip():
        raise ProfileValidationError("Name is required")
    if user.dob is None:
        raise ProfileValidationError("Date of birth is required")
    today = today or date.today()
    if user.dob > today:
        raise ProfileValidationError("Date of birth cannot be in the future")
    if user.role == Role.ADMIN and calculate_age(user.dob, today) < ADMIN_MIN_AGE:
        raise ProfileValidationError(f"Admins must be at least {ADMIN_MIN_AGE} years old")


def upsert_user(state: AppState, user: User) -> AppState:
    """Replace the user with the same id, or append it"""
    user = with_derived_fields(user)
    if find_user(state, user.id) is None:
        users = list(state.users) + [user]
    else:
        users = [user if u.id == user.id else u for u in state.users]
    return state.model_copy(update={'users': users})


def delete_user(state: AppState, user_id: str) -> AppState:
    """Remove a profile. The current user moves to the first remaining profile."""
    users = [u for u in state.users if u.id != user_id]
    if len(users) == len(state.users):
        return state
    update = {'users': users}
    if state.current_user == user_id:
        update['current_user'] = users[0].id if users else None
    return state.model_copy(update=update)


def set_current_user(state: AppState, user_id: str) -> AppState:
    """Switch the active profile. Unknown ids are ignored."""
    if find_user(state, user_id) is None:
        logger.debug("Ignoring switch to unknown user %s", user_id)
        return state
    return state.model_copy(update={'current_user': user_id})


def toggle_favorite(state: AppState, book_id: str, user_id: Optional[str] = None) -> AppState:
    user = resolve_user(state, user_id)
    if user is None:
        return state
    if book_id in user.favorites:
        favorites = [f for f in user.favorites if f != book_id]
    else:
        favorites = list(user.favorites) + [book_id]
    updated = user.model_copy(update={'favorites': favorites})
    return state.model_copy(update={
        'users': [updated if u.id == user.id else u for u in state.users]
    })
