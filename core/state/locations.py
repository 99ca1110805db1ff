# core/state/locations.py
"""Physical placement tree: Room > Shelf > Spot."""
import logging
from typing import Optional

from core.exceptions import LocationValidationError
from core.models.state import AppState, Location, LocationType
from core.state.selectors import descendant_ids, find_location, location_depth
from core.utils.formatting import generate_id

logger = logging.getLogger(__name__)

MAX_DEPTH = 2

# Type given to a new child, keyed by the parent's depth
CHILD_TYPES = {
    0: LocationType.SHELF,
    1: LocationType.SPOT,
}


def validate_location(state: AppState, location: Location) -> None:
    """Check a location against the tree before it is stored.

    Raises:
        LocationValidationError: If the name is empty, the parent is unknown,
            the parent is the location itself or one of its descendants, or
            the location would sit deeper than Room > Shelf > Spot
    """
    if not location.name or not location.name.strip():
        raise LocationValidationError("Location name is required")
    if not location.parent_id:
        return
    parent = find_location(state, location.parent_id)
    if parent is None:
        raise LocationValidationError(f"Parent location {location.parent_id} not found")
    if parent.id == location.id or parent.id in descendant_ids(state, location.id):
        raise LocationValidationError("A location cannot be placed inside itself")
    if location_depth(state, parent.id) + 1 > MAX_DEPTH:
        raise LocationValidationError("Locations can only be nested two levels deep")


def upsert_location(state: AppState, location: Location) -> AppState:
    """Replace the location with the same id, or append it"""
    if find_location(state, location.id) is None:
        locations = list(state.locations) + [location]
    else:
        locations = [location if l.id == location.id else l for l in state.locations]
    return state.model_copy(update={'locations': locations})


def new_location(
    state: AppState,
    name: str,
    parent_id: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Location:
    """A location whose type follows from where it sits in the tree"""
    if parent_id is None:
        location_type = LocationType.ROOM
    else:
        location_type = CHILD_TYPES.get(location_depth(state, parent_id), LocationType.SPOT)
    return Location(
        id=generate_id(),
        name=name.strip(),
        type=location_type,
        parent_id=parent_id,
        image_url=image_url,
    )


def add_location(
    state: AppState,
    name: str,
    parent_id: Optional[str] = None,
    image_url: Optional[str] = None,
) -> AppState:
    """Create a room, or a shelf/spot under `parent_id`.

    Parents already at the deepest level, or that do not exist, are refused by
    returning the state unchanged; edges call validate_location first to tell
    the user why.
    """
    location = new_location(state, name, parent_id, image_url)
    try:
        validate_location(state, location)
    except LocationValidationError as e:
        logger.debug("Not adding location %r: %s", name, e)
        return state
    return upsert_location(state, location)


def delete_location_cascade(state: AppState, location_id: str) -> AppState:
    """Remove a location together with everything nested inside it.

    Books placed there keep their location id and show as 'Unknown'.
    """
    if find_location(state, location_id) is None:
        return state
    doomed = descendant_ids(state, location_id) | {location_id}
    logger.info("Deleting %d locations under %s", len(doomed), location_id)
    return state.model_copy(update={
        'locations': [l for l in state.locations if l.id not in doomed]
    })
