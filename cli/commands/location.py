# cli/commands/location.py
import click
from typing import Optional
from core.exceptions import BiblioPiError
from core.state.locations import new_location, validate_location
from core.state.selectors import books_at_location, descendant_ids, location_tree
from core.utils.image import read_image, to_data_url
from ..utils import confirm_or_abort, fail, get_store, lookup_location, warn_if_unsaved

@click.group()
def location():
    """Rooms, shelves and spots"""
    pass

def _photo(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    try:
        return to_data_url(read_image(path, max_size=800))
    except (OSError, ValueError) as e:
        fail(f"Could not read image: {e}")

@location.command(name='list')
def list_locations():
    """Show the location tree with book counts"""
    state = get_store().state
    tree = location_tree(state)
    if not tree:
        click.echo("No locations yet")
        return
    for depth, loc in tree:
        count = len(books_at_location(state, loc.id))
        click.echo("  " * depth + click.style(loc.name, bold=depth == 0) +
                   click.style(f" ({loc.type.value}, {count} books)", fg='blue') +
                   click.style(f"  {loc.id}", fg='cyan'))

@location.command()
@click.argument('name')
@click.option('--parent', default=None, help='Parent location id or label')
@click.option('--image', type=click.Path(exists=True, dir_okay=False), default=None, help='Photo of the location')
def add(name: str, parent: Optional[str], image: Optional[str]):
    """Add a room, or a shelf/spot inside a parent

    Example:
        bibliopi location add "Living Room"
        bibliopi location add "Top Shelf" --parent "Living Room"
    """
    store = get_store()
    parent_id = lookup_location(store.state, parent).id if parent else None
    created = new_location(store.state, name, parent_id, _photo(image))
    try:
        validate_location(store.state, created)
    except BiblioPiError as e:
        fail(str(e))
    store.dispatch('upsert_location', location=created)
    warn_if_unsaved(store)
    click.echo(click.style(f"Added {created.type.value} '{created.name}'", fg='green') + f" ({created.id})")

@location.command()
@click.argument('ref')
@click.option('--name', default=None, help='New name')
@click.option('--image', type=click.Path(exists=True, dir_okay=False), default=None, help='New photo')
def edit(ref: str, name: Optional[str], image: Optional[str]):
    """Rename a location or replace its photo"""
    store = get_store()
    loc = lookup_location(store.state, ref)
    update = {}
    if name:
        update['name'] = name.strip()
    if image:
        update['image_url'] = _photo(image)
    if not update:
        click.echo("Nothing to change")
        return
    changed = loc.model_copy(update=update)
    try:
        validate_location(store.state, changed)
    except BiblioPiError as e:
        fail(str(e))
    store.dispatch('upsert_location', location=changed)
    warn_if_unsaved(store)
    click.echo(click.style(f"Updated '{changed.name}'", fg='green'))

@location.command()
@click.argument('ref')
@click.option('--yes', is_flag=True, help='Delete without asking')
def delete(ref: str, yes: bool):
    """Delete a location and everything inside it"""
    store = get_store()
    loc = lookup_location(store.state, ref)
    nested = descendant_ids(store.state, loc.id)
    message = f"Delete '{loc.name}'"
    if nested:
        message += f" and {len(nested)} nested locations"
    confirm_or_abort(message + "?", yes)
    store.dispatch('delete_location', location_id=loc.id)
    warn_if_unsaved(store)
    click.echo(click.style(f"Deleted {len(nested) + 1} locations", fg='yellow'))
