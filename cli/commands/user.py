# cli/commands/user.py
import click
from core.exceptions import BiblioPiError
from core.models.state import Role, User
from core.state.selectors import completed_reads, select_active_user
from core.state.users import validate_user
from core.utils.formatting import generate_id
from ..utils import DATE_FORMATS, confirm_or_abort, fail, get_store, lookup_user, warn_if_unsaved

@click.group()
def user():
    """Family member profiles"""
    pass

def _save(store, profile: User):
    try:
        validate_user(profile)
    except BiblioPiError as e:
        fail(str(e))
    store.dispatch('upsert_user', user=profile)
    warn_if_unsaved(store)

@user.command(name='list')
def list_users():
    """List profiles"""
    state = get_store().state
    active = select_active_user(state)
    if not state.users:
        click.echo("No users yet")
        return
    for u in state.users:
        marker = click.style('*', fg='green') if active and u.id == active.id else ' '
        details = ', '.join(p for p in (u.role.value, f"age {u.age}" if u.age is not None else None, u.grade) if p)
        click.echo(f"{marker} {click.style(u.id, fg='cyan')}  {u.name} ({details}) - {completed_reads(u)} reads")

@user.command()
@click.option('--name', required=True, help='Display name')
@click.option('--dob', type=click.DateTime(formats=DATE_FORMATS), required=True, help='Date of birth (YYYY-MM-DD)')
@click.option('--role', type=click.Choice([r.value for r in Role]), default='User', help='Admin or User')
@click.option('--gender', default='Male')
@click.option('--education', default=None, help='Education level')
@click.option('--parent-role', default=None, help='e.g. Mom, Dad')
@click.option('--profession', default=None)
def add(name, dob, role, gender, education, parent_role, profession):
    """Add a family member"""
    store = get_store()
    profile = User(
        id=generate_id(), name=name.strip(), dob=dob.date(), role=Role(role), gender=gender,
        education_level=education, parent_role=parent_role, profession=profession,
        avatar_seed=name.strip(),
    )
    _save(store, profile)
    click.echo(click.style(f"Added {profile.name}", fg='green') + f" ({profile.id})")

@user.command()
@click.argument('ref')
@click.option('--name', default=None)
@click.option('--dob', type=click.DateTime(formats=DATE_FORMATS), default=None)
@click.option('--role', type=click.Choice([r.value for r in Role]), default=None)
@click.option('--education', default=None)
@click.option('--profession', default=None)
def edit(ref, name, dob, role, education, profession):
    """Update a profile"""
    store = get_store()
    existing = lookup_user(store.state, ref)
    if name is not None and not name.strip():
        fail("Name cannot be blank")
    if role == Role.USER.value and existing.role == Role.ADMIN:
        admins = [u for u in store.state.users if u.role == Role.ADMIN]
        if len(admins) == 1:
            fail("Cannot demote the only admin")
    update = {
        'name': name.strip() if name else None,
        'dob': dob.date() if dob else None,
        'role': Role(role) if role else None,
        'education_level': education,
        'profession': profession,
    }
    update = {k: v for k, v in update.items() if v is not None}
    if not update:
        click.echo("Nothing to change")
        return
    _save(store, existing.model_copy(update=update))
    click.echo(click.style(f"Updated {update.get('name', existing.name)}", fg='green'))

@user.command()
@click.argument('ref')
def switch(ref: str):
    """Make a profile the active user"""
    store = get_store()
    target = lookup_user(store.state, ref)
    store.dispatch('set_current_user', user_id=target.id)
    warn_if_unsaved(store)
    click.echo(f"Now using {click.style(target.name, fg='green')}")

@user.command()
@click.argument('ref')
@click.option('--yes', is_flag=True, help='Delete without asking')
def delete(ref: str, yes: bool):
    """Remove a profile and its reading history"""
    store = get_store()
    target = lookup_user(store.state, ref)
    admins = [u for u in store.state.users if u.role == Role.ADMIN]
    if target.role == Role.ADMIN and len(admins) == 1:
        fail("Cannot delete the only admin")
    confirm_or_abort(f"Delete {target.name} and their reading history?", yes)
    store.dispatch('delete_user', user_id=target.id)
    warn_if_unsaved(store)
    click.echo(click.style(f"Deleted {target.name}", fg='yellow'))
