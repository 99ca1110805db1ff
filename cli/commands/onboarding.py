# cli/commands/onboarding.py
import click
from core.exceptions import BiblioPiError
from core.models.state import AiProvider, DbSettings, DbType, Role, User
from core.state.onboarding import DEFAULT_ROOMS, STARTER_BOOKS
from core.state.users import validate_user
from ..utils import DATE_FORMATS, confirm_or_abort, fail, get_store, warn_if_unsaved

@click.group()
def setup():
    """First-run setup and factory reset"""
    pass

@setup.command()
def status():
    """Show whether the library has been set up"""
    store = get_store()
    state = store.state
    if store.unreadable_storage:
        click.echo(click.style("Stored library could not be read: ", fg='red')
                   + "showing the demo library. Restore a backup or reset to continue.")
    elif state.is_setup_complete:
        click.echo(click.style("Library is set up", fg='green'))
    else:
        click.echo(click.style("Demo mode: ", fg='yellow') + "run 'bibliopi setup run' to create your library")
    click.echo(f"Books: {len(state.books)}  Users: {len(state.users)}  Locations: {len(state.locations)}")

@setup.command(name='run')
@click.option('--admin', 'admin_name', prompt='Your name', help='Name of the admin profile')
@click.option('--dob', type=click.DateTime(formats=DATE_FORMATS), prompt='Date of birth (YYYY-MM-DD)',
              help='Admin date of birth')
@click.option('--room', 'rooms', multiple=True, help=f"Room to create (repeatable, default: {', '.join(DEFAULT_ROOMS)})")
@click.option('--provider', type=click.Choice([p.value for p in AiProvider]), default='gemini',
              help='AI provider used for cover analysis')
@click.option('--ollama-url', default='http://localhost:11434', help='Ollama base URL')
@click.option('--ollama-model', default='llama3.2', help='Ollama model name')
@click.option('--db-type', type=click.Choice([t.value for t in DbType]), default='sqlite', help='Database type')
@click.option('--starter/--no-starter', default=True, help='Add the starter book collection')
@click.option('--yes', is_flag=True, help='Replace an existing library without asking')
def run(admin_name, dob, rooms, provider, ollama_url, ollama_model, db_type, starter, yes):
    """Create the admin profile, rooms and starter books

    Example:
        bibliopi setup run --admin Priya --dob 1987-08-22 --room "Living Room" --room Study
    """
    store = get_store()
    if store.state.is_setup_complete:
        confirm_or_abort("A library already exists. Replace it?", yes)

    try:
        validate_user(User(id='new', name=admin_name, dob=dob.date(), role=Role.ADMIN))
    except BiblioPiError as e:
        fail(str(e))

    state = store.dispatch(
        'initialize_from_onboarding',
        admin_name=admin_name,
        admin_dob=dob.date(),
        ai_settings=store.state.ai_settings.model_copy(update={
            'provider': AiProvider(provider),
            'ollama_url': ollama_url,
            'ollama_model': ollama_model,
        }),
        rooms=list(rooms),
        starter_books=STARTER_BOOKS if starter else [],
        db_settings=DbSettings(type=DbType(db_type)),
    )
    warn_if_unsaved(store)
    click.echo(click.style(f"Welcome, {admin_name}!", fg='green'))
    click.echo(f"Created {len(state.locations)} locations and {len(state.books)} books")

@setup.command()
@click.option('--yes', is_flag=True, help='Reset without asking')
def reset(yes):
    """Erase everything and return to the demo library"""
    confirm_or_abort("This deletes all books, users, locations and loans. Continue?", yes)
    get_store().reset()
    click.echo(click.style("Library reset to demo mode", fg='yellow'))
