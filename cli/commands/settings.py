# cli/commands/settings.py
import click
from typing import Optional
from core.models.state import AiProvider, BackupFrequency, DbType, Theme
from core.sa.database import Database
from core.services.ai_service import EnrichmentService
from ..utils import get_store, warn_if_unsaved

@click.group()
def settings():
    """Application settings"""
    pass

def _mask(value: str) -> str:
    return '*' * 8 if value else '(not set)'

def _update_group(store, field: str, **values):
    """Replace a settings group with the given fields changed"""
    values = {k: v for k, v in values.items() if v is not None}
    if not values:
        click.echo("Nothing to change")
        return False
    current = getattr(store.state, f"{field}_settings")
    store.dispatch('update_settings', **{field: current.model_copy(update=values)})
    warn_if_unsaved(store)
    click.echo(click.style("Settings saved", fg='green'))
    return True

@settings.command()
def show():
    """Show all settings"""
    state = get_store().state
    ai, db, backup, qol = state.ai_settings, state.db_settings, state.backup_settings, state.qol_settings
    click.echo(click.style("AI", fg='blue'))
    click.echo(f"  Provider: {ai.provider.value}")
    click.echo(f"  Ollama: {ai.ollama_url} ({ai.ollama_model})")
    click.echo(f"  Gemini key: {_mask(ai.gemini_api_key)}")
    click.echo(click.style("Database", fg='blue'))
    click.echo(f"  {db.type.value} {db.host}/{db.name}")
    click.echo(click.style("Backups", fg='blue'))
    click.echo(f"  Frequency: {backup.frequency.value}  Last: {backup.last_backup_date or 'Never'}")
    click.echo(f"  Local: {backup.enabled_local}  NAS: {backup.enabled_nas} {backup.nas_path}  Drive: {backup.enabled_drive}")
    click.echo(click.style("APIs", fg='blue'))
    click.echo(f"  Google Books key: {_mask(state.api_settings.google_key)}")
    click.echo(click.style("Display", fg='blue'))
    click.echo(f"  Theme: {state.theme.value}  Show values: {qol.show_value}  Vibrant UI: {qol.vibrant_ui}  "
               f"Auto analyze: {qol.auto_analyze}")

@settings.command()
@click.option('--provider', type=click.Choice([p.value for p in AiProvider]), default=None)
@click.option('--ollama-url', default=None)
@click.option('--ollama-model', default=None)
@click.option('--gemini-key', default=None, help='Gemini API key')
@click.option('--test', is_flag=True, help='Check that the provider is reachable afterwards')
def ai(provider, ollama_url, ollama_model, gemini_key, test):
    """Configure the AI provider"""
    store = get_store()
    _update_group(store, 'ai', provider=AiProvider(provider) if provider else None,
                  ollama_url=ollama_url, ollama_model=ollama_model, gemini_api_key=gemini_key)
    if test:
        ok = EnrichmentService(store.state.ai_settings).check_connection()
        click.echo(click.style("Provider OK", fg='green') if ok else click.style("Provider unreachable", fg='red'))

@settings.command()
@click.option('--type', 'db_type', type=click.Choice([t.value for t in DbType]), default=None)
@click.option('--host', default=None)
@click.option('--name', default=None)
@click.option('--check', is_flag=True, help='Try connecting to the configured database')
def db(db_type, host, name, check):
    """Configure the database descriptor"""
    store = get_store()
    _update_group(store, 'db', type=DbType(db_type) if db_type else None, host=host, name=name)
    if check:
        database = Database.from_settings(store.state.db_settings)
        ok = database.check_connection()
        database.dispose()
        click.echo(click.style("Connection OK", fg='green') if ok else click.style("Connection failed", fg='red'))

@settings.command()
@click.option('--frequency', type=click.Choice([f.value for f in BackupFrequency]), default=None)
@click.option('--local/--no-local', default=None, help='Write backups to the local backup directory')
@click.option('--nas/--no-nas', default=None, help='Write backups to the NAS path')
@click.option('--nas-path', default=None)
@click.option('--drive/--no-drive', default=None, help='Google Drive backups')
def backup(frequency, local, nas, nas_path, drive):
    """Configure backups"""
    store = get_store()
    _update_group(store, 'backup', frequency=BackupFrequency(frequency) if frequency else None,
                  enabled_local=local, enabled_nas=nas, nas_path=nas_path, enabled_drive=drive)

@settings.command()
@click.option('--google-key', default=None, help='Google Books API key')
@click.option('--whisper-url', default=None)
@click.option('--whisper-key', default=None)
def api(google_key, whisper_url, whisper_key):
    """Configure external API keys"""
    _update_group(get_store(), 'api', google_key=google_key, whisper_url=whisper_url, whisper_key=whisper_key)

@settings.command()
@click.option('--show-value/--hide-value', default=None, help='Show prices and values')
@click.option('--vibrant/--plain', default=None, help='Vibrant colours')
@click.option('--auto-analyze/--no-auto-analyze', default=None, help='Analyze new books automatically')
def display(show_value, vibrant, auto_analyze):
    """Quality-of-life display settings"""
    _update_group(get_store(), 'qol', show_value=show_value, vibrant_ui=vibrant, auto_analyze=auto_analyze)

@settings.command()
@click.argument('theme', type=click.Choice([t.value for t in Theme]))
def theme(theme: str):
    """Switch between dark and light theme"""
    store = get_store()
    store.dispatch('update_settings', theme=Theme(theme))
    warn_if_unsaved(store)
    click.echo(f"Theme set to {theme}")
