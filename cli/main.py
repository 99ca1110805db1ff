# cli/main.py
import logging
import click
from core.config import get_settings
from .commands.onboarding import setup
from .commands.book import book
from .commands.read import read
from .commands.loan import loan
from .commands.location import location
from .commands.user import user
from .commands.settings import settings
from .commands.backup import backup
from .commands.bulk_import import import_books
from .commands.report import report

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']

@click.group()
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None,
              help='Logging level (default: BIBLIOPI_LOG_LEVEL or WARNING)')
def cli(log_level):
    """BiblioPi home library"""
    level = (log_level or get_settings().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

cli.add_command(setup)
cli.add_command(book)
cli.add_command(read)
cli.add_command(loan)
cli.add_command(location)
cli.add_command(user)
cli.add_command(settings)
cli.add_command(backup)
cli.add_command(import_books)
cli.add_command(report)

def main():
    """Entry point for the CLI"""
    cli()

if __name__ == '__main__':
    main()
