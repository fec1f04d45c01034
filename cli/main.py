# cli/main.py
import click
from core.config import load_settings
from core.errors import ValidationError
from core.utils.log import setup_logging
from .utils import AppContext
from .commands.book import book
from .commands.author import author
from .commands.library import library

@click.group()
@click.option('--database-url', default=None, envvar='DATABASE_URL', help='Database URL (default: sqlite:///books.db)')
@click.option('--collection-root', default=None, envvar='COLLECTION_ROOT',
              type=click.Path(file_okay=False), help='Directory laid out as <author>/<title> (<id>)/')
@click.option('--verbose/--no-verbose', default=False, help='Show detailed progress and debug logging')
@click.pass_context
def cli(ctx, database_url, collection_root, verbose):
    """Book Tracker CLI"""
    if ctx.obj is None:
        try:
            settings = load_settings().with_overrides(
                database_url=database_url,
                collection_root=collection_root
            )
        except ValidationError as e:
            raise click.UsageError(str(e))
        ctx.obj = AppContext(settings, verbose=verbose)
    elif verbose:
        ctx.obj.verbose = True

    setup_logging('DEBUG' if ctx.obj.verbose else ctx.obj.settings.log_level)

cli.add_command(book)
cli.add_command(author)
cli.add_command(library)

def main():
    """Entry point for the CLI"""
    cli()

if __name__ == '__main__':
    main()
