import click
from core.services.book_service import BookService
from ..utils import pass_app, handle_errors

@click.group()
def library():
    """Library management commands"""
    pass

@library.command()
@pass_app
@handle_errors
def init(app):
    """Create the database schema"""
    app.database.init_db()
    click.echo(click.style("Database initialized", fg='green'))

@library.command()
@click.option('--force/--no-force', default=False, help='Rescan even if the last scan is recent')
@pass_app
@handle_errors
def scan(app, force: bool):
    """Update book ownership from the collection directory

    Books marked as owned by hand are never changed.

    Example:
        booktracker --collection-root /mnt/books library scan --force
    """
    session = app.session()
    try:
        summary = BookService(session, app.ownership_index).scan_and_update_ownership(force=force)

        click.echo("\n" + click.style("Results:", fg='blue'))
        click.echo(click.style("Found on disk: ", fg='blue') + click.style(str(summary.entries), fg='cyan'))
        click.echo(click.style("Matched books: ", fg='blue') + click.style(str(summary.matched), fg='cyan'))
        click.echo(click.style("Updated: ", fg='blue') + click.style(str(summary.updated), fg='green'))

        snapshot = app.ownership_index.snapshot
        if snapshot and snapshot.skipped:
            click.echo(click.style(f"Skipped {snapshot.skipped} directories not named "
                                   f"'<title> (<id>)'", fg='yellow'))
    finally:
        session.close()
