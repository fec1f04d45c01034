import click
from typing import Optional
from core.resolvers.author_importer import AuthorImporter
from core.services.author_service import AuthorService
from core.services.author_deletion import AuthorDeletionService
from core.services.search_service import SearchService, SearchType
from core.sa.repositories.author import PageCursor
from ..utils import ProgressTracker, pass_app, handle_errors, describe_ownership

@click.group()
def author():
    """Author management commands"""
    pass

def _print_import_summary(app, summary, action: str):
    author_obj = summary.author
    click.echo(click.style(f"\n{action}: ", fg='blue') +
              click.style(f"{author_obj.name} (ID {author_obj.id})", fg='cyan'))
    tracker = ProgressTracker(app.verbose)
    tracker.add_import_summary(summary)
    tracker.print_results('books')

@author.command('import')
@click.argument('external_id')
@pass_app
@handle_errors
def import_author(app, external_id: str):
    """Import an author and their books from the catalogue

    Books already in the library, or deleted from it, are skipped.
    Importing an author that already exists refreshes their books instead.

    Example:
        booktracker author import 204214
    """
    session = app.session()
    try:
        importer = AuthorImporter(session, app.client, app.ownership_index)
        summary = importer.import_author(external_id)
        _print_import_summary(app, summary, "Imported author" if summary.author_created else "Refreshed author")
    finally:
        session.close()

@author.command()
@click.argument('author_id', type=int)
@pass_app
@handle_errors
def refresh(app, author_id: int):
    """Import books added to the catalogue since the author was imported"""
    session = app.session()
    try:
        importer = AuthorImporter(session, app.client, app.ownership_index)
        summary = importer.refresh_author_books(author_id)
        _print_import_summary(app, summary, "Refreshed author")
    finally:
        session.close()

@author.command()
@click.argument('author_id', type=int)
@pass_app
@handle_errors
def show(app, author_id: int):
    """Show an author and their books"""
    session = app.session()
    try:
        detail = AuthorService(session).get_author_with_books(author_id)
        author_obj = detail.author

        click.echo(click.style(author_obj.name, fg='cyan', bold=True))
        click.echo(f"  ID: {author_obj.id} (catalogue {author_obj.external_id})")
        click.echo(f"  Sorts as: {author_obj.sort_key}")
        click.echo(f"  Books: {detail.active_book_count} active, {detail.total_book_count} total")
        for book_obj in detail.books:
            year = f" ({book_obj.publication_date.year})" if book_obj.publication_date else ''
            click.echo(f"    {book_obj.id:>6}  {book_obj.title}{year}  {describe_ownership(book_obj)}")
    finally:
        session.close()

@author.command()
@click.argument('author_id', type=int)
@click.argument('name')
@pass_app
@handle_errors
def rename(app, author_id: int, name: str):
    """Change an author's display name"""
    session = app.session()
    try:
        detail = AuthorService(session).update_author(author_id, name=name)
        click.echo(f"Renamed author {author_id} to {detail.author.name} "
                   f"(sorts as {detail.author.sort_key})")
    finally:
        session.close()

@author.command()
@click.argument('author_id', type=int)
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@pass_app
@handle_errors
def delete(app, author_id: int, yes: bool):
    """Permanently delete an author

    Books only this author wrote are deleted too; co-authored books
    keep their other authors.
    """
    session = app.session()
    try:
        service = AuthorDeletionService(session)
        if not yes:
            plan = service.plan(author_id)
            click.echo(f"This deletes {len(plan.sole_authored)} books and keeps "
                       f"{len(plan.co_authored)} co-authored books.")
            if not click.confirm("Delete this author permanently?"):
                click.echo("Aborted")
                return

        result = service.delete_author(author_id)
        click.echo(click.style(f"Deleted author {author_id}: ", fg='yellow') +
                  f"{result.deleted_book_count} books deleted, "
                  f"{result.preserved_book_count} co-authored books kept")
    finally:
        session.close()

@author.command('list')
@click.option('--letter', default=None, help='Only authors whose sort name starts with this letter')
@click.option('--limit', default=50, type=int, help='Page size (1-100)')
@click.option('--cursor', default=None, help='Cursor printed at the end of the previous page')
@click.option('--all', 'show_all', is_flag=True, help='Follow cursors until the last page')
@pass_app
@handle_errors
def list_authors(app, letter: Optional[str], limit: int, cursor: Optional[str], show_all: bool):
    """List authors by last name

    Example:
        booktracker author list --letter K
        booktracker author list --cursor "42:King, Stephen"
    """
    session = app.session()
    try:
        service = AuthorService(session)
        page_cursor = PageCursor.decode(cursor) if cursor else None

        while True:
            page = service.list_authors(cursor=page_cursor, letter=letter, limit=limit)
            for item in page.authors:
                click.echo(f"{item.author.id:>6}  {item.author.sort_key}  " +
                          click.style(f"({item.book_count} books)", fg='blue'))

            if not page.has_more:
                break
            if not show_all:
                click.echo(click.style(f"\nNext page: --cursor \"{page.next_cursor.encode()}\"", fg='blue'))
                break
            page_cursor = page.next_cursor
    finally:
        session.close()

@author.command()
@click.argument('query')
@click.option('--page', default=1, type=int, help='Result page')
@pass_app
@handle_errors
def search(app, query: str, page: int):
    """Search the catalogue for authors"""
    session = app.session()
    try:
        response = SearchService(session, app.client).search(query, SearchType.AUTHOR, page)
        if not response.results:
            click.echo("No authors found")
            return

        for result in response.results:
            color = 'green' if result.status == 'imported' else 'white'
            click.echo(
                click.style(f"{result.author.external_id:>10} ", fg='cyan') +
                f"{result.author.name} ({result.author.book_count} books) " +
                click.style(f"[{result.status}]", fg=color)
            )
        if response.has_more:
            click.echo(click.style(f"\nMore results: --page {response.page + 1}", fg='blue'))
    finally:
        session.close()

@author.command('backfill-sort-keys')
@pass_app
@handle_errors
def backfill_sort_keys(app):
    """Recompute stored sort names from author names"""
    session = app.session()
    try:
        updated = AuthorService(session).backfill_sort_keys()
        click.echo(f"Updated sort keys for {updated} authors")
    finally:
        session.close()
