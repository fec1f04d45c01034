import click
from typing import Optional, Tuple
from core.resolvers.book_importer import BookImporter
from core.services.book_service import BookService
from core.services.search_service import SearchService, SearchType
from ..utils import pass_app, handle_errors, describe_ownership

@click.group()
def book():
    """Book related commands"""
    pass

@book.command('import')
@click.argument('external_id')
@pass_app
@handle_errors
def import_book(app, external_id: str):
    """Import a book from the catalogue

    Example:
        booktracker book import 328491
    """
    session = app.session()
    try:
        importer = BookImporter(session, app.client, app.ownership_index)
        book_obj = importer.import_book(external_id)

        click.echo(click.style("Successfully imported book:", fg='green'))
        click.echo(f"  ID: {book_obj.id}")
        click.echo(f"  Title: {book_obj.title}")
        click.echo(f"  Author(s): {', '.join(author.name for author in book_obj.authors)}")
        click.echo(f"  Ownership: {describe_ownership(book_obj)}")
    finally:
        session.close()

@book.command()
@click.argument('book_id', type=int)
@pass_app
@handle_errors
def show(app, book_id: int):
    """Show a book and its authors"""
    session = app.session()
    try:
        book_obj = BookService(session).get_book_with_authors(book_id)

        click.echo(click.style(book_obj.title, fg='cyan', bold=True))
        click.echo(f"  ID: {book_obj.id} (catalogue {book_obj.external_id})")
        click.echo(f"  Author(s): {', '.join(author.name for author in book_obj.authors) or '-'}")
        if book_obj.isbn:
            click.echo(f"  ISBN: {book_obj.isbn}")
        if book_obj.publication_date:
            click.echo(f"  Published: {book_obj.publication_date.year}")
        click.echo(f"  Ownership: {describe_ownership(book_obj)}")
        if book_obj.deleted:
            click.echo(click.style("  Deleted", fg='red'))
    finally:
        session.close()

@book.command()
@click.argument('book_id', type=int)
@click.option('--manual/--auto', default=True,
              help='Manual ownership is never changed by a rescan (default: manual)')
@pass_app
@handle_errors
def own(app, book_id: int, manual: bool):
    """Mark a book as owned"""
    session = app.session()
    try:
        book_obj = BookService(session).update_ownership(book_id, owned=True, manual=manual)
        click.echo(f"{book_obj.title}: {describe_ownership(book_obj)}")
    finally:
        session.close()

@book.command()
@click.argument('book_id', type=int)
@pass_app
@handle_errors
def disown(app, book_id: int):
    """Mark a book as not owned"""
    session = app.session()
    try:
        book_obj = BookService(session).update_ownership(book_id, owned=False)
        click.echo(f"{book_obj.title}: {describe_ownership(book_obj)}")
    finally:
        session.close()

@book.command()
@click.argument('book_id', type=int)
@pass_app
@handle_errors
def delete(app, book_id: int):
    """Delete a book (it will not be imported again)"""
    session = app.session()
    try:
        book_obj = BookService(session).delete_book(book_id)
        click.echo(click.style(f"Deleted: {book_obj.title}", fg='yellow'))
    finally:
        session.close()

@book.command('bulk-update')
@click.argument('book_ids', nargs=-1, type=int, required=True)
@click.option('--owned/--not-owned', default=None, help='Set manual ownership on or off')
@click.option('--deleted/--restored', default=None, help='Delete or restore the books')
@pass_app
@handle_errors
def bulk_update(app, book_ids: Tuple[int, ...], owned: Optional[bool], deleted: Optional[bool]):
    """Update ownership or deletion state of several books at once

    Example:
        booktracker book bulk-update 3 4 5 --owned
        booktracker book bulk-update 7 8 --deleted
    """
    session = app.session()
    try:
        count = BookService(session).bulk_update(book_ids, owned=owned, deleted=deleted)
        click.echo(click.style(f"Updated {count} books", fg='green'))
    finally:
        session.close()

@book.command()
@click.argument('query')
@click.option('--page', default=1, type=int, help='Result page')
@click.option('--isbn', 'by_isbn', is_flag=True, help='Treat the query as an ISBN')
@pass_app
@handle_errors
def search(app, query: str, page: int, by_isbn: bool):
    """Search the catalogue for books"""
    session = app.session()
    try:
        service = SearchService(session, app.client)
        response = service.search(query, SearchType.ISBN if by_isbn else SearchType.TITLE, page)

        if not response.results:
            click.echo("No books found")
            return

        status_colors = {'imported': 'green', 'deleted': 'red', 'not_imported': 'white'}
        for result in response.results:
            authors = ', '.join(a.name for a in result.book.authors) or 'Unknown author'
            year = f" ({result.book.publication_date[:4]})" if result.book.publication_date else ''
            click.echo(
                click.style(f"{result.book.external_id:>10} ", fg='cyan') +
                f"{result.book.title}{year} - {authors} " +
                click.style(f"[{result.status}]", fg=status_colors[result.status])
            )
        if response.has_more:
            click.echo(click.style(f"\nMore results: --page {response.page + 1}", fg='blue'))
    finally:
        session.close()

@book.command()
@click.argument('external_id')
@pass_app
@handle_errors
def status(app, external_id: str):
    """Show whether a catalogue book is in the library"""
    session = app.session()
    try:
        importer = BookImporter(session, app.client, app.ownership_index)
        result = importer.check_book_status(external_id)
        if not result.exists:
            click.echo(f"Book {external_id}: not imported")
        elif result.deleted:
            click.echo(click.style(f"Book {external_id}: deleted (book {result.book_id})", fg='red'))
        else:
            click.echo(click.style(f"Book {external_id}: imported (book {result.book_id})", fg='green'))
    finally:
        session.close()

@book.command()
@pass_app
@handle_errors
def deleted(app):
    """List deleted books (these are refused on import)"""
    session = app.session()
    try:
        books = BookService(session).list_deleted()
        if not books:
            click.echo("No deleted books")
            return
        for book_obj in books:
            click.echo(click.style(f"{book_obj.id:>6} ", fg='red') +
                      f"{book_obj.title} (catalogue {book_obj.external_id})")
    finally:
        session.close()
