import logging
from typing import NamedTuple, Optional
from sqlalchemy.orm import Session
from ..errors import AccessError, Conflict, ValidationError
from ..sa.database import transaction
from ..sa.models import Book
from ..sa.repositories.book import BookRepository
from ..catalogue.client import CatalogueClient
from ..services.ownership_index import OwnershipIndex
from .book_creator import BookCreator

logger = logging.getLogger(__name__)


class BookStatus(NamedTuple):
    exists: bool
    deleted: bool
    book_id: Optional[int]


def check_ownership(index: Optional[OwnershipIndex], author_name: str, title: str) -> bool:
    """Ask the ownership index, refreshing it if stale.

    An unreadable collection root is logged and the last good snapshot is used.
    """
    if index is None:
        return False
    try:
        index.refresh()
    except AccessError as e:
        logger.warning(f"Ownership check using last known scan: {e}")
    return index.is_owned(author_name, title)


class BookImporter:
    """Imports single books from the catalogue, refusing duplicates."""

    def __init__(self, session: Session, client: CatalogueClient,
                 ownership_index: Optional[OwnershipIndex] = None):
        """
        Args:
            session: SQLAlchemy session
            client: Catalogue client used to fetch book data
            ownership_index: Filesystem ownership index, or None if no collection is configured
        """
        self.session = session
        self.client = client
        self.ownership_index = ownership_index
        self.book_repository = BookRepository(session)
        self.creator = BookCreator(session)

    def import_book(self, external_id: str) -> Book:
        """
        Import a book and its authors from the catalogue.

        A book whose catalogue id is already stored is refused before any
        upstream request. After fetching, the book is refused if an active book
        with the same primary author name and title exists, or if its
        catalogue id turns up (deleted or not).

        Args:
            external_id: Catalogue ID of the book

        Returns:
            The created Book

        Raises:
            Conflict: reason "already imported" or "previously deleted"
            NotFound: the catalogue has no such book
            ValidationError: the catalogue lists no authors for the book
            UpstreamError: the catalogue could not be reached
            StorageError: the insert failed and was rolled back
        """
        external_id = str(external_id).strip()
        status = self.book_repository.get_status(external_id)
        if status.found:
            raise Conflict(status.reason, external_id, status.book.id)

        record = self.client.get_book(external_id)
        primary = record.primary_author
        if primary is None:
            raise ValidationError(f"Book {external_id} has no authors in the catalogue")
        if not record.title:
            raise ValidationError(f"Book {external_id} has no title in the catalogue")

        lookup = self.book_repository.find_existing(primary.name, record.title, record.external_id)
        if lookup.found:
            logger.info(f"Refusing import of {external_id} {record.title!r}: {lookup.reason}")
            raise Conflict(lookup.reason, external_id, lookup.book.id)

        owned = check_ownership(self.ownership_index, primary.name, record.title)

        with transaction(self.session):
            book = self.creator.create_book(record, owned=owned)

        logger.info(f"Imported book {book.id} ({book.external_id}) {book.title!r} "
                    f"by {', '.join(a.name for a in record.authors)}; owned={book.owned}")
        return book

    def check_book_status(self, external_id: str) -> BookStatus:
        """Local status of a catalogue book: (exists, deleted, book_id)"""
        lookup = self.book_repository.get_status(str(external_id).strip())
        if not lookup.found:
            return BookStatus(exists=False, deleted=False, book_id=None)
        return BookStatus(exists=True, deleted=lookup.book.deleted, book_id=lookup.book.id)
