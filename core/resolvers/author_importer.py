import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from ..errors import NotFound
from ..sa.database import transaction
from ..sa.models import Author
from ..sa.repositories.author import AuthorRepository
from ..sa.repositories.book import BookRepository
from ..catalogue.client import CatalogueClient
from ..catalogue.normalise import CatalogueBook, CatalogueAuthor
from ..services.ownership_index import OwnershipIndex
from .book_creator import BookCreator
from .book_importer import check_ownership

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    author: Author
    books_imported: int = 0
    books_skipped: int = 0
    skipped_reasons: Dict[str, str] = field(default_factory=dict)
    author_created: bool = False


class AuthorImporter:
    """Imports an author's bibliography, skipping books already known."""

    def __init__(self, session: Session, client: CatalogueClient,
                 ownership_index: Optional[OwnershipIndex] = None):
        self.session = session
        self.client = client
        self.ownership_index = ownership_index
        self.author_repository = AuthorRepository(session)
        self.book_repository = BookRepository(session)
        self.creator = BookCreator(session)

    def import_author(self, external_id: str) -> ImportSummary:
        """
        Import an author and every book of theirs not already in the library.

        If the author is already stored this behaves like refresh_author_books.

        Args:
            external_id: Catalogue ID of the author

        Returns:
            ImportSummary with per-book skip reasons

        Raises:
            NotFound: the catalogue has no such author
            UpstreamError: the author could not be fetched
            StorageError: the import failed and was rolled back
        """
        external_id = str(external_id).strip()
        existing = self.author_repository.get_by_external_id(external_id)
        if existing:
            logger.info(f"Author {external_id} already imported as {existing.id}, refreshing books")
            return self.refresh_author_books(existing.id)

        record = self.client.get_author(external_id)

        with transaction(self.session):
            author, created = self.creator.create_or_get_author(record)
            summary = self._import_bibliography(author, record.books)
            summary.author_created = created

        logger.info(f"Author import completed: {author.name} ({author.id}), "
                    f"{len(record.books)} books, {summary.books_imported} imported, "
                    f"{summary.books_skipped} skipped")
        return summary

    def refresh_author_books(self, author_id: int) -> ImportSummary:
        """
        Fetch the author's current bibliography and import books not yet present.

        Raises:
            NotFound: the author is not in the library or not in the catalogue
            UpstreamError: the author could not be fetched
            StorageError: the import failed and was rolled back
        """
        author = self.author_repository.get_by_id(author_id)
        if not author:
            raise NotFound(f"Author {author_id} not found")

        record = self.client.get_author(author.external_id)

        with transaction(self.session):
            summary = self._import_bibliography(author, record.books)

        logger.info(f"Author books refresh completed: {author.name} ({author.id}), "
                    f"{len(record.books)} books, {summary.books_imported} imported, "
                    f"{summary.books_skipped} skipped")
        return summary

    def _import_bibliography(self, author: Author, books: List[CatalogueBook]) -> ImportSummary:
        """Create each book not already known; runs inside the caller's transaction"""
        summary = ImportSummary(author=author)
        attribution = [CatalogueAuthor(
            external_id=author.external_id,
            name=author.name,
            bio=author.bio,
            photo_url=author.photo_url
        )]

        for record in books:
            lookup = self.book_repository.find_existing(author.name, record.title, record.external_id)
            if lookup.found:
                summary.books_skipped += 1
                summary.skipped_reasons[record.external_id] = lookup.reason
                logger.debug(f"Skipping book {record.external_id} {record.title!r} "
                             f"for {author.name}: {lookup.reason}")
                continue

            owned = check_ownership(self.ownership_index, author.name, record.title)
            book = self.creator.create_book(record, owned=owned, authors=attribution)
            summary.books_imported += 1
            logger.debug(f"Imported book {book.id} ({book.external_id}) {book.title!r}; owned={owned}")

        return summary
