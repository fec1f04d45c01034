# core/services/book_service.py

import logging
from typing import Iterable, List, NamedTuple, Optional
from sqlalchemy.orm import Session

from core.errors import NotFound, ValidationError
from core.sa.database import transaction
from core.sa.models import Book, OwnedSource
from core.sa.repositories.book import BookRepository
from core.services.ownership_index import OwnershipIndex, normalise_entry

logger = logging.getLogger(__name__)


class ScanSummary(NamedTuple):
    entries: int   # (author, title) pairs found on disk
    matched: int   # books matching one of those pairs
    updated: int   # books whose ownership changed


class BookService:
    def __init__(self, session: Session, ownership_index: Optional[OwnershipIndex] = None):
        self.session = session
        self.ownership_index = ownership_index
        self.repository = BookRepository(session)

    def get_book_with_authors(self, book_id: int) -> Book:
        """Get a book with its authors in attribution order"""
        book = self.repository.get_with_authors(book_id)
        if not book:
            raise NotFound(f"Book {book_id} not found")
        return book

    def update_ownership(self, book_id: int, owned: bool, manual: bool = True) -> Book:
        """
        Set a book's ownership.

        owned + manual gives source "manual", which rescans never override;
        owned without manual gives "filesystem"; not owned always gives "none".
        """
        with transaction(self.session):
            book = self.get_book_with_authors(book_id)
            if owned:
                source = OwnedSource.MANUAL if manual else OwnedSource.FILESYSTEM
            else:
                source = OwnedSource.NONE
            book.owned = owned
            book.owned_source = source.value

        logger.info(f"Updated ownership of book {book_id}: owned={owned}, source={source.value}")
        return book

    def delete_book(self, book_id: int) -> Book:
        """Soft-delete a book. The row stays so the catalogue id cannot be imported again."""
        with transaction(self.session):
            book = self.get_book_with_authors(book_id)
            if book.deleted:
                logger.warning(f"Book {book_id} is already deleted")
                return book
            book.deleted = True

        logger.info(f"Soft-deleted book {book_id} ({book.external_id}) {book.title!r}")
        return book

    def bulk_update(self, book_ids: Iterable[int], owned: Optional[bool] = None,
                    deleted: Optional[bool] = None) -> int:
        """
        Apply the same change to many books in one transaction.

        Args:
            book_ids: Internal IDs, all of which must exist
            owned: True marks books manually owned, False marks them not owned
            deleted: Soft-delete (True) or restore (False)

        Returns:
            Number of books updated

        Raises:
            ValidationError: no ids or no change given
            NotFound: any id does not exist (nothing is changed)
        """
        ids = list(dict.fromkeys(book_ids))
        if not ids:
            raise ValidationError("No book ids given")
        if owned is None and deleted is None:
            raise ValidationError("Nothing to update: give owned and/or deleted")

        with transaction(self.session):
            books = self.repository.get_many(ids)
            missing = sorted(set(ids) - {book.id for book in books})
            if missing:
                raise NotFound(f"Books not found: {', '.join(str(i) for i in missing)}")

            for book in books:
                if owned is not None:
                    book.owned = owned
                    book.owned_source = (OwnedSource.MANUAL if owned else OwnedSource.NONE).value
                if deleted is not None:
                    book.deleted = deleted

        logger.info(f"Bulk updated {len(books)} books: owned={owned}, deleted={deleted}")
        return len(books)

    def scan_and_update_ownership(self, force: bool = False) -> ScanSummary:
        """
        Rescan the collection and bring filesystem ownership in line with it.

        A book matches when any of its authors' names and its title appear on
        disk. Matched books become owned/filesystem, filesystem-owned books no
        longer on disk go back to none, and manually owned books are left alone.

        Raises:
            ValidationError: no collection root is configured
            AccessError: the collection root cannot be read
        """
        if self.ownership_index is None:
            raise ValidationError("No collection root configured")

        entries = self.ownership_index.refresh(force=force)

        with transaction(self.session):
            matched = {
                row.book_id
                for row in self.repository.get_ownership_rows()
                if normalise_entry(row.author_name, row.title) in entries
            }
            updated = self.repository.apply_scan_result(matched)

        summary = ScanSummary(entries=len(entries), matched=len(matched), updated=updated)
        logger.info(f"Ownership scan applied: {summary.entries} entries, "
                    f"{summary.matched} books matched, {summary.updated} updated")
        return summary

    def list_deleted(self) -> List[Book]:
        return self.session.query(Book).filter(Book.deleted.is_(True)).order_by(Book.title).all()
