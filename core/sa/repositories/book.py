# core/sa/repositories/book.py
from enum import Enum
from typing import Optional, List, NamedTuple, Iterable
from sqlalchemy import func, update
from sqlalchemy.orm import Session, selectinload
from core.errors import ALREADY_IMPORTED, PREVIOUSLY_DELETED
from ..models import Book, Author, BookAuthor, OwnedSource, fold, fold_text

class LookupStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"
    NOT_FOUND = "not_found"

class BookLookup(NamedTuple):
    """Outcome of a duplicate lookup: what was found, and the row if any"""
    status: LookupStatus
    book: Optional[Book] = None

    @property
    def found(self) -> bool:
        return self.status != LookupStatus.NOT_FOUND

    @property
    def reason(self) -> Optional[str]:
        """Skip/rejection reason for an import, None when the book is new"""
        if self.status == LookupStatus.ACTIVE:
            return ALREADY_IMPORTED
        if self.status == LookupStatus.DELETED:
            return PREVIOUSLY_DELETED
        return None

NOT_FOUND = BookLookup(LookupStatus.NOT_FOUND)

def _lookup_for(book: Optional[Book]) -> BookLookup:
    if book is None:
        return NOT_FOUND
    return BookLookup(LookupStatus.DELETED if book.deleted else LookupStatus.ACTIVE, book)

class OwnershipRow(NamedTuple):
    book_id: int
    title: str
    author_name: str
    owned: bool
    owned_source: str

class BookRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, book_id: int) -> Optional[Book]:
        """Get a book by internal ID"""
        return self.session.get(Book, book_id)

    def get_by_external_id(self, external_id: str) -> Optional[Book]:
        """Get a book by catalogue ID, including soft-deleted books"""
        return self.session.query(Book).filter(Book.external_id == external_id).first()

    def get_with_authors(self, book_id: int) -> Optional[Book]:
        """Get a book with its authors loaded in attribution order"""
        return (
            self.session.query(Book)
            .filter(Book.id == book_id)
            .options(selectinload(Book.book_authors).selectinload(BookAuthor.author))
            .first()
        )

    def get_many(self, book_ids: Iterable[int]) -> List[Book]:
        ids = list(book_ids)
        if not ids:
            return []
        return self.session.query(Book).filter(Book.id.in_(ids)).all()

    def find_active_by_author_and_title(self, author_name: str, title: str) -> Optional[Book]:
        """Find a non-deleted book credited to an author, matching name and title ignoring case"""
        return (
            self.session.query(Book)
            .join(BookAuthor, BookAuthor.book_id == Book.id)
            .join(Author, Author.id == BookAuthor.author_id)
            .filter(
                fold(Author.name) == fold_text(author_name.strip()),
                fold(Book.title) == fold_text(title.strip()),
                Book.deleted.is_(False)
            )
            .first()
        )

    def find_existing(self, author_name: Optional[str], title: str, external_id: str) -> BookLookup:
        """Two-step duplicate lookup used by every import path.

        1. An active book by the same (primary author name, title) is a duplicate.
        2. Otherwise the catalogue ID decides: a deleted row means the book was
           removed on purpose, an active one is a duplicate under another name.

        Returns:
            BookLookup tagged ACTIVE, DELETED or NOT_FOUND
        """
        if author_name:
            existing = self.find_active_by_author_and_title(author_name, title)
            if existing is not None:
                return BookLookup(LookupStatus.ACTIVE, existing)

        return _lookup_for(self.get_by_external_id(external_id))

    def get_status(self, external_id: str) -> BookLookup:
        """Local status of a catalogue book"""
        return _lookup_for(self.get_by_external_id(external_id))

    def count_books(self, include_deleted: bool = False) -> int:
        query = self.session.query(func.count(Book.id))
        if not include_deleted:
            query = query.filter(Book.deleted.is_(False))
        return query.scalar() or 0

    def get_ownership_rows(self) -> List[OwnershipRow]:
        """One row per (book, author) pair, for matching against a filesystem scan"""
        rows = (
            self.session.query(Book.id, Book.title, Author.name, Book.owned, Book.owned_source)
            .join(BookAuthor, BookAuthor.book_id == Book.id)
            .join(Author, Author.id == BookAuthor.author_id)
            .all()
        )
        return [OwnershipRow(*row) for row in rows]

    def apply_scan_result(self, owned_book_ids: Iterable[int]) -> int:
        """Set filesystem ownership from a scan without touching manual overrides.

        Books found on disk become owned/filesystem; filesystem-owned books no
        longer found go back to none. Not committed.

        Returns:
            Number of rows whose ownership changed
        """
        owned_ids = set(owned_book_ids)
        manual = OwnedSource.MANUAL.value
        filesystem = OwnedSource.FILESYSTEM.value

        reset = update(Book).where(
            Book.owned_source == filesystem
        ).values(owned=False, owned_source=OwnedSource.NONE.value)
        if owned_ids:
            reset = reset.where(Book.id.not_in(owned_ids))
        changed = self.session.execute(reset).rowcount or 0

        if owned_ids:
            mark = update(Book).where(
                Book.id.in_(owned_ids),
                Book.owned_source != manual,
                Book.owned_source != filesystem
            ).values(owned=True, owned_source=filesystem)
            changed += self.session.execute(mark).rowcount or 0

        return changed
