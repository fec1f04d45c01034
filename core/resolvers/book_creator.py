from typing import Optional, List, Tuple
from datetime import date, datetime
from sqlalchemy.orm import Session
from ..sa.models import Book, Author, BookAuthor, OwnedSource
from ..catalogue.normalise import CatalogueBook, CatalogueAuthor

class BookCreator:
    """Creates book and author records in the database.

    Nothing here commits; callers own the transaction.
    """

    def __init__(self, session: Session):
        """
        Initialize the book creator.

        Args:
            session: SQLAlchemy session
        """
        self.session = session

    def create_book(self, record: CatalogueBook, owned: bool = False,
                    authors: Optional[List[CatalogueAuthor]] = None) -> Book:
        """
        Creates a book and its author relationships from catalogue data

        Args:
            record: Normalised catalogue book
            owned: Whether the ownership index found the book on disk
            authors: Authors to attribute, in order (defaults to the record's own)

        Returns:
            Created Book object, flushed so it has an id
        """
        book = self._create_book_entity(record, owned)
        self.session.add(book)
        self._create_author_relationships(book, record.authors if authors is None else authors)
        self.session.flush()
        return book

    def create_or_get_author(self, author_data: CatalogueAuthor) -> Tuple[Author, bool]:
        """Creates or retrieves an author by external id. Returns (author, was_created)"""
        author = self.session.query(Author).filter_by(
            external_id=author_data.external_id
        ).first()

        created = False
        if not author:
            author = Author(
                external_id=author_data.external_id,
                name=author_data.name,
                bio=author_data.bio,
                photo_url=author_data.photo_url
            )
            self.session.add(author)
            self.session.flush()  # Need to flush to get the author.id
            created = True

        return author, created

    def _create_book_entity(self, record: CatalogueBook, owned: bool) -> Book:
        """Creates the main book entity without relationships"""
        return Book(
            external_id=record.external_id,
            title=record.title,
            isbn=record.isbn,
            description=record.description,
            publication_date=self._parse_date(record.publication_date),
            cover_url=record.cover_url,
            owned=owned,
            owned_source=(OwnedSource.FILESYSTEM if owned else OwnedSource.NONE).value,
            deleted=False
        )

    def _create_author_relationships(self, book: Book, authors_data: List[CatalogueAuthor]) -> None:
        """Creates author relationships for a book, preserving contributor order"""
        seen = set()
        for author_data in authors_data:
            if author_data.external_id in seen:
                continue
            seen.add(author_data.external_id)

            author, _ = self.create_or_get_author(author_data)
            book_author = BookAuthor(
                book=book,
                author=author,
                author_order=len(seen) - 1
            )
            self.session.add(book_author)

    def _parse_date(self, date_str: Optional[str]) -> Optional[date]:
        """Parse a date string from various formats"""
        if not date_str:
            return None

        formats = [
            '%Y-%m-%dT%H:%M:%S.%f',  # 2021-05-04T00:00:00.000000
            '%Y-%m-%d',              # 2021-05-04
        ]

        for fmt in formats:
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue
        return None
