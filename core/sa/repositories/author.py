# core/sa/repositories/author.py
from typing import Optional, List, NamedTuple
from sqlalchemy import select, func, tuple_
from sqlalchemy.orm import Session
from core.errors import ValidationError
from core.utils.name_parser import sort_key
from ..models import Author, Book, BookAuthor, fold, fold_text

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

class PageCursor(NamedTuple):
    """Position after the last row of a page: the row's (sort_key, id)"""
    sort_key: str
    id: int

    def encode(self) -> str:
        return f"{self.id}:{self.sort_key}"

    @classmethod
    def decode(cls, raw: str) -> "PageCursor":
        """Parse the "<id>:<sort_key>" form produced by encode()"""
        author_id, sep, key = (raw or '').partition(':')
        if not sep or not key.strip():
            raise ValidationError("cursor must look like '<id>:<sort key>'")
        try:
            parsed_id = int(author_id)
        except ValueError:
            raise ValidationError("cursor id must be a positive integer")
        if parsed_id <= 0:
            raise ValidationError("cursor id must be a positive integer")
        return cls(sort_key=key, id=parsed_id)

class AuthorListItem(NamedTuple):
    author: Author
    book_count: int

class AuthorPage(NamedTuple):
    authors: List[AuthorListItem]
    has_more: bool
    next_cursor: Optional[PageCursor]

def clamp_limit(limit: Optional[int]) -> int:
    """Clamp a requested page size into [1, MAX_PAGE_SIZE]"""
    if limit is None:
        return DEFAULT_PAGE_SIZE
    return max(1, min(MAX_PAGE_SIZE, int(limit)))

def normalise_letter(letter: Optional[str]) -> Optional[str]:
    """Validate a starting-letter filter and return it upper-cased"""
    if letter is None or letter == '':
        return None
    if len(letter) != 1 or not letter.isalpha():
        raise ValidationError("letter filter must be a single letter")
    return letter.upper()

def _active_book_count():
    """Correlated count of an author's non-deleted books"""
    return (
        select(func.count(BookAuthor.book_id))
        .join(Book, Book.id == BookAuthor.book_id)
        .where(BookAuthor.author_id == Author.id, Book.deleted.is_(False))
        .correlate(Author)
        .scalar_subquery()
    )

class AuthorRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, author_id: int) -> Optional[Author]:
        """Get an author by internal ID"""
        return self.session.get(Author, author_id)

    def get_by_external_id(self, external_id: str) -> Optional[Author]:
        """Get an author by catalogue ID"""
        return self.session.query(Author).filter(Author.external_id == external_id).first()

    def get_by_name(self, name: str) -> Optional[Author]:
        """Get an author by display name, ignoring case"""
        return self.session.query(Author).filter(
            fold(Author.name) == fold_text(name.strip())
        ).first()

    def search_authors(self, query: str, limit: int = 20) -> List[Author]:
        """Search authors by name"""
        base_query = self.session.query(Author)
        if query:  # Only apply filter if query is not empty
            base_query = base_query.filter(Author.name.ilike(f"%{query}%"))
        return base_query.order_by(fold(Author.sort_key), Author.id).limit(limit).all()

    def get_books(self, author_id: int, include_deleted: bool = False) -> List[Book]:
        """Get an author's books, newest first.

        Args:
            author_id: Internal author ID
            include_deleted: Whether to include soft-deleted books

        Returns:
            Books sorted by publication date descending (unknown dates last), then title
        """
        query = (
            self.session.query(Book)
            .join(BookAuthor, BookAuthor.book_id == Book.id)
            .filter(BookAuthor.author_id == author_id)
        )
        if not include_deleted:
            query = query.filter(Book.deleted.is_(False))
        return query.order_by(
            Book.publication_date.desc().nulls_last(),
            Book.title.asc()
        ).all()

    def count_books(self, author_id: int, include_deleted: bool = False) -> int:
        query = (
            self.session.query(func.count(BookAuthor.book_id))
            .join(Book, Book.id == BookAuthor.book_id)
            .filter(BookAuthor.author_id == author_id)
        )
        if not include_deleted:
            query = query.filter(Book.deleted.is_(False))
        return query.scalar() or 0

    def list_page(
        self,
        cursor: Optional[PageCursor] = None,
        letter: Optional[str] = None,
        limit: Optional[int] = DEFAULT_PAGE_SIZE
    ) -> AuthorPage:
        """Keyset page of authors ordered by (sort key ignoring case, id).

        The cursor predicate is a row-value comparison against the same
        expression the ORDER BY uses, so no OFFSET is ever needed and the
        cost of a page does not depend on how many pages came before it.

        Args:
            cursor: (sort_key, id) of the last row of the previous page, or None for the first page
            letter: Optional single starting letter of the sort key
            limit: Requested page size, clamped to [1, 100]

        Returns:
            AuthorPage. has_more is true when the page came back full, so an
            exact multiple of the limit costs one extra, empty page.
        """
        limit = clamp_limit(limit)
        letter = normalise_letter(letter)
        folded = fold(Author.sort_key)

        stmt = select(Author, _active_book_count().label('book_count'))
        if letter:
            stmt = stmt.where(folded.like(f"{fold_text(letter)}%"))
        if cursor is not None:
            stmt = stmt.where(
                tuple_(folded, Author.id) > tuple_(fold_text(cursor.sort_key), cursor.id)
            )
        stmt = stmt.order_by(folded.asc(), Author.id.asc()).limit(limit)

        rows = self.session.execute(stmt).all()
        authors = [AuthorListItem(author=row[0], book_count=row[1] or 0) for row in rows]
        has_more = len(authors) == limit
        next_cursor = None
        if has_more:
            last = authors[-1].author
            next_cursor = PageCursor(sort_key=last.sort_key, id=last.id)
        return AuthorPage(authors=authors, has_more=has_more, next_cursor=next_cursor)

    def backfill_sort_keys(self) -> int:
        """Recompute sort keys that are missing or out of step with the name.

        Returns:
            Number of authors updated (not committed)
        """
        updated = 0
        for author in self.session.query(Author).all():
            expected = sort_key(author.name)
            if author.sort_key != expected:
                author.sort_key = expected
                updated += 1
        return updated
