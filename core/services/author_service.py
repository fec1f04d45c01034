# core/services/author_service.py

import logging
from typing import List, NamedTuple, Optional
from sqlalchemy.orm import Session

from core.errors import NotFound, ValidationError
from core.sa.database import transaction
from core.sa.models import Author, Book
from core.sa.repositories.author import AuthorRepository, AuthorPage, PageCursor, DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)


class AuthorDetail(NamedTuple):
    author: Author
    books: List[Book]  # active books only
    active_book_count: int
    total_book_count: int


class AuthorService:
    def __init__(self, session: Session):
        self.session = session
        self.repository = AuthorRepository(session)

    def get_author_with_books(self, author_id: int) -> AuthorDetail:
        author = self.repository.get_by_id(author_id)
        if not author:
            raise NotFound(f"Author {author_id} not found")
        return self._detail(author)

    def get_author_by_external_id(self, external_id: str) -> Optional[AuthorDetail]:
        """Author by catalogue ID, or None when not imported"""
        author = self.repository.get_by_external_id(external_id)
        return self._detail(author) if author else None

    def update_author(self, author_id: int, name: Optional[str] = None,
                      bio: Optional[str] = None, photo_url: Optional[str] = None) -> AuthorDetail:
        """
        Edit an author's profile. A new name also updates the sort key.

        Raises:
            ValidationError: name given but blank
            NotFound: no such author
        """
        if name is not None and not name.strip():
            raise ValidationError("Author name cannot be empty")

        with transaction(self.session):
            author = self.repository.get_by_id(author_id)
            if not author:
                raise NotFound(f"Author {author_id} not found")
            if name is not None:
                author.name = name.strip()
            if bio is not None:
                author.bio = bio
            if photo_url is not None:
                author.photo_url = photo_url

        logger.info(f"Updated author {author_id}: {author.name} (sorts as {author.sort_key!r})")
        return self._detail(author)

    def list_authors(self, cursor: Optional[PageCursor] = None, letter: Optional[str] = None,
                     limit: Optional[int] = DEFAULT_PAGE_SIZE) -> AuthorPage:
        return self.repository.list_page(cursor=cursor, letter=letter, limit=limit)

    def backfill_sort_keys(self) -> int:
        """Recompute every stored sort key from the author's name"""
        with transaction(self.session):
            updated = self.repository.backfill_sort_keys()
        logger.info(f"Backfilled sort keys for {updated} authors")
        return updated

    def _detail(self, author: Author) -> AuthorDetail:
        books = self.repository.get_books(author.id)
        return AuthorDetail(
            author=author,
            books=books,
            active_book_count=len(books),
            total_book_count=self.repository.count_books(author.id, include_deleted=True)
        )
