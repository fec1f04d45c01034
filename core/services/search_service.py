# core/services/search_service.py

import logging
from enum import Enum
from typing import List, NamedTuple, Union
from sqlalchemy.orm import Session

from core.errors import ValidationError
from core.catalogue.client import CatalogueClient, SEARCH_PAGE_SIZE
from core.catalogue.normalise import CatalogueAuthor, CatalogueBook
from core.sa.repositories.author import AuthorRepository
from core.sa.repositories.book import BookRepository, LookupStatus

logger = logging.getLogger(__name__)


class SearchType(str, Enum):
    TITLE = "title"
    AUTHOR = "author"
    ISBN = "isbn"


class BookSearchResult(NamedTuple):
    book: CatalogueBook
    status: str  # not_imported | imported | deleted
    owned: bool


class AuthorSearchResult(NamedTuple):
    author: CatalogueAuthor
    status: str  # not_imported | imported


class SearchResponse(NamedTuple):
    results: List[Union[BookSearchResult, AuthorSearchResult]]
    page: int
    per_page: int
    has_more: bool


BOOK_STATUS = {
    LookupStatus.NOT_FOUND: "not_imported",
    LookupStatus.ACTIVE: "imported",
    LookupStatus.DELETED: "deleted",
}


class SearchService:
    """Catalogue search, with each hit marked by its state in the local library"""

    def __init__(self, session: Session, client: CatalogueClient):
        self.client = client
        self.books = BookRepository(session)
        self.authors = AuthorRepository(session)

    def search(self, query: str, search_type: Union[SearchType, str] = SearchType.TITLE,
               page: int = 1) -> SearchResponse:
        if not query or not query.strip():
            raise ValidationError("Search query cannot be empty")
        if page < 1:
            raise ValidationError("Page number must be greater than 0")
        try:
            search_type = SearchType(search_type)
        except ValueError:
            raise ValidationError(f"Invalid search type: {search_type}")

        query = query.strip()
        logger.info(f"Starting {search_type.value} search for {query!r}, page {page}")

        if search_type == SearchType.AUTHOR:
            results = [self._annotate_author(a) for a in self.client.search_authors(query, page)]
            has_more = len(results) == SEARCH_PAGE_SIZE
        elif search_type == SearchType.ISBN:
            results = [self._annotate_book(b) for b in self.client.search_books_by_isbn(query)]
            has_more = False
        else:
            results = [self._annotate_book(b) for b in self.client.search_books(query, page)]
            has_more = len(results) == SEARCH_PAGE_SIZE

        return SearchResponse(results=results, page=page, per_page=SEARCH_PAGE_SIZE, has_more=has_more)

    def _annotate_book(self, book: CatalogueBook) -> BookSearchResult:
        lookup = self.books.get_status(book.external_id)
        owned = bool(lookup.book.owned) if lookup.found else False
        return BookSearchResult(book=book, status=BOOK_STATUS[lookup.status], owned=owned)

    def _annotate_author(self, author: CatalogueAuthor) -> AuthorSearchResult:
        local = self.authors.get_by_external_id(author.external_id)
        return AuthorSearchResult(author=author, status="imported" if local else "not_imported")
