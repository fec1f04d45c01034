# core/catalogue/client.py
import logging
import re
from typing import List

from core.config import Settings
from core.errors import NotFound, ValidationError
from core.utils.http import CatalogueGateway
from . import queries
from .normalise import (
    CatalogueBook,
    CatalogueAuthor,
    CatalogueAuthorWithBooks,
    normalise_book,
    normalise_author,
    normalise_author_with_books,
    search_documents,
)

SEARCH_PAGE_SIZE = 25  # Catalogue maximum per page


def _numeric_id(external_id: str) -> int:
    """Catalogue ids are integers; reject anything else before spending a request"""
    value = str(external_id).strip()
    if not value.isdigit():
        raise ValidationError(f"Catalogue id must be numeric, got {external_id!r}")
    return int(value)


class CatalogueClient:
    """Typed access to the catalogue through the rate-limited gateway"""

    def __init__(self, gateway: CatalogueGateway):
        self.gateway = gateway
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CatalogueClient":
        return cls(CatalogueGateway(
            api_url=settings.catalogue_api_url,
            api_key=settings.catalogue_api_key,
            min_interval=settings.gateway_min_interval,
            max_retries=settings.gateway_max_retries,
            backoff_base=settings.gateway_backoff_base,
            timeout=settings.gateway_timeout
        ))

    def get_book(self, external_id: str) -> CatalogueBook:
        """
        Fetch one book with its contributors.

        Raises:
            ValidationError: the id is not numeric
            NotFound: the catalogue has no such book
            UpstreamError: the catalogue could not be queried
        """
        data = self.gateway.call(queries.GET_BOOK_BY_ID, {'id': _numeric_id(external_id)})
        raw = data.get('books_by_pk')
        if not raw:
            raise NotFound(f"Book {external_id} not found in catalogue")

        book = normalise_book(raw)
        self.logger.info(f"Book fetched from catalogue: {book.external_id} {book.title!r} "
                         f"({len(book.authors)} authors)")
        return book

    def get_author(self, external_id: str) -> CatalogueAuthorWithBooks:
        """
        Fetch an author and their bibliography.

        Raises:
            ValidationError: the id is not numeric
            NotFound: the catalogue has no such author
            UpstreamError: the catalogue could not be queried
        """
        data = self.gateway.call(queries.GET_AUTHOR_WITH_BOOKS, {'id': _numeric_id(external_id)})
        raw = data.get('authors_by_pk')
        if not raw:
            raise NotFound(f"Author {external_id} not found in catalogue")

        author = normalise_author_with_books(raw)
        self.logger.info(f"Author fetched from catalogue: {author.external_id} {author.name!r} "
                         f"({len(author.books)} books)")
        return author

    def search_books(self, query: str, page: int = 1) -> List[CatalogueBook]:
        data = self.gateway.call(queries.SEARCH_BOOKS_BY_TITLE, {
            'query': query,
            'per_page': SEARCH_PAGE_SIZE,
            'page': page
        })
        documents = search_documents(data.get('search'))
        self.logger.info(f"Book search {query!r} page {page}: {len(documents)} results")
        return [normalise_book(doc) for doc in documents if doc.get('id') is not None]

    def search_books_by_isbn(self, isbn: str) -> List[CatalogueBook]:
        normalized = re.sub(r'[-\s]', '', isbn)
        data = self.gateway.call(queries.SEARCH_BOOKS_BY_ISBN, {'query': normalized})
        documents = search_documents(data.get('search'))
        self.logger.info(f"ISBN search {normalized}: {len(documents)} results")
        return [normalise_book(doc) for doc in documents if doc.get('id') is not None]

    def search_authors(self, query: str, page: int = 1) -> List[CatalogueAuthor]:
        data = self.gateway.call(queries.SEARCH_AUTHORS_BY_NAME, {
            'query': query,
            'per_page': SEARCH_PAGE_SIZE,
            'page': page
        })
        documents = search_documents(data.get('search'))
        self.logger.info(f"Author search {query!r} page {page}: {len(documents)} results")
        return [normalise_author(doc) for doc in documents if doc.get('id') is not None]

    @property
    def last_attempts(self) -> int:
        """Attempts used by the most recent gateway call"""
        return self.gateway.last_attempts
