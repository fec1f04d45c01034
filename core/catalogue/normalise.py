# core/catalogue/normalise.py
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CatalogueAuthor:
    external_id: str
    name: str
    bio: Optional[str] = None
    photo_url: Optional[str] = None
    book_count: int = 0


@dataclass
class CatalogueBook:
    external_id: str
    title: str
    isbn: Optional[str] = None
    description: Optional[str] = None
    publication_date: Optional[str] = None  # YYYY-MM-DD
    cover_url: Optional[str] = None
    authors: List[CatalogueAuthor] = field(default_factory=list)

    @property
    def primary_author(self) -> Optional[CatalogueAuthor]:
        return self.authors[0] if self.authors else None


@dataclass
class CatalogueAuthorWithBooks(CatalogueAuthor):
    books: List[CatalogueBook] = field(default_factory=list)


def _image_url(data: Dict[str, Any]) -> Optional[str]:
    image = data.get('image')
    if isinstance(image, dict):
        return image.get('url') or None
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def release_date(release_year: Any) -> Optional[str]:
    """Turn a release year into an ISO date on January 1st"""
    if not release_year:
        return None
    try:
        return f"{int(release_year):04d}-01-01"
    except (TypeError, ValueError):
        return None


def extract_isbn(book: Dict[str, Any]) -> Optional[str]:
    """Pick an ISBN: first edition (13 before 10), then `isbns`, then `isbn`"""
    editions = book.get('editions') or []
    if editions:
        edition = editions[0] or {}
        return edition.get('isbn_13') or edition.get('isbn_10') or None

    isbns = book.get('isbns') or []
    if isbns:
        return isbns[0]

    isbn = book.get('isbn')
    if isinstance(isbn, list):
        return isbn[0] if isbn else None
    return isbn or None


def normalise_author(data: Dict[str, Any]) -> CatalogueAuthor:
    book_count = data.get('books_count')
    if book_count is None:
        book_count = ((data.get('books_aggregate') or {}).get('aggregate') or {}).get('count')
    if book_count is None and isinstance(data.get('books'), list):
        book_count = len(data['books'])

    return CatalogueAuthor(
        external_id=str(data['id']),
        name=(data.get('name') or '').strip(),
        bio=_text(data.get('bio')),
        photo_url=_image_url(data),
        book_count=int(book_count or 0)
    )


def extract_authors(book: Dict[str, Any]) -> List[CatalogueAuthor]:
    """Authors in attribution order.

    Contributions win, then a legacy `authors` list, then bare `author_names`
    which get synthetic ids of the form "<bookId>-author-<n>".
    """
    authors = []
    for contribution in book.get('contributions') or []:
        author = (contribution or {}).get('author') or (contribution or {}).get('contributor')
        if author and author.get('id') is not None and author.get('name'):
            authors.append(normalise_author(author))

    if not authors:
        for author in book.get('authors') or []:
            if author and author.get('id') is not None and author.get('name'):
                authors.append(normalise_author(author))

    if not authors:
        for index, name in enumerate(book.get('author_names') or []):
            if name:
                authors.append(CatalogueAuthor(
                    external_id=f"{book['id']}-author-{index}",
                    name=name.strip()
                ))

    return authors


def normalise_book(data: Dict[str, Any]) -> CatalogueBook:
    return CatalogueBook(
        external_id=str(data['id']),
        title=(data.get('title') or '').strip(),
        isbn=extract_isbn(data),
        description=_text(data.get('description')),
        publication_date=release_date(data.get('release_year')),
        cover_url=_image_url(data),
        authors=extract_authors(data)
    )


def extract_bibliography(author: Dict[str, Any]) -> List[CatalogueBook]:
    """Books credited to an author; untitled entries are dropped"""
    raw_books = []
    contributions = author.get('contributions') or author.get('authored_books') or []
    for contribution in contributions:
        book = (contribution or {}).get('book')
        if book:
            raw_books.append(book)
    if not raw_books:
        raw_books = [b for b in author.get('books') or [] if b]

    books = []
    for raw in raw_books:
        if raw.get('id') is None or not (raw.get('title') or '').strip():
            logger.warning(f"Dropping untitled book {raw.get('id')} for author {author.get('name')}")
            continue
        books.append(normalise_book(raw))
    return books


def normalise_author_with_books(data: Dict[str, Any]) -> CatalogueAuthorWithBooks:
    author = normalise_author(data)
    books = extract_bibliography(data)
    return CatalogueAuthorWithBooks(
        external_id=author.external_id,
        name=author.name,
        bio=author.bio,
        photo_url=author.photo_url,
        book_count=author.book_count or len(books),
        books=books
    )


def search_documents(search: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Documents out of a Typesense search payload, which may arrive JSON-encoded"""
    if not search:
        return []
    results = search.get('results')
    if isinstance(results, str):
        try:
            results = json.loads(results)
        except ValueError:
            logger.warning("Search results were not valid JSON")
            return []
    if not isinstance(results, dict):
        return []
    return [hit['document'] for hit in results.get('hits') or [] if hit and hit.get('document')]
