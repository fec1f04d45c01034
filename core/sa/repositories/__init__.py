# core/sa/repositories/__init__.py
from .book import BookRepository, BookLookup, LookupStatus
from .author import AuthorRepository, PageCursor, AuthorPage

__all__ = ['BookRepository', 'BookLookup', 'LookupStatus', 'AuthorRepository', 'PageCursor', 'AuthorPage']
