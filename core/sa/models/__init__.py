# core/sa/models/__init__.py
from .base import Base, TimestampMixin, fold, fold_text
from .author import Author
from .book import Book, BookAuthor, OwnedSource

__all__ = [
    'Base',
    'TimestampMixin',
    'fold',
    'fold_text',
    'Author',
    'Book',
    'BookAuthor',
    'OwnedSource',
]
