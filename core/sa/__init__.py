# core/sa/__init__.py
from .database import Database
from .models import (
    Base, Book, Author, BookAuthor, OwnedSource
)

__all__ = [
    'Database',
    'Base',
    'Book',
    'Author',
    'BookAuthor',
    'OwnedSource',
]
