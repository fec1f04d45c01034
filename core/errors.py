# core/errors.py
from typing import Optional

ALREADY_IMPORTED = "already imported"
PREVIOUSLY_DELETED = "previously deleted"


class LibraryError(Exception):
    """Base class for all library errors"""
    pass


class UpstreamError(LibraryError):
    """The catalogue service could not be reached or returned an unusable answer"""

    def __init__(self, message: str, attempts: int):
        super().__init__(f"{message} (after {attempts} attempt{'s' if attempts != 1 else ''})")
        self.attempts = attempts


class AccessError(LibraryError):
    """The collection root could not be read"""

    def __init__(self, root: str, message: Optional[str] = None):
        super().__init__(message or f"Collection root not accessible: {root}")
        self.root = root


class Conflict(LibraryError):
    """An import target already exists or existed before"""

    def __init__(self, reason: str, external_id: str, book_id: Optional[int] = None):
        super().__init__(f"Book {external_id}: {reason}")
        self.reason = reason
        self.external_id = external_id
        self.book_id = book_id


class NotFound(LibraryError):
    pass


class StorageError(LibraryError):
    pass


class ValidationError(LibraryError, ValueError):
    pass
