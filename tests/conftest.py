# tests/conftest.py
import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from core.sa.database import Database
from core.sa.models import Author, Book, BookAuthor, OwnedSource
from core.catalogue.client import CatalogueClient
from core.catalogue.normalise import CatalogueAuthor, CatalogueBook, CatalogueAuthorWithBooks


class FakeClock:
    """Monotonic clock that only moves when told to, or when something sleeps"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def database(tmp_path):
    """File-backed SQLite database with a fresh schema per test"""
    db = Database(f"sqlite:///{tmp_path / 'test_books.db'}")
    db.init_db()
    yield db
    db.engine.dispose()


@pytest.fixture
def db_session(database):
    session = database.get_session()
    yield session
    session.close()


@pytest.fixture
def make_author(db_session):
    """Create and commit an author"""
    def _make(external_id: str, name: str, **kwargs) -> Author:
        author = Author(external_id=external_id, name=name, **kwargs)
        db_session.add(author)
        db_session.commit()
        return author
    return _make


@pytest.fixture
def make_book(db_session):
    """Create and commit a book attributed to the given authors, in order"""
    def _make(external_id: str, title: str, authors=(), owned: bool = False,
              owned_source: str = OwnedSource.NONE.value, deleted: bool = False) -> Book:
        book = Book(
            external_id=external_id,
            title=title,
            owned=owned,
            owned_source=owned_source,
            deleted=deleted
        )
        db_session.add(book)
        for order, author in enumerate(authors):
            db_session.add(BookAuthor(book=book, author=author, author_order=order))
        db_session.commit()
        return book
    return _make


@pytest.fixture
def catalogue():
    """CatalogueClient double; tests set return values on its methods"""
    return Mock(spec=CatalogueClient)


def catalogue_book(external_id: str, title: str, *authors, **kwargs) -> CatalogueBook:
    """Build a catalogue book; authors are (external_id, name) pairs"""
    return CatalogueBook(
        external_id=external_id,
        title=title,
        authors=[CatalogueAuthor(external_id=a_id, name=name) for a_id, name in authors],
        **kwargs
    )


def catalogue_author(external_id: str, name: str, books=()) -> CatalogueAuthorWithBooks:
    return CatalogueAuthorWithBooks(external_id=external_id, name=name, books=list(books))


def make_collection(root: Path, *entries) -> Path:
    """Create <root>/<author>/<dirname>/ for each (author, dirname) pair"""
    for author_name, dirname in entries:
        (root / author_name / dirname).mkdir(parents=True, exist_ok=True)
    return root
