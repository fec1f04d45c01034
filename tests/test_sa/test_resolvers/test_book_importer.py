import pytest
from conftest import catalogue_book, make_collection
from core.errors import Conflict, NotFound, StorageError, ValidationError, ALREADY_IMPORTED, PREVIOUSLY_DELETED
from core.resolvers.book_importer import BookImporter
from core.services.ownership_index import OwnershipIndex
from core.sa.models import Author, Book, BookAuthor, OwnedSource

GATSBY = catalogue_book("1", "Gatsby", ("101", "F. Fitzgerald"), publication_date="1925-01-01",
                        isbn="9780743273565")


@pytest.fixture
def importer(db_session, catalogue):
    return BookImporter(db_session, catalogue)


def test_import_creates_book_author_and_authorship(importer, catalogue, db_session):
    catalogue.get_book.return_value = GATSBY

    book = importer.import_book("1")

    assert book.title == "Gatsby"
    assert book.publication_date.year == 1925
    assert book.owned is False
    assert book.owned_source == OwnedSource.NONE.value
    assert db_session.query(Book).count() == 1
    assert db_session.query(Author).count() == 1
    assert db_session.query(BookAuthor).count() == 1
    assert db_session.query(Author).one().sort_key == "Fitzgerald, F."


def test_reimport_is_rejected_without_upstream_call(importer, catalogue, db_session):
    catalogue.get_book.return_value = GATSBY
    importer.import_book("1")
    catalogue.get_book.reset_mock()

    with pytest.raises(Conflict) as excinfo:
        importer.import_book("1")

    assert excinfo.value.reason == ALREADY_IMPORTED
    catalogue.get_book.assert_not_called()
    assert db_session.query(Book).count() == 1


def test_same_author_and_title_under_new_id_is_duplicate(importer, catalogue, db_session):
    catalogue.get_book.return_value = GATSBY
    importer.import_book("1")
    catalogue.get_book.return_value = catalogue_book("2", "GATSBY", ("101", "f. fitzgerald"))

    with pytest.raises(Conflict) as excinfo:
        importer.import_book("2")

    assert excinfo.value.reason == ALREADY_IMPORTED
    assert db_session.query(Book).count() == 1


def test_deleted_book_is_not_imported_again(importer, catalogue, make_author, make_book):
    author = make_author("101", "F. Fitzgerald")
    book = make_book("1", "Gatsby", authors=[author], deleted=True)

    with pytest.raises(Conflict) as excinfo:
        importer.import_book("1")

    assert excinfo.value.reason == PREVIOUSLY_DELETED
    assert excinfo.value.book_id == book.id


def test_existing_author_is_reused_and_order_kept(importer, catalogue, make_author, db_session):
    gaiman = make_author("3", "Neil Gaiman")
    catalogue.get_book.return_value = catalogue_book(
        "20", "Good Omens", ("2", "Terry Pratchett"), ("3", "Neil Gaiman"))

    book = importer.import_book("20")

    assert db_session.query(Author).count() == 2
    assert [a.name for a in book.authors] == ["Terry Pratchett", "Neil Gaiman"]
    assert book.authors[1].id == gaiman.id


def test_upstream_not_found_propagates(importer, catalogue, db_session):
    catalogue.get_book.side_effect = NotFound("Book 9 not found in catalogue")

    with pytest.raises(NotFound):
        importer.import_book("9")

    assert db_session.query(Book).count() == 0


def test_book_without_authors_is_rejected(importer, catalogue, db_session):
    catalogue.get_book.return_value = catalogue_book("5", "Anonymous Pamphlet")

    with pytest.raises(ValidationError):
        importer.import_book("5")

    assert db_session.query(Book).count() == 0


def test_import_detects_ownership_on_disk(db_session, catalogue, tmp_path):
    root = make_collection(tmp_path / "books", ("F. Fitzgerald", "Gatsby (1)"))
    importer = BookImporter(db_session, catalogue, OwnershipIndex(str(root)))
    catalogue.get_book.return_value = GATSBY

    book = importer.import_book("1")

    assert book.owned is True
    assert book.owned_source == OwnedSource.FILESYSTEM.value


def test_unreadable_collection_does_not_block_import(db_session, catalogue, tmp_path):
    importer = BookImporter(db_session, catalogue, OwnershipIndex(str(tmp_path / "missing")))
    catalogue.get_book.return_value = GATSBY

    book = importer.import_book("1")

    assert book.owned is False


def test_check_book_status(importer, make_author, make_book):
    author = make_author("101", "F. Fitzgerald")
    active = make_book("1", "Gatsby", authors=[author])
    deleted = make_book("2", "Lost", authors=[author], deleted=True)

    assert importer.check_book_status("1") == (True, False, active.id)
    assert importer.check_book_status("2") == (True, True, deleted.id)
    assert importer.check_book_status("3") == (False, False, None)


def test_failed_insert_leaves_no_partial_rows(importer, catalogue, db_session):
    catalogue.get_book.return_value = catalogue_book(
        "1", "Gatsby", ("101", "F. Fitzgerald"), ("102", "")   # empty name breaks a check constraint
    )

    with pytest.raises(StorageError):
        importer.import_book("1")

    assert db_session.query(Author).count() == 0
    assert db_session.query(Book).count() == 0
    assert db_session.query(BookAuthor).count() == 0
