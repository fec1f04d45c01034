import shutil
import pytest
from conftest import make_collection
from core.errors import NotFound, ValidationError
from core.services.book_service import BookService
from core.services.ownership_index import OwnershipIndex
from core.sa.models import Book, OwnedSource


@pytest.fixture
def fitzgerald(make_author):
    return make_author("101", "F. Fitzgerald")


def reload(db_session, book):
    db_session.expire_all()
    return db_session.get(Book, book.id)


def test_manual_ownership(db_session, fitzgerald, make_book):
    book = make_book("1", "Gatsby", authors=[fitzgerald])

    BookService(db_session).update_ownership(book.id, owned=True, manual=True)

    book = reload(db_session, book)
    assert (book.owned, book.owned_source) == (True, OwnedSource.MANUAL.value)


def test_disown_clears_source(db_session, fitzgerald, make_book):
    book = make_book("1", "Gatsby", authors=[fitzgerald], owned=True, owned_source="manual")

    BookService(db_session).update_ownership(book.id, owned=False)

    book = reload(db_session, book)
    assert (book.owned, book.owned_source) == (False, OwnedSource.NONE.value)


def test_update_missing_book(db_session):
    with pytest.raises(NotFound):
        BookService(db_session).update_ownership(42, owned=True)


def test_soft_delete_is_idempotent(db_session, fitzgerald, make_book):
    book = make_book("1", "Gatsby", authors=[fitzgerald])
    service = BookService(db_session)

    service.delete_book(book.id)
    service.delete_book(book.id)

    book = reload(db_session, book)
    assert book.deleted is True
    assert [a.name for a in book.authors] == ["F. Fitzgerald"]


def test_bulk_update(db_session, fitzgerald, make_book):
    books = [make_book(str(i), f"Book {i}", authors=[fitzgerald]) for i in range(3)]

    count = BookService(db_session).bulk_update([b.id for b in books], owned=True)

    assert count == 3
    db_session.expire_all()
    assert {(b.owned, b.owned_source) for b in db_session.query(Book).all()} == {(True, "manual")}


def test_bulk_update_with_unknown_id_changes_nothing(db_session, fitzgerald, make_book):
    book = make_book("1", "Gatsby", authors=[fitzgerald])

    with pytest.raises(NotFound, match="999"):
        BookService(db_session).bulk_update([book.id, 999], deleted=True)

    assert reload(db_session, book).deleted is False


@pytest.mark.parametrize("kwargs", [{"book_ids": [], "owned": True}, {"book_ids": [1]}])
def test_bulk_update_validation(db_session, kwargs):
    with pytest.raises(ValidationError):
        BookService(db_session).bulk_update(**kwargs)


def test_manual_ownership_survives_rescan(db_session, fitzgerald, make_book, tmp_path):
    root = make_collection(tmp_path / "books", ("F. Fitzgerald", "Gatsby (1)"))
    book = make_book("1", "Gatsby", authors=[fitzgerald])
    service = BookService(db_session, OwnershipIndex(str(root)))
    service.update_ownership(book.id, owned=True, manual=True)

    shutil.rmtree(root / "F. Fitzgerald" / "Gatsby (1)")
    service.scan_and_update_ownership(force=True)

    book = reload(db_session, book)
    assert (book.owned, book.owned_source) == (True, OwnedSource.MANUAL.value)


def test_rescan_sets_and_clears_filesystem_ownership(db_session, fitzgerald, make_author, make_book, tmp_path):
    gaiman = make_author("3", "Neil Gaiman")
    root = make_collection(
        tmp_path / "books",
        ("F. Fitzgerald", "Gatsby (1)"),
        ("Neil Gaiman", "Good Omens (20)"),   # matched through the second author
    )
    gatsby = make_book("1", "Gatsby", authors=[fitzgerald])
    omens = make_book("20", "Good Omens", authors=[make_author("2", "Terry Pratchett"), gaiman])
    gone = make_book("2", "Tender Is the Night", authors=[fitzgerald], owned=True, owned_source="filesystem")
    service = BookService(db_session, OwnershipIndex(str(root)))

    summary = service.scan_and_update_ownership()

    assert summary.entries == 2
    assert summary.matched == 2
    assert summary.updated == 3
    assert reload(db_session, gatsby).owned_source == "filesystem"
    assert reload(db_session, omens).owned is True
    assert (reload(db_session, gone).owned, reload(db_session, gone).owned_source) == (False, "none")


def test_rescan_without_collection_root(db_session):
    with pytest.raises(ValidationError):
        BookService(db_session).scan_and_update_ownership()


def test_get_book_with_authors(db_session, fitzgerald, make_book):
    book = make_book("1", "Gatsby", authors=[fitzgerald])

    loaded = BookService(db_session).get_book_with_authors(book.id)

    assert loaded.authors[0].name == "F. Fitzgerald"
    with pytest.raises(NotFound):
        BookService(db_session).get_book_with_authors(999)


def test_list_deleted(db_session, fitzgerald, make_book):
    make_book("1", "Tender Is the Night", authors=[fitzgerald], deleted=True)
    make_book("2", "Gatsby", authors=[fitzgerald])
    make_book("3", "All the Sad Young Men", authors=[fitzgerald], deleted=True)

    deleted = BookService(db_session).list_deleted()

    assert [b.title for b in deleted] == ["All the Sad Young Men", "Tender Is the Night"]
