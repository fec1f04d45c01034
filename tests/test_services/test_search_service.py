import pytest
from conftest import catalogue_book
from core.catalogue.normalise import CatalogueAuthor
from core.errors import ValidationError
from core.services.search_service import SearchService, SearchType


def test_book_results_carry_local_status(db_session, catalogue, make_author, make_book):
    author = make_author("101", "F. Fitzgerald")
    make_book("1", "Gatsby", authors=[author], owned=True, owned_source="manual")
    make_book("2", "Lost", authors=[author], deleted=True)
    catalogue.search_books.return_value = [
        catalogue_book("1", "Gatsby"),
        catalogue_book("2", "Lost"),
        catalogue_book("3", "Tender Is the Night"),
    ]

    response = SearchService(db_session, catalogue).search("fitzgerald")

    assert [(r.book.external_id, r.status, r.owned) for r in response.results] == [
        ("1", "imported", True), ("2", "deleted", False), ("3", "not_imported", False)
    ]
    assert not response.has_more
    catalogue.search_books.assert_called_once_with("fitzgerald", 1)


def test_author_results_carry_local_status(db_session, catalogue, make_author):
    make_author("101", "F. Fitzgerald")
    catalogue.search_authors.return_value = [
        CatalogueAuthor(external_id="101", name="F. Fitzgerald"),
        CatalogueAuthor(external_id="102", name="Zelda Fitzgerald"),
    ]

    response = SearchService(db_session, catalogue).search("fitzgerald", SearchType.AUTHOR)

    assert [r.status for r in response.results] == ["imported", "not_imported"]


def test_isbn_search(db_session, catalogue):
    catalogue.search_books_by_isbn.return_value = [catalogue_book("1", "Gatsby")]

    response = SearchService(db_session, catalogue).search("978-0743273565", "isbn")

    assert len(response.results) == 1
    catalogue.search_books_by_isbn.assert_called_once_with("978-0743273565")


@pytest.mark.parametrize("query,search_type,page", [
    ("", "title", 1),
    ("   ", "title", 1),
    ("gatsby", "title", 0),
    ("gatsby", "publisher", 1),
])
def test_invalid_searches(db_session, catalogue, query, search_type, page):
    with pytest.raises(ValidationError):
        SearchService(db_session, catalogue).search(query, search_type, page)
