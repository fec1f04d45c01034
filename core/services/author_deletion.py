# core/services/author_deletion.py

import logging
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Tuple
from sqlalchemy import delete, func
from sqlalchemy.orm import Session, aliased

from core.errors import NotFound
from core.sa.database import transaction
from core.sa.models import Author, Book, BookAuthor

logger = logging.getLogger(__name__)


class BookAuthorship(NamedTuple):
    book_id: int
    author_count: int  # authorship rows the book has in total


@dataclass(frozen=True)
class DeletionPlan:
    author_id: int
    sole_authored: Tuple[int, ...]   # books to hard-delete
    co_authored: Tuple[int, ...]     # books that keep their other authors


class DeletionResult(NamedTuple):
    deleted_book_count: int
    preserved_book_count: int


def classify_books(author_id: int, rows: Iterable[BookAuthorship]) -> DeletionPlan:
    """Split an author's active books into sole-authored and co-authored"""
    sole, co = [], []
    for row in rows:
        if row.author_count > 1:
            co.append(row.book_id)
        else:
            sole.append(row.book_id)
    return DeletionPlan(author_id=author_id, sole_authored=tuple(sorted(sole)), co_authored=tuple(sorted(co)))


def load_plan(session: Session, author_id: int) -> DeletionPlan:
    """Count authorships for every active book of the author, then classify"""
    others = aliased(BookAuthor)
    rows = (
        session.query(Book.id, func.count(others.author_id))
        .join(BookAuthor, BookAuthor.book_id == Book.id)
        .join(others, others.book_id == Book.id)
        .filter(BookAuthor.author_id == author_id, Book.deleted.is_(False))
        .group_by(Book.id)
        .all()
    )
    return classify_books(author_id, (BookAuthorship(book_id, count) for book_id, count in rows))


class AuthorDeletionService:
    def __init__(self, session: Session):
        self.session = session

    def plan(self, author_id: int) -> DeletionPlan:
        """What delete_author would do, without doing it"""
        if self.session.get(Author, author_id) is None:
            raise NotFound(f"Author {author_id} not found")
        return load_plan(self.session, author_id)

    def delete_author(self, author_id: int) -> DeletionResult:
        """
        Permanently delete an author.

        Active books with no other author are deleted with them; co-authored
        books lose only this author's attribution. Soft-deleted books are not
        counted and stay behind as tombstones so their catalogue ids remain
        blocked. Everything happens in one transaction.

        The caller must not run this alongside a bulk update of the same
        author's books.

        Raises:
            NotFound: no such author
            StorageError: the deletion failed and was rolled back
        """
        with transaction(self.session):
            author = self.session.get(Author, author_id)
            if author is None:
                raise NotFound(f"Author {author_id} not found")
            name = author.name

            plan = load_plan(self.session, author_id)
            if plan.sole_authored:
                self.session.execute(delete(Book).where(Book.id.in_(plan.sole_authored)))
            self.session.execute(delete(Author).where(Author.id == author_id))

        self.session.expunge_all()
        result = DeletionResult(
            deleted_book_count=len(plan.sole_authored),
            preserved_book_count=len(plan.co_authored)
        )
        logger.info(f"Deleted author {author_id} ({name}): {result.deleted_book_count} books deleted, "
                    f"{result.preserved_book_count} co-authored books kept")
        return result
