# core/sa/models/book.py
from datetime import date
from enum import Enum
from sqlalchemy import String, Integer, Boolean, Date, Text, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import Base, TimestampMixin

class OwnedSource(str, Enum):
    NONE = "none"              # Not owned
    FILESYSTEM = "filesystem"  # Detected by an ownership scan
    MANUAL = "manual"          # Set by the user, never changed by a scan

class BookAuthor(Base):
    __tablename__ = 'book_author'

    book_id: Mapped[int] = mapped_column(ForeignKey('book.id', ondelete='CASCADE'), primary_key=True)
    author_id: Mapped[int] = mapped_column(ForeignKey('author.id', ondelete='CASCADE'), primary_key=True)
    author_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    book = relationship('Book', back_populates='book_authors')
    author = relationship('Author', back_populates='book_authors')

    __table_args__ = (
        CheckConstraint('author_order >= 0', name='ck_book_author_order'),
        Index('idx_book_author_author', 'author_id'),
    )

class Book(Base, TimestampMixin):
    __tablename__ = 'book'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    isbn: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    publication_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    owned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    owned_source: Mapped[str] = mapped_column(String(20), nullable=False, default=OwnedSource.NONE.value)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    book_authors = relationship(
        'BookAuthor',
        back_populates='book',
        order_by='BookAuthor.author_order',
        cascade='all, delete-orphan',
        passive_deletes=True
    )

    # Convenience relationship, in attribution order
    authors = relationship(
        'Author',
        secondary='book_author',
        order_by='BookAuthor.author_order',
        viewonly=True
    )

    __table_args__ = (
        CheckConstraint('length(title) > 0', name='ck_book_title_not_empty'),
        CheckConstraint("owned_source IN ('none', 'filesystem', 'manual')", name='ck_book_owned_source'),
        CheckConstraint("owned_source != 'manual' OR owned", name='ck_book_manual_is_owned'),

        Index('idx_book_deleted', 'deleted'),
        Index('idx_book_isbn', 'isbn'),
    )

    def __repr__(self) -> str:
        return f"<Book id={self.id} external_id={self.external_id!r} title={self.title!r}>"
