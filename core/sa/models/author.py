# core/sa/models/author.py
from sqlalchemy import Integer, String, Text, Index, CheckConstraint, event
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import Base, TimestampMixin, fold
from core.utils.name_parser import sort_key

class Author(Base, TimestampMixin):
    __tablename__ = 'author'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_key: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Relationships
    book_authors = relationship(
        'BookAuthor',
        back_populates='author',
        cascade='all, delete-orphan',
        passive_deletes=True
    )

    # Convenience relationship
    books = relationship('Book', secondary='book_author', viewonly=True)

    __table_args__ = (
        CheckConstraint('length(name) > 0', name='ck_author_name_not_empty'),

        # Search indexes
        Index('idx_author_name', 'name'),
    )

    def __repr__(self) -> str:
        return f"<Author id={self.id} external_id={self.external_id!r} name={self.name!r}>"

# Keyset pagination walks this index
Index('idx_author_sort_key_nocase', fold(Author.sort_key), Author.id)

@event.listens_for(Author.name, 'set')
def _update_sort_key(target: Author, value, oldvalue, initiator) -> None:
    """Keep the stored sort key in step with the display name"""
    if value is not None:
        target.sort_key = sort_key(value)
