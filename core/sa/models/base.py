# core/sa/models/base.py
from datetime import datetime, UTC
from sqlalchemy.orm import DeclarativeBase, mapped_column, Mapped
from sqlalchemy import DateTime, String
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import GenericFunction

SQLITE_FOLD_FUNCTION = 'unicode_lower'

class Base(DeclarativeBase):
    """Base class for all models"""
    pass

class TimestampMixin:
    """Mixin to add created_at and updated_at columns"""
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

class fold(GenericFunction):
    """Lower-case text for case-insensitive comparison and ordering.

    SQLite's own lower() only folds ASCII, so on SQLite this calls a
    Python function registered on every connection (see core.sa.database).
    """
    type = String()
    name = 'fold'
    inherit_cache = True

@compiles(fold)
def _compile_fold(element, compiler, **kw):
    return f"lower({compiler.process(element.clauses, **kw)})"

@compiles(fold, 'sqlite')
def _compile_fold_sqlite(element, compiler, **kw):
    return f"{SQLITE_FOLD_FUNCTION}({compiler.process(element.clauses, **kw)})"

def fold_text(value):
    """Python side of fold(); also used when comparing outside the database"""
    return value.lower() if isinstance(value, str) else value
