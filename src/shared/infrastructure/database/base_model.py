"""
SQLAlchemy Declarative Base
All ORM models inherit from this
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Tables choose their own primary keys (Snowflake ids for aggregates,
    natural keys for registry rows), so the base only fixes type mappings
    and the constraint naming convention used by migrations.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map = {
        int: BigInteger(),
        datetime: DateTime(timezone=True),
    }

    def __repr__(self) -> str:
        pk = ",".join(str(getattr(self, c.key)) for c in self.__mapper__.primary_key)
        return f"<{self.__class__.__name__}({pk})>"


class TimestampMixin:
    """created_at with a server default of NOW()."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class VersionedMixin:
    """
    Explicit optimistic-concurrency token.

    Repositories update versioned rows with
    ``UPDATE ... WHERE id = :id AND version = :expected`` and bump the
    version in the same statement; zero affected rows means another writer
    got there first.
    """

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
