"""
SQLAlchemy Base Model
Source: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimeStampedModel:
    """
    Mixin for models with created_at and updated_at timestamps.

    ``updated_at`` is also set explicitly by the repository whenever a claim's
    item set is replaced, since replacing child rows does not touch the parent.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class IntegerIDModel:
    """Mixin for models keyed by an auto-incrementing integer surrogate."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
