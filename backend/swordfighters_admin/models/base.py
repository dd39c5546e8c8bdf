"""
Base models and mixins for SQLAlchemy ORM.

Provides the declarative base, timestamp and UUID mixins, and the
clock helper used by every model and repository.
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base


# SQLAlchemy declarative base for all ORM models
Base = declarative_base()


def utc_now() -> datetime:
    """
    Current UTC time as a naive datetime.

    All timestamps are stored naive-in-UTC so that comparisons behave the
    same on SQLite (which drops tzinfo) and PostgreSQL.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp columns.

    Attributes:
        created_at: Timestamp when record was created (immutable)
        updated_at: Timestamp when record was last updated (auto-updated)
    """

    created_at = Column(
        DateTime,
        nullable=False,
        default=utc_now,
        doc="UTC timestamp when record was created"
    )

    updated_at = Column(
        DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        doc="UTC timestamp when record was last updated"
    )


class UUIDMixin:
    """
    Mixin that adds a UUID primary key column.

    UUIDs are stored as strings for portability between SQLite and PostgreSQL.
    """

    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        doc="UUID primary key"
    )
