"""
Base models and mixins for common database fields.
These patterns are reused across all tables to maintain consistency.
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, DateTime, String


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Adds created_at and updated_at fields to any model.
    SQLAlchemy handles these automatically - no manual updates needed.
    """
    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True
    )

    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


class UUIDMixin:
    """
    Uses UUID strings instead of auto-incrementing integers for primary keys.
    Stored as text so the same schema runs on PostgreSQL and SQLite.
    """
    id = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        unique=True,
        nullable=False
    )

