"""
Shared column mixins and time helpers for the row models.

Keeps SQLite (tests, development) and PostgreSQL (production) behaving the
same where timestamps are concerned.
"""

import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String


def utc_now() -> datetime:
    """Return current UTC time with timezone info attached."""
    return datetime.now(UTC)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    SQLite drops tzinfo on the way back out, so naive values are treated as
    UTC, which is how they were written.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TimestampMixin:
    """Simple mixin for created_at/updated_at timestamps."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class UUIDMixin:
    """Simple mixin for UUID primary keys."""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
