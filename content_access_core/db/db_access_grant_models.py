"""
Access grant model.

One row per shareable login. The session columns form a single slot that
every successful login replaces as a whole.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class AccessGrant(Base, UUIDMixin, TimestampMixin):
    """Time-boxed credential granting temporary viewing rights."""

    __tablename__ = "access_grants"

    username = Column(String(150), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    duration_hours = Column(Integer, nullable=False)

    # Session slot: token and expiry are written together or not at all
    session_token = Column(String(128), nullable=True, unique=True, index=True)
    session_expires_at = Column(DateTime(timezone=True), nullable=True)
    session_issued_at = Column(DateTime(timezone=True), nullable=True)

    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("duration_hours > 0", name="ck_access_grant_duration_positive"),
        CheckConstraint(
            "(session_token IS NULL) = (session_expires_at IS NULL)",
            name="ck_access_grant_session_slot",
        ),
    )
