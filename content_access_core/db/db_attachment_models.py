"""
Attachment metadata model - just data, no logic.
"""

from sqlalchemy import BigInteger, Column, Index, String

from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class Attachment(Base, UUIDMixin, TimestampMixin):
    """Record of one uploaded file bound to one content target."""

    __tablename__ = "attachments"

    target_id = Column(String(100), nullable=False)
    target_type = Column(String(20), nullable=False)

    name = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False)
    content_type = Column(String(255), nullable=False)

    # Location key inside blob storage, never a public URL
    storage_path = Column(String(512), nullable=False, unique=True)

    created_by = Column(String(100), nullable=False)

    __table_args__ = (Index("ix_attachment_target", "target_type", "target_id", "created_at"),)
