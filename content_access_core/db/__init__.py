"""
SQLAlchemy models and database management for the content access core.
"""

from .db_access_grant_models import AccessGrant
from .db_attachment_models import Attachment
from .db_base import TimestampMixin, UUIDMixin, as_utc, utc_now
from .db_config import (
    Base,
    DatabaseManager,
    close_db,
    get_db_manager,
    import_all_models,
    initialize_db,
)

__all__ = [
    # Base definitions
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "as_utc",
    "utc_now",
    # Management
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "import_all_models",
    "initialize_db",
    # Models
    "AccessGrant",
    "Attachment",
]
