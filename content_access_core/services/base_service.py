"""
Base service with session ownership shared by the row-store services.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..db.db_config import get_db_manager
from ..utils.logger import ContextAwareLogger, get_logger


class SessionManagedService:
    """
    Service that owns its database session unless one is handed in.

    Tests and callers coordinating several services pass a shared session;
    otherwise a session is taken from the global DatabaseManager.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = get_db_manager().get_session()
            self._owns_session = True
        self.logger = logger or get_logger()

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
