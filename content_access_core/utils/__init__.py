"""Utility modules for the content access core."""

from .crud_helpers import (
    create_record,
    delete_record,
    delete_records,
    get_record,
    get_record_by_id,
    list_records,
    update_record,
)
from .logger import ContextAwareLogger, configure_logging, get_logger
from .password_utils import (
    generate_session_token,
    hash_password,
    token_fingerprint,
    verify_password,
)

__all__ = [
    # Generic CRUD helpers
    "create_record",
    "delete_record",
    "delete_records",
    "get_record",
    "get_record_by_id",
    "list_records",
    "update_record",
    # Logging
    "ContextAwareLogger",
    "configure_logging",
    "get_logger",
    # Passwords and tokens
    "generate_session_token",
    "hash_password",
    "token_fingerprint",
    "verify_password",
]
