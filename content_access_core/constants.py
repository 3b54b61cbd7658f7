"""
Constants and enums for the content access core.

This module centralizes the magic strings used by the access grant and
attachment transfer layers so that services, storage and client code agree
on the same values.
"""

from enum import Enum


class TargetType(str, Enum):
    """Kinds of content record an attachment or visibility check refers to."""

    APP = "app"
    PROMPT = "prompt"

    @property
    def storage_folder(self) -> str:
        """Top-level blob storage folder for this target type."""
        return STORAGE_FOLDERS[self]


class Visibility(str, Enum):
    """Visibility of a content target as decided by the target record."""

    PUBLIC = "public"
    PRIVATE = "private"
    OWNER_ONLY = "owner_only"


class TransferState(str, Enum):
    """States of a single client transfer attempt."""

    IDLE = "idle"
    TICKET_REQUESTED = "ticket_requested"
    TICKET_GRANTED = "ticket_granted"
    TICKET_DENIED = "ticket_denied"
    TRANSFERRING = "transferring"
    RECORDED = "recorded"
    ORPHANED_BLOB = "orphaned_blob"
    SAVED = "saved"
    FALLBACK_OPENED = "fallback_opened"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_TRANSFER_STATES


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    DATABASE_URL = "DATABASE_URL"
    AZURE_STORAGE_CONNECTION = "AZURE_STORAGE_CONNECTION_STRING"
    ATTACHMENT_CONTAINER = "ATTACHMENT_CONTAINER"
    ORPHAN_QUEUE_NAME = "ORPHAN_QUEUE_NAME"
    DOWNLOAD_DIR = "DOWNLOAD_DIR"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    DEBUG = "DEBUG"


STORAGE_FOLDERS = {
    TargetType.APP: "apps",
    TargetType.PROMPT: "prompts",
}

TERMINAL_TRANSFER_STATES = frozenset(
    {
        TransferState.TICKET_DENIED,
        TransferState.RECORDED,
        TransferState.ORPHANED_BLOB,
        TransferState.SAVED,
        TransferState.FALLBACK_OPENED,
        TransferState.FAILED,
    }
)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MAX_ATTACHMENT_SIZE_BYTES = 10 * 1024 * 1024

ALLOWED_ATTACHMENT_TYPES = (
    "application/pdf",
    "text/plain",
    "application/zip",
    "application/x-zip-compressed",
    "application/xml",
    "text/xml",
    "text/html",
    "application/javascript",
    "text/javascript",
    "application/json",
    "text/json",
    "image/png",
    "image/jpeg",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

# Signed URLs are short lived; grants are measured in hours.
DEFAULT_TICKET_TTL_SECONDS = 60 * 10
