"""Services for access grants, attachment metadata and transfer mediation."""

from .access_grant_service import AccessGrantService
from .attachment_service import AttachmentService
from .base_service import SessionManagedService
from .transfer_mediator import (
    TargetDirectory,
    TransferMediator,
    build_storage_path,
    parse_storage_path,
    sanitize_filename,
)

__all__ = [
    "AccessGrantService",
    "AttachmentService",
    "SessionManagedService",
    "TargetDirectory",
    "TransferMediator",
    "build_storage_path",
    "parse_storage_path",
    "sanitize_filename",
]
