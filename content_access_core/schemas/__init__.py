"""Pydantic schemas for grants, callers, attachments and transfers."""

from .access_grant_schemas import AccessGrantCreate, AccessGrantRead, GrantSession
from .attachment_schemas import AttachmentRead, TargetDescriptor
from .caller_schemas import CallerIdentity, GrantHolder, RegisteredUser, parse_caller
from .transfer_schemas import (
    DownloadTicket,
    FilePayload,
    OrphanedBlobReport,
    SignedUrl,
    TransferResult,
    UploadTicket,
)

__all__ = [
    "AccessGrantCreate",
    "AccessGrantRead",
    "GrantSession",
    "AttachmentRead",
    "TargetDescriptor",
    "CallerIdentity",
    "GrantHolder",
    "RegisteredUser",
    "parse_caller",
    "DownloadTicket",
    "FilePayload",
    "OrphanedBlobReport",
    "SignedUrl",
    "TransferResult",
    "UploadTicket",
]
