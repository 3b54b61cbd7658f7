"""
Pydantic schemas exchanged during the two-phase transfer protocol.
"""

import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..constants import TransferState
from .attachment_schemas import AttachmentRead


class SignedUrl(BaseModel):
    """A capability-bearing URL issued by blob storage for one operation."""

    model_config = ConfigDict(frozen=True)

    url: str
    expires_at: datetime
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Headers the storage service requires on the request"
    )


class UploadTicket(BaseModel):
    """Signed PUT URL plus the storage path it is scoped to."""

    model_config = ConfigDict(frozen=True)

    signed_url: str
    storage_path: str
    content_type: str
    expires_at: datetime
    headers: Dict[str, str] = Field(default_factory=dict)


class DownloadTicket(BaseModel):
    """Signed GET URL for one storage path."""

    model_config = ConfigDict(frozen=True)

    signed_url: str
    storage_path: str
    expires_at: datetime


class FilePayload(BaseModel):
    """File bytes plus the metadata declared when asking for an upload ticket."""

    name: str = Field(..., min_length=1)
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "FilePayload":
        """Read a local file, guessing its content type from the name."""
        file_path = Path(path)
        guessed, _ = mimetypes.guess_type(file_path.name)
        return cls(
            name=file_path.name,
            data=file_path.read_bytes(),
            content_type=content_type or guessed,
        )


class TransferResult(BaseModel):
    """Terminal state of one client transfer attempt."""

    state: TransferState
    storage_path: Optional[str] = None
    attachment: Optional[AttachmentRead] = None
    saved_path: Optional[str] = None
    opened_url: Optional[str] = None


class OrphanedBlobReport(BaseModel):
    """A blob written to storage whose metadata row could not be recorded."""

    storage_path: str
    target_type: str
    target_id: str
    uploader_id: str
    size: int
    content_type: str
    reason: str
    reported_at: datetime
