"""
Pydantic schemas for attachment metadata and content targets.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..constants import TargetType, Visibility


class AttachmentRead(BaseModel):
    """One uploaded file bound to one content target."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    target_id: str
    target_type: TargetType
    name: str
    size: int = Field(..., ge=0)
    content_type: str
    storage_path: str
    created_by: str
    created_at: datetime


class TargetDescriptor(BaseModel):
    """What the authorization check needs to know about a content target."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    target_type: TargetType
    owner_id: str
    visibility: Visibility = Visibility.PRIVATE

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC
