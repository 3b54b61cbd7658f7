"""
Pydantic schemas for access grants and the sessions minted from them.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GrantSession(BaseModel):
    """
    The single session slot of an access grant.

    Replaced as a whole on every successful login; the most recent value
    is the only valid one.
    """

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1, description="Opaque session token")
    expires_at: datetime = Field(..., description="When the session stops granting access")
    issued_at: datetime = Field(..., description="When the session was minted")

    def is_active_at(self, moment: datetime) -> bool:
        return self.expires_at > moment


class AccessGrantCreate(BaseModel):
    """Input for creating or editing an access grant."""

    model_config = ConfigDict(extra="forbid")

    username: str = Field(..., min_length=1, max_length=150)
    password_hash: str = Field(..., min_length=1)
    duration_hours: int = Field(..., gt=0, description="Lifetime of each minted session")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        if v.isspace():
            raise ValueError("Username cannot be whitespace")
        return v


class AccessGrantRead(BaseModel):
    """Administrator view of a grant; never includes the hash or the token."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    duration_hours: int
    session_expires_at: Optional[datetime] = None
    used_at: Optional[datetime] = None
    created_at: datetime
