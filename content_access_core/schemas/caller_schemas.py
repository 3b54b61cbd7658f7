"""
Caller identity as resolved upstream from a bearer credential.

This package trusts that resolution; it only distinguishes registered users
from holders of an access-grant session token.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class RegisteredUser(BaseModel):
    """A signed-in account, possibly also carrying an access-grant token."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["user"] = "user"
    user_id: str = Field(..., min_length=1)
    one_time_token: Optional[str] = None


class GrantHolder(BaseModel):
    """A viewer whose only credential is an access-grant session token."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["grant"] = "grant"
    one_time_token: str = Field(..., min_length=1)


CallerIdentity = Annotated[Union[RegisteredUser, GrantHolder], Field(discriminator="kind")]

_caller_adapter: TypeAdapter = TypeAdapter(CallerIdentity)


def parse_caller(data: Any) -> Union[RegisteredUser, GrantHolder]:
    """Build a caller identity from a plain mapping such as a decoded request."""
    return _caller_adapter.validate_python(data)
