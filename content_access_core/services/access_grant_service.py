"""
Access grant management: shareable, renewable, time-boxed logins.

A grant is a username/password pair created by an administrator. Logging in
with it mints a session token valid for the grant's duration; the token then
stands in for authorization on content visibility checks. Each login replaces
the previous token, so only the most recent session is ever active.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..db.db_access_grant_models import AccessGrant
from ..db.db_base import as_utc, utc_now
from ..exceptions import (
    DuplicateUsernameError,
    ErrorCode,
    InvalidCredentialsError,
    RepositoryError,
    ValidationError,
    not_found,
)
from ..schemas.access_grant_schemas import AccessGrantCreate, AccessGrantRead, GrantSession
from ..utils.crud_helpers import (
    create_record,
    delete_record,
    get_record,
    get_record_by_id,
    list_records,
    update_record,
)
from ..utils.logger import ContextAwareLogger
from ..utils.password_utils import (
    generate_session_token,
    hash_password,
    token_fingerprint,
    verify_password,
)
from .base_service import SessionManagedService

_timing_decoy_hash: Optional[str] = None


def _decoy_hash() -> str:
    """Hash checked against when the username is unknown, so both paths cost the same."""
    global _timing_decoy_hash
    if _timing_decoy_hash is None:
        _timing_decoy_hash = hash_password(generate_session_token())
    return _timing_decoy_hash


class AccessGrantService(SessionManagedService):
    """
    Stores and validates access grants and the sessions minted from them.

    Exposes ``is_grant_active`` for visibility checks elsewhere; that check
    reads the row store on every call and is never cached.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[ContextAwareLogger] = None,
    ):
        super().__init__(session=session, logger=logger)
        self.clock = clock

    def _validate_grant(
        self, username: str, password_hash: str, duration_hours: int
    ) -> AccessGrantCreate:
        try:
            return AccessGrantCreate(
                username=username, password_hash=password_hash, duration_hours=duration_hours
            )
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else None
            raise ValidationError(
                f"Invalid access grant: {first['msg']}",
                field=field,
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
            ) from e

    @operation()
    def create(self, username: str, password_hash: str, duration_hours: int) -> str:
        """
        Create a grant from an already-hashed password.

        Returns:
            The new grant's ID

        Raises:
            DuplicateUsernameError: If the username is already taken
            ValidationError: If any field is empty or the duration is not positive
        """
        payload = self._validate_grant(username, password_hash, duration_hours)

        try:
            grant = create_record(self.session, AccessGrant, payload.model_dump())
        except RepositoryError as e:
            if e.error_code == ErrorCode.DUPLICATE:
                raise DuplicateUsernameError(cause=e) from e
            raise

        self.logger.info(
            "Access grant created",
            extra={"grant_id": grant.id, "duration_hours": grant.duration_hours},
        )
        return grant.id

    def create_with_password(self, username: str, password: str, duration_hours: int) -> str:
        """Hash ``password`` and create the grant."""
        return self.create(username, hash_password(password), duration_hours)

    @operation()
    def authenticate(self, username: str, password: str) -> GrantSession:
        """
        Exchange a username/password for a fresh session.

        Replaces whatever session the grant held before; earlier tokens stop
        matching immediately even if they had not expired.

        Raises:
            InvalidCredentialsError: Unknown username or wrong password, indistinguishably
        """
        grant = get_record(self.session, AccessGrant, {"username": username}) if username else None

        if grant is None:
            verify_password(password or "", _decoy_hash())
            raise InvalidCredentialsError()
        if not verify_password(password or "", grant.password_hash):
            raise InvalidCredentialsError()

        now = self.clock()
        new_session = GrantSession(
            token=generate_session_token(),
            expires_at=now + timedelta(hours=grant.duration_hours),
            issued_at=now,
        )
        self._replace_session(grant.id, new_session)

        self.logger.info(
            "Access grant session issued",
            extra={
                "grant_id": grant.id,
                "token": token_fingerprint(new_session.token),
                "expires_at": new_session.expires_at.isoformat(),
            },
        )
        return new_session

    def _replace_session(self, grant_id: str, new_session: GrantSession) -> None:
        """Overwrite the session slot with one UPDATE; the last writer wins."""
        try:
            updated = (
                self.session.query(AccessGrant)
                .filter(AccessGrant.id == grant_id)
                .update(
                    {
                        AccessGrant.session_token: new_session.token,
                        AccessGrant.session_expires_at: new_session.expires_at,
                        AccessGrant.session_issued_at: new_session.issued_at,
                        AccessGrant.used_at: new_session.issued_at,
                    },
                    synchronize_session=False,
                )
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryError(
                "Failed to store access grant session", cause=e, grant_id=grant_id
            ) from e

        if updated == 0:
            # Revoked between lookup and update
            raise InvalidCredentialsError()

    def get_active_session(self, session_token: Optional[str]) -> Optional[GrantSession]:
        """Return the session behind ``session_token`` if it is current and unexpired."""
        if not session_token:
            return None

        grant = get_record(self.session, AccessGrant, {"session_token": session_token})
        if grant is None or grant.session_expires_at is None:
            return None

        current = GrantSession(
            token=grant.session_token,
            expires_at=as_utc(grant.session_expires_at),
            issued_at=as_utc(grant.session_issued_at or grant.used_at or grant.created_at),
        )
        if not current.is_active_at(self.clock()):
            return None
        return current

    def is_grant_active(self, session_token: Optional[str]) -> bool:
        """True only for the current token of an existing grant, before its expiry."""
        return self.get_active_session(session_token) is not None

    @operation()
    def revoke(self, grant_id: str) -> bool:
        """
        Delete a grant outright. Its session token stops working at once.

        Returns:
            False if no such grant existed
        """
        deleted = delete_record(self.session, AccessGrant, grant_id)
        self.logger.info("Access grant revoked", extra={"grant_id": grant_id, "deleted": deleted})
        return deleted

    @operation()
    def update(self, grant_id: str, username: str, password: str, duration_hours: int) -> None:
        """
        Edit a grant's username, password and duration.

        The current session, if any, is left as it is.
        """
        payload = self._validate_grant(username, hash_password(password), duration_hours)
        try:
            update_record(self.session, AccessGrant, grant_id, payload.model_dump())
        except RepositoryError as e:
            if e.error_code == ErrorCode.DUPLICATE:
                raise DuplicateUsernameError(cause=e) from e
            raise

    def get_grant(self, grant_id: str) -> AccessGrantRead:
        grant = get_record_by_id(self.session, AccessGrant, grant_id)
        if grant is None:
            raise not_found("AccessGrant", grant_id=grant_id)
        return AccessGrantRead.model_validate(grant)

    def list_grants(self) -> List[AccessGrantRead]:
        """All grants, newest first."""
        grants = list_records(self.session, AccessGrant, descending=True)
        return [AccessGrantRead.model_validate(grant) for grant in grants]
