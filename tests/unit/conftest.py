"""
Unit test conftest.py - Component-specific fixtures.

This module provides fixtures specific to unit testing:
- Service fixtures bound to the per-test session
- A controllable clock
- In-memory stand-ins for the blob signer and the target directory
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from content_access_core.constants import TargetType, Visibility
from content_access_core.exceptions import StorageUnavailableError
from content_access_core.schemas import GrantHolder, RegisteredUser, SignedUrl, TargetDescriptor
from content_access_core.services import AccessGrantService, AttachmentService, TransferMediator


class MutableClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeSigner:
    """BlobSigner that issues predictable URLs and can be told to fail."""

    def __init__(self):
        self.calls: List[Tuple[str, str]] = []
        self.blobs = set()
        self.failures_remaining = 0
        self.failure: Exception = StorageUnavailableError("signer down")

    def _maybe_fail(self) -> None:
        if self.failures_remaining > 0:
            self.failures_remaining -= 1
            raise self.failure

    def sign_put(self, path: str, content_type: str, ttl_seconds: int) -> SignedUrl:
        self.calls.append(("put", path))
        self._maybe_fail()
        return SignedUrl(
            url=f"https://storage.test/attachments/{path}?sig=put",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
            headers={"x-ms-blob-type": "BlockBlob", "Content-Type": content_type},
        )

    def sign_get(self, path: str, ttl_seconds: int) -> SignedUrl:
        self.calls.append(("get", path))
        self._maybe_fail()
        return SignedUrl(
            url=f"https://storage.test/attachments/{path}?sig=get",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
        )

    def delete_blob(self, path: str) -> bool:
        self.calls.append(("delete", path))
        self._maybe_fail()
        if path in self.blobs:
            self.blobs.discard(path)
            return True
        return False


class InMemoryTargetDirectory:
    """TargetDirectory backed by a dict."""

    def __init__(self):
        self.targets: Dict[Tuple[TargetType, str], TargetDescriptor] = {}

    def add(
        self,
        target_id: str,
        owner_id: str,
        target_type: TargetType = TargetType.APP,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> TargetDescriptor:
        descriptor = TargetDescriptor(
            target_id=target_id, target_type=target_type, owner_id=owner_id, visibility=visibility
        )
        self.targets[(target_type, target_id)] = descriptor
        return descriptor

    def describe(self, target_type: TargetType, target_id: str) -> Optional[TargetDescriptor]:
        return self.targets.get((TargetType(target_type), target_id))


# ==================== CLOCK AND CALLERS ====================


@pytest.fixture
def clock() -> MutableClock:
    """Clock starting at a fixed UTC instant."""
    return MutableClock(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def owner() -> RegisteredUser:
    return RegisteredUser(user_id="owner-1")


@pytest.fixture
def stranger() -> RegisteredUser:
    return RegisteredUser(user_id="stranger-2")


@pytest.fixture
def grant_holder_factory():
    """Build a GrantHolder for a given session token."""
    return lambda token: GrantHolder(one_time_token=token)


# ==================== SERVICE FIXTURES ====================


@pytest.fixture(scope="function")
def grant_service(db_session, clock) -> AccessGrantService:
    """Access grant service with test session and controllable clock."""
    return AccessGrantService(session=db_session, clock=clock)


@pytest.fixture(scope="function")
def attachment_service(db_session) -> AttachmentService:
    """Attachment metadata service with test session."""
    return AttachmentService(session=db_session)


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def target_directory() -> InMemoryTargetDirectory:
    return InMemoryTargetDirectory()


@pytest.fixture(scope="function")
def mediator(
    signer, grant_service, attachment_service, target_directory, app_config, clock
) -> TransferMediator:
    """Transfer mediator wired to the fakes above."""
    return TransferMediator(
        signer=signer,
        grant_service=grant_service,
        attachment_service=attachment_service,
        target_directory=target_directory,
        config=app_config,
        clock=clock,
    )
