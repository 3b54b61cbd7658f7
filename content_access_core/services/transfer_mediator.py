"""
Attachment transfer mediator.

Stands between callers and blob storage: every signed URL handed out here is
preceded by an authorization decision, and that decision is made again on
every request. File bytes never pass through this service.
"""

import re
import uuid
from datetime import datetime
from typing import Callable, Optional, Protocol, Tuple, Union

from ..config import AppConfig, get_config
from ..constants import DEFAULT_CONTENT_TYPE, TargetType
from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..exceptions import (
    BaseError,
    ErrorCode,
    StorageUnavailableError,
    UnauthenticatedError,
    ValidationError,
    forbidden,
    validation_failed,
)
from ..schemas.attachment_schemas import AttachmentRead, TargetDescriptor
from ..schemas.caller_schemas import GrantHolder, RegisteredUser
from ..schemas.transfer_schemas import DownloadTicket, SignedUrl, UploadTicket
from ..storage.blob_signer import BlobSigner
from ..utils.logger import ContextAwareLogger, get_logger
from .access_grant_service import AccessGrantService
from .attachment_service import AttachmentService

Caller = Union[RegisteredUser, GrantHolder]

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class TargetDirectory(Protocol):
    """Lookup of content targets, supplied by the hosting application."""

    def describe(self, target_type: TargetType, target_id: str) -> Optional[TargetDescriptor]: ...


def sanitize_filename(name: str) -> str:
    """Replace every run of characters outside ``[A-Za-z0-9._-]`` with ``_``."""
    return _UNSAFE_NAME_CHARS.sub("_", name or "file")


def build_storage_path(
    target_type: TargetType, uploader_id: str, file_name: str, now: Optional[datetime] = None
) -> str:
    """
    Generate a fresh blob path: ``{folder}/{uploader}/{epoch_ms}-{uuid4}-{name}``.

    The random component makes every path unique even for identical inputs.
    """
    epoch_ms = int((now or utc_now()).timestamp() * 1000)
    return (
        f"{target_type.storage_folder}/{sanitize_filename(uploader_id)}/"
        f"{epoch_ms}-{uuid.uuid4()}-{sanitize_filename(file_name)}"
    )


def parse_storage_path(storage_path: str, target_type: TargetType) -> Tuple[str, str]:
    """
    Split a storage path into its uploader segment and blob name.

    Raises:
        ValidationError: If the path is not under the folder for ``target_type``
    """
    parts = storage_path.split("/") if isinstance(storage_path, str) else []
    if (
        len(parts) != 3
        or not all(parts)
        or ".." in parts
        or parts[0] != target_type.storage_folder
    ):
        raise ValidationError(
            "Invalid path for target type",
            field="storage_path",
            error_code=ErrorCode.INVALID_FORMAT,
            target_type=target_type.value,
        )
    return parts[1], parts[2]


class TransferMediator:
    """
    Issues upload and download tickets after checking who is asking.

    Download authorization: the caller owns the target, or the target is
    public, or the caller presents the current token of an unexpired access
    grant. When no metadata row or target record is known for a path, the
    uploader segment of the path stands in for the owner.
    """

    def __init__(
        self,
        signer: BlobSigner,
        grant_service: AccessGrantService,
        attachment_service: AttachmentService,
        target_directory: TargetDirectory,
        config: Optional[AppConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        logger: Optional[ContextAwareLogger] = None,
    ):
        config = config or get_config()
        self.signer = signer
        self.grant_service = grant_service
        self.attachment_service = attachment_service
        self.target_directory = target_directory
        self.storage_config = config.storage
        self.transfer_config = config.transfer
        self.clock = clock
        self.logger = logger or get_logger()

    # ==================== CALLER CHECKS ====================

    def _require_caller(self, caller: Optional[Caller]) -> Caller:
        if caller is None:
            raise UnauthenticatedError()
        if not isinstance(caller, (RegisteredUser, GrantHolder)):
            raise UnauthenticatedError("Unrecognized caller identity")
        return caller

    def _require_uploader(self, caller: Optional[Caller], action: str) -> RegisteredUser:
        caller = self._require_caller(caller)
        if isinstance(caller, GrantHolder):
            raise forbidden(action, "attachment", caller_kind=caller.kind)
        return caller

    @staticmethod
    def _coerce_target_type(target_type: Union[TargetType, str]) -> TargetType:
        try:
            return TargetType(target_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown target type: {target_type}",
                field="target_type",
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
            ) from e

    def _validate_upload(self, file_name: str, file_size: int, content_type: Optional[str]) -> str:
        """Check declared upload metadata. Returns the content type to store."""
        if not file_name or not file_name.strip():
            raise validation_failed("file_name", file_name, "File name is required")

        if isinstance(file_size, bool) or not isinstance(file_size, int) or file_size < 0:
            raise validation_failed("file_size", file_size, "Size must be a non-negative integer")
        if file_size > self.transfer_config.max_attachment_size:
            raise validation_failed("file_size", file_size, "File is too large")

        # Undeclared types are stored as generic binary and skip the allowlist
        resolved = (content_type or "").strip() or DEFAULT_CONTENT_TYPE
        if (
            resolved != DEFAULT_CONTENT_TYPE
            and resolved not in self.transfer_config.allowed_content_types
        ):
            raise validation_failed("content_type", resolved, "File type is not allowed")
        return resolved

    def _is_owner(
        self, caller: Caller, descriptor: Optional[TargetDescriptor], uploader_segment: str
    ) -> bool:
        if not isinstance(caller, RegisteredUser):
            return False
        if descriptor is not None:
            return descriptor.owner_id == caller.user_id
        return sanitize_filename(caller.user_id) == uploader_segment

    def _authorize_download(
        self, caller: Caller, storage_path: str, target_type: TargetType, uploader_segment: str
    ) -> str:
        """Return the reason access is allowed, or raise ForbiddenError."""
        attachment = self.attachment_service.get_by_storage_path(storage_path)
        descriptor = None
        if attachment is not None:
            descriptor = self.target_directory.describe(target_type, attachment.target_id)

        if self._is_owner(caller, descriptor, uploader_segment):
            return "owner"
        if descriptor is not None and descriptor.is_public:
            return "public"
        if self.grant_service.is_grant_active(caller.one_time_token):
            return "access_grant"

        target_id = attachment.target_id if attachment else None
        raise forbidden(
            "download", "attachment", target_type=target_type.value, target_id=target_id
        )

    # ==================== STORAGE CALLS ====================

    def _call_signer(self, func: Callable, *args) -> object:
        """Invoke the signer, surfacing any failure as StorageUnavailableError."""
        try:
            return func(*args)
        except BaseError:
            raise
        except Exception as e:
            raise StorageUnavailableError(
                "Blob storage request failed",
                cause=e,
                signer_call=getattr(func, "__name__", "signer"),
            ) from e

    # ==================== TICKETS ====================

    @operation()
    def request_upload_ticket(
        self,
        caller: Optional[Caller],
        target_type: Union[TargetType, str],
        file_name: str,
        file_size: int,
        content_type: Optional[str] = None,
    ) -> UploadTicket:
        """
        Issue a signed PUT URL for a freshly generated storage path.

        No metadata row is written; the caller records the upload once the
        bytes are in storage.

        Raises:
            UnauthenticatedError: No caller
            ForbiddenError: The caller only holds an access grant
            ValidationError: Bad target type, name, size or content type
            StorageUnavailableError: The signer failed
        """
        user = self._require_uploader(caller, "upload")
        target_type = self._coerce_target_type(target_type)
        resolved_type = self._validate_upload(file_name, file_size, content_type)

        storage_path = build_storage_path(target_type, user.user_id, file_name, self.clock())
        signed: SignedUrl = self._call_signer(
            self.signer.sign_put, storage_path, resolved_type, self.storage_config.upload_ticket_ttl
        )

        self.logger.info(
            "Upload ticket issued",
            extra={
                "target_type": target_type.value,
                "storage_path": storage_path,
                "size": file_size,
                "content_type": resolved_type,
            },
        )
        return UploadTicket(
            signed_url=signed.url,
            storage_path=storage_path,
            content_type=resolved_type,
            expires_at=signed.expires_at,
            headers=signed.headers,
        )

    @operation()
    def request_download_ticket(
        self,
        caller: Optional[Caller],
        storage_path: str,
        target_type: Union[TargetType, str],
    ) -> DownloadTicket:
        """
        Issue a signed GET URL for one storage path.

        Authorization is decided afresh on every call, so an access grant
        that expired since the previous ticket no longer works.

        Raises:
            UnauthenticatedError: No caller
            ValidationError: Path not under the folder for ``target_type``
            ForbiddenError: Caller is neither owner nor grant holder and the target is not public
            StorageUnavailableError: The signer failed
        """
        caller = self._require_caller(caller)
        target_type = self._coerce_target_type(target_type)
        uploader_segment, _ = parse_storage_path(storage_path, target_type)

        reason = self._authorize_download(caller, storage_path, target_type, uploader_segment)
        signed: SignedUrl = self._call_signer(
            self.signer.sign_get, storage_path, self.storage_config.download_ticket_ttl
        )

        self.logger.info(
            "Download ticket issued",
            extra={"target_type": target_type.value, "storage_path": storage_path, "reason": reason},
        )
        return DownloadTicket(
            signed_url=signed.url, storage_path=storage_path, expires_at=signed.expires_at
        )

    # ==================== METADATA AND CLEANUP ====================

    @operation()
    def record_upload(
        self,
        caller: Optional[Caller],
        target_id: str,
        target_type: Union[TargetType, str],
        ticket: Union[UploadTicket, str],
        name: str,
        size: int,
        content_type: Optional[str] = None,
    ) -> AttachmentRead:
        """
        Record metadata for bytes already written under an upload ticket.

        The storage path must carry the caller's own uploader segment, and
        when the target is known the caller must own it.
        """
        user = self._require_uploader(caller, "record")
        target_type = self._coerce_target_type(target_type)
        storage_path = ticket.storage_path if isinstance(ticket, UploadTicket) else ticket
        uploader_segment, _ = parse_storage_path(storage_path, target_type)
        if uploader_segment != sanitize_filename(user.user_id):
            raise forbidden("record", "attachment", target_type=target_type.value)

        descriptor = self.target_directory.describe(target_type, target_id)
        if descriptor is not None and descriptor.owner_id != user.user_id:
            raise forbidden(
                "record", "attachment", target_type=target_type.value, target_id=target_id
            )

        resolved_type = self._validate_upload(name, size, content_type)
        return self.attachment_service.record(
            target_id=target_id,
            target_type=target_type,
            name=name,
            size=size,
            content_type=resolved_type,
            storage_path=storage_path,
            uploader_id=user.user_id,
        )

    @operation()
    def delete_blob(
        self,
        caller: Optional[Caller],
        storage_path: str,
        target_type: Union[TargetType, str],
    ) -> bool:
        """
        Remove a blob uploaded by the caller.

        Metadata rows are not touched; see ``AttachmentService.delete``.

        Returns:
            False if the blob was already gone
        """
        user = self._require_uploader(caller, "delete")
        target_type = self._coerce_target_type(target_type)
        uploader_segment, _ = parse_storage_path(storage_path, target_type)
        if uploader_segment != sanitize_filename(user.user_id):
            raise forbidden("delete", "attachment", target_type=target_type.value)

        deleted = self._call_signer(self.signer.delete_blob, storage_path)
        self.logger.info(
            "Blob deleted",
            extra={
                "storage_path": storage_path,
                "deleted": deleted,
            },
        )
        return bool(deleted)
