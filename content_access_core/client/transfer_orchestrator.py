"""
Client-side driver for two-phase attachment transfers.

Uploads: ticket, then PUT straight to storage, then record metadata.
Downloads: ticket, then GET straight from storage, then save locally, with a
direct-open fallback when a previously known link exists.

The ticket request may be retried after a storage failure. The raw PUT/GET
never is.
"""

import webbrowser
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

import requests

from ..config import AppConfig, get_config
from ..constants import TargetType, TransferState
from ..context.operation_context import operation
from ..exceptions import (
    BaseError,
    DownloadFailedError,
    ForbiddenError,
    StorageUnavailableError,
    UnauthenticatedError,
    UploadFailedError,
    ValidationError,
)
from ..schemas.attachment_schemas import AttachmentRead
from ..schemas.caller_schemas import GrantHolder, RegisteredUser
from ..schemas.transfer_schemas import FilePayload, TransferResult, UploadTicket
from ..services.transfer_mediator import TransferMediator, sanitize_filename
from ..utils.logger import ContextAwareLogger, get_logger
from ..utils.orphan_reporting import report_orphaned_blob

T = TypeVar("T")

# Policy decisions, never retried and never turned into UploadFailed/DownloadFailed
DENIAL_ERRORS = (UnauthenticatedError, ForbiddenError, ValidationError)


class TransferOrchestrator:
    """
    Drives uploads and downloads on behalf of one caller.

    Args:
        mediator: Issues tickets and records metadata
        caller: Identity every ticket is requested as
        http_session: requests session for the PUT/GET; a new one by default
        opener: Opens a fallback URL directly, e.g. in a browser tab
        orphan_reporter: Called when bytes were stored but could not be recorded
    """

    def __init__(
        self,
        mediator: TransferMediator,
        caller: Optional[Union[RegisteredUser, GrantHolder]],
        http_session: Optional[requests.Session] = None,
        config: Optional[AppConfig] = None,
        opener: Callable[[str], Any] = webbrowser.open_new_tab,
        orphan_reporter: Callable[..., Any] = report_orphaned_blob,
        logger: Optional[ContextAwareLogger] = None,
    ):
        self.mediator = mediator
        self.caller = caller
        self.http = http_session or requests.Session()
        self.config = config or get_config()
        self.transfer_config = self.config.transfer
        self.opener = opener
        self.orphan_reporter = orphan_reporter
        self.logger = logger or get_logger()
        self.state = TransferState.IDLE

    def _transition(self, state: TransferState, **extra) -> None:
        self.state = state
        self.logger.debug(f"Transfer state: {state.value}", extra=extra)

    def _request_ticket(self, request: Callable[[], T]) -> T:
        """Call ``request``, retrying only StorageUnavailableError up to the configured count."""
        failures = 0
        while True:
            try:
                return request()
            except StorageUnavailableError as e:
                failures += 1
                if failures > self.transfer_config.ticket_retry_attempts:
                    raise
                self.logger.warning(
                    "Ticket request failed, retrying",
                    extra={"attempt": failures, "error_id": e.error_id},
                )

    # ==================== UPLOAD ====================

    @operation()
    def upload(
        self, file: FilePayload, target_type: Union[TargetType, str], target_id: str
    ) -> AttachmentRead:
        """
        Upload ``file`` and attach it to a content target.

        Raises:
            UnauthenticatedError, ForbiddenError, ValidationError: Ticket denied
            UploadFailedError: Any later step failed; no partial result is returned
        """
        self._transition(TransferState.TICKET_REQUESTED)
        try:
            ticket: UploadTicket = self._request_ticket(
                lambda: self.mediator.request_upload_ticket(
                    self.caller, target_type, file.name, file.size, file.content_type
                )
            )
        except DENIAL_ERRORS:
            self._transition(TransferState.TICKET_DENIED)
            raise
        except BaseError as e:
            self._transition(TransferState.FAILED)
            raise UploadFailedError(cause=e, stage="ticket") from e

        self._transition(TransferState.TICKET_GRANTED, storage_path=ticket.storage_path)
        self._transition(TransferState.TRANSFERRING, storage_path=ticket.storage_path)
        try:
            response = self.http.put(
                ticket.signed_url,
                data=file.data,
                headers={**ticket.headers, "Content-Type": ticket.content_type},
                timeout=self.transfer_config.http_timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            self._transition(TransferState.FAILED, storage_path=ticket.storage_path)
            raise UploadFailedError(cause=e, stage="put", storage_path=ticket.storage_path) from e

        try:
            attachment = self.mediator.record_upload(
                self.caller,
                target_id,
                target_type,
                ticket,
                file.name,
                file.size,
                ticket.content_type,
            )
        except BaseError as e:
            self._transition(TransferState.ORPHANED_BLOB, storage_path=ticket.storage_path)
            self.orphan_reporter(
                storage_path=ticket.storage_path,
                target_type=TargetType(target_type).value,
                target_id=target_id,
                uploader_id=getattr(self.caller, "user_id", ""),
                size=file.size,
                content_type=ticket.content_type,
                reason=e.message,
                config=self.config,
            )
            raise UploadFailedError(
                cause=e,
                stage="record",
                storage_path=ticket.storage_path,
                transfer_state=TransferState.ORPHANED_BLOB.value,
            ) from e

        self._transition(TransferState.RECORDED, storage_path=ticket.storage_path)
        return attachment

    # ==================== DOWNLOAD ====================

    def _fetch(self, signed_url: str) -> bytes:
        response = self.http.get(signed_url, timeout=self.transfer_config.http_timeout)
        response.raise_for_status()
        return response.content

    def _save(self, data: bytes, filename: str) -> Path:
        """Write ``data`` into the download directory without overwriting existing files."""
        directory = Path(self.transfer_config.download_dir)
        directory.mkdir(parents=True, exist_ok=True)

        safe_name = Path(sanitize_filename(filename).lstrip(".") or "download")
        target = directory / safe_name
        counter = 1
        while target.exists():
            target = directory / f"{safe_name.stem}-{counter}{safe_name.suffix}"
            counter += 1

        target.write_bytes(data)
        return target

    def _open_fallback(
        self, fallback_url: str, storage_path: str, error: Exception
    ) -> TransferResult:
        self.logger.info(
            "Download failed, opening fallback link",
            extra={"storage_path": storage_path, "error_type": type(error).__name__},
        )
        try:
            opened = self.opener(fallback_url)
        except (webbrowser.Error, OSError) as e:
            self._transition(TransferState.FAILED, storage_path=storage_path)
            raise DownloadFailedError(cause=e, storage_path=storage_path, stage="fallback") from e

        # webbrowser reports "no browser available" by returning False
        if not opened:
            self._transition(TransferState.FAILED, storage_path=storage_path)
            raise DownloadFailedError(
                "Fallback link could not be opened",
                cause=error,
                storage_path=storage_path,
                stage="fallback",
            )

        self._transition(TransferState.FALLBACK_OPENED, storage_path=storage_path)
        return TransferResult(
            state=TransferState.FALLBACK_OPENED, storage_path=storage_path, opened_url=fallback_url
        )

    @operation()
    def download(
        self,
        storage_path: str,
        filename: str,
        target_type: Union[TargetType, str],
        fallback_url: Optional[str] = None,
    ) -> TransferResult:
        """
        Download an attachment into the configured download directory.

        A fresh ticket is always requested first. If the ticket or the GET
        fails and ``fallback_url`` is given, that link is opened instead and
        the result is FALLBACK_OPENED.

        Raises:
            UnauthenticatedError, ForbiddenError, ValidationError: Ticket denied, no fallback
            DownloadFailedError: Anything else failed and there was no fallback
        """
        self._transition(TransferState.TICKET_REQUESTED, storage_path=storage_path)
        try:
            ticket = self._request_ticket(
                lambda: self.mediator.request_download_ticket(
                    self.caller, storage_path, target_type
                )
            )
            self._transition(TransferState.TICKET_GRANTED, storage_path=storage_path)
            self._transition(TransferState.TRANSFERRING, storage_path=storage_path)
            data = self._fetch(ticket.signed_url)
        except (BaseError, requests.RequestException) as e:
            if fallback_url:
                return self._open_fallback(fallback_url, storage_path, e)
            if isinstance(e, DENIAL_ERRORS):
                self._transition(TransferState.TICKET_DENIED, storage_path=storage_path)
                raise
            self._transition(TransferState.FAILED, storage_path=storage_path)
            raise DownloadFailedError(cause=e, storage_path=storage_path) from e

        try:
            saved = self._save(data, filename or storage_path.rsplit("/", 1)[-1])
        except OSError as e:
            self._transition(TransferState.FAILED, storage_path=storage_path)
            raise DownloadFailedError(cause=e, storage_path=storage_path, stage="save") from e

        self._transition(TransferState.SAVED, storage_path=storage_path)
        return TransferResult(
            state=TransferState.SAVED, storage_path=storage_path, saved_path=str(saved)
        )
