"""
Blob storage signing capability.

The mediator only depends on the BlobSigner protocol. AzureBlobSigner issues
Azure Storage SAS URLs so that file bytes travel straight between the client
and storage, never through the application server.
"""

from datetime import timedelta
from typing import Optional, Protocol

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, generate_blob_sas

from ..config import StorageConfig, get_config
from ..db.db_base import utc_now
from ..exceptions import StorageUnavailableError, ValidationError
from ..schemas.transfer_schemas import SignedUrl
from ..utils.logger import get_logger


class BlobSigner(Protocol):
    """Anything that can mint signed PUT/GET URLs and remove blobs."""

    def sign_put(self, path: str, content_type: str, ttl_seconds: int) -> SignedUrl: ...

    def sign_get(self, path: str, ttl_seconds: int) -> SignedUrl: ...

    def delete_blob(self, path: str) -> bool: ...


class AzureBlobSigner:
    """BlobSigner backed by an Azure Storage account key."""

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        service_client: Optional[BlobServiceClient] = None,
    ):
        self.config = config or get_config().storage
        self._service_client = service_client
        self.logger = get_logger()

    @property
    def service_client(self) -> BlobServiceClient:
        if self._service_client is None:
            if not self.config.connection_string:
                raise StorageUnavailableError(
                    "Azure Storage connection string is not configured",
                    reason="not_configured",
                )
            try:
                self._service_client = BlobServiceClient.from_connection_string(
                    self.config.connection_string
                )
            except (AzureError, ValueError) as e:
                raise StorageUnavailableError(
                    "Invalid Azure Storage connection string", cause=e
                ) from e
        return self._service_client

    def _account_key(self) -> str:
        credential = self.service_client.credential
        account_key = getattr(credential, "account_key", None)
        if not account_key:
            raise StorageUnavailableError(
                "Signing requires a shared account key credential",
                container=self.config.container_name,
            )
        return account_key

    def _sign(self, path: str, permission: BlobSasPermissions, ttl_seconds: int) -> SignedUrl:
        if not path or path.startswith("/") or ".." in path.split("/"):
            raise ValidationError("Invalid storage path", field="storage_path", value=path)

        expires_at = utc_now() + timedelta(seconds=ttl_seconds)
        blob_client = self.service_client.get_blob_client(self.config.container_name, path)
        try:
            sas_token = generate_blob_sas(
                account_name=self.service_client.account_name,
                container_name=self.config.container_name,
                blob_name=path,
                account_key=self._account_key(),
                permission=permission,
                expiry=expires_at,
            )
        except (AzureError, ValueError, TypeError) as e:
            raise StorageUnavailableError(
                "Failed to sign blob URL", cause=e, container=self.config.container_name
            ) from e

        return SignedUrl(url=f"{blob_client.url}?{sas_token}", expires_at=expires_at)

    def sign_put(self, path: str, content_type: str, ttl_seconds: int) -> SignedUrl:
        signed = self._sign(path, BlobSasPermissions(create=True, write=True), ttl_seconds)
        return signed.model_copy(
            update={
                "headers": {
                    "x-ms-blob-type": "BlockBlob",
                    "Content-Type": content_type,
                }
            }
        )

    def sign_get(self, path: str, ttl_seconds: int) -> SignedUrl:
        return self._sign(path, BlobSasPermissions(read=True), ttl_seconds)

    def delete_blob(self, path: str) -> bool:
        """Delete a blob. Returns False when it was already gone."""
        try:
            self.service_client.get_blob_client(self.config.container_name, path).delete_blob()
        except ResourceNotFoundError:
            self.logger.debug("Blob already absent", extra={"storage_path": path})
            return False
        except AzureError as e:
            raise StorageUnavailableError(
                "Failed to delete blob", cause=e, container=self.config.container_name
            ) from e
        return True
