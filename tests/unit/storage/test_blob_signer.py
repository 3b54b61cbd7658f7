"""
Unit tests for AzureBlobSigner.

SAS tokens are computed locally from the account key, so signing needs no
network; deletion is exercised against a mocked service client.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from content_access_core.config import StorageConfig
from content_access_core.exceptions import StorageUnavailableError, ValidationError
from content_access_core.storage import AzureBlobSigner

TEST_CONNECTION_STRING = (
    "DefaultEndpointsProtocol=https;AccountName=testaccount;"
    "AccountKey=dGVzdGtleXRlc3RrZXl0ZXN0a2V5dGVzdGtleQ==;EndpointSuffix=core.windows.net"
)


@pytest.fixture
def storage_config():
    return StorageConfig(connection_string=TEST_CONNECTION_STRING, container_name="attachments")


@pytest.fixture
def azure_signer(storage_config):
    return AzureBlobSigner(config=storage_config)


def _query(url):
    return parse_qs(urlsplit(url).query)


class TestSigning:
    """Test SAS URL generation."""

    def test_sign_put_scoped_to_path(self, azure_signer):
        signed = azure_signer.sign_put("apps/u1/file.txt", "text/plain", 600)

        assert signed.url.startswith(
            "https://testaccount.blob.core.windows.net/attachments/apps/u1/file.txt?"
        )
        query = _query(signed.url)
        assert set(query["sp"][0]) == {"c", "w"}
        assert "sig" in query
        assert signed.headers == {"x-ms-blob-type": "BlockBlob", "Content-Type": "text/plain"}

    def test_sign_get_read_only(self, azure_signer):
        signed = azure_signer.sign_get("apps/u1/file.txt", 600)

        assert _query(signed.url)["sp"] == ["r"]
        assert signed.headers == {}

    def test_expiry_follows_ttl(self, azure_signer):
        before = datetime.now(timezone.utc)

        signed = azure_signer.sign_get("apps/u1/file.txt", 120)

        assert before + timedelta(seconds=119) <= signed.expires_at
        assert signed.expires_at <= datetime.now(timezone.utc) + timedelta(seconds=120)

    @pytest.mark.parametrize("path", ["", "/apps/u1/x", "apps/../x"])
    def test_invalid_paths_rejected(self, azure_signer, path):
        with pytest.raises(ValidationError):
            azure_signer.sign_get(path, 60)

    def test_missing_connection_string(self):
        signer = AzureBlobSigner(config=StorageConfig(connection_string=""))

        with pytest.raises(StorageUnavailableError) as exc_info:
            signer.sign_get("apps/u1/x", 60)

        assert exc_info.value.status_code == 503
        assert exc_info.value.context["reason"] == "not_configured"

    def test_credential_without_account_key(self, storage_config):
        client = Mock()
        client.credential = None
        signer = AzureBlobSigner(config=storage_config, service_client=client)

        with pytest.raises(StorageUnavailableError):
            signer.sign_get("apps/u1/x", 60)


class TestDelete:
    """Test blob deletion."""

    @pytest.fixture
    def blob_client(self):
        return Mock()

    @pytest.fixture
    def mocked_signer(self, storage_config, blob_client):
        client = Mock()
        client.get_blob_client.return_value = blob_client
        return AzureBlobSigner(config=storage_config, service_client=client)

    def test_delete_existing(self, mocked_signer, blob_client):
        assert mocked_signer.delete_blob("apps/u1/x") is True
        blob_client.delete_blob.assert_called_once_with()
        mocked_signer.service_client.get_blob_client.assert_called_once_with(
            "attachments", "apps/u1/x"
        )

    def test_delete_missing_returns_false(self, mocked_signer, blob_client):
        blob_client.delete_blob.side_effect = ResourceNotFoundError("gone")

        assert mocked_signer.delete_blob("apps/u1/x") is False

    def test_delete_failure_is_storage_unavailable(self, mocked_signer, blob_client):
        blob_client.delete_blob.side_effect = HttpResponseError("boom")

        with pytest.raises(StorageUnavailableError) as exc_info:
            mocked_signer.delete_blob("apps/u1/x")

        assert isinstance(exc_info.value.cause, HttpResponseError)
