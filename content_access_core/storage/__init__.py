"""Blob storage capabilities."""

from .blob_signer import AzureBlobSigner, BlobSigner

__all__ = ["AzureBlobSigner", "BlobSigner"]
