"""Blob storage exceptions."""


class StorageError(Exception):
    """Base exception for blob storage failures."""

    pass


class BlobNotFoundError(StorageError):
    """Raised when no blob exists under the requested key."""

    pass
