"""Local filesystem blob store for uploaded documents.

Documents are written once under a generated key and read back as bytes.
Keys are relative paths below the store root.
"""

import os
import re
from pathlib import Path
from typing import Union
from uuid import uuid4

from gradecheck.logging import get_logger

from .exceptions import BlobNotFoundError, StorageError

logger = get_logger(__name__, component="storage")


def normalize_filename(filename: str) -> str:
    """Replace anything but word characters and dashes in the stem with '_'."""
    name, ext = os.path.splitext(filename)
    name = re.sub(r"[^\w\-]", "_", name) or "document"
    return f"{name}{ext.lower()}"


class LocalBlobStore:
    """Blob store backed by a directory.

    Attributes:
        root: Directory holding the blobs (created on first write)
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def put(self, file_name: str, content: bytes) -> str:
        """Store bytes and return the key to read them back.

        Args:
            file_name: Original file name, kept in the key for readability
            content: Document bytes

        Raises:
            StorageError: If the blob cannot be written
        """
        key = f"{uuid4().hex}__{normalize_filename(file_name)}"
        path = self._path(key)

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to write blob {key}: {e}") from e

        logger.debug(
            "Blob stored",
            extra={"event": "storage.blob.stored", "storage_key": key, "size_bytes": len(content)},
        )
        return key

    def get(self, key: str) -> bytes:
        """Read the bytes stored under key.

        Raises:
            BlobNotFoundError: If nothing is stored under key
            StorageError: If the blob cannot be read
        """
        path = self._path(key)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {key}")

        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read blob {key}: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> bool:
        """Remove a blob. Returns False if it did not exist."""
        path = self._path(key)
        if not path.is_file():
            return False

        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete blob {key}: {e}") from e
        return True

    def _path(self, key: str) -> Path:
        if not key or Path(key).is_absolute() or ".." in Path(key).parts:
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.root / key
