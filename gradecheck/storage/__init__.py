"""Document storage: local blob store and file registration."""

from .blob_store import LocalBlobStore, normalize_filename
from .exceptions import BlobNotFoundError, StorageError
from .service import FileService

__all__ = [
    "FileService",
    "LocalBlobStore",
    "normalize_filename",
    "StorageError",
    "BlobNotFoundError",
]
