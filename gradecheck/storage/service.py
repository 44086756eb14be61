"""File registration: blob bytes plus metadata row."""

from pathlib import Path
from typing import List, Optional, Union

from gradecheck.domain.models import DocumentOrigin, RawDocument, SourceFile
from gradecheck.logging import get_logger
from gradecheck.persistence.database import get_session
from gradecheck.persistence.repositories import FileRepository

from .blob_store import LocalBlobStore
from .exceptions import StorageError

logger = get_logger(__name__, component="storage")


class FileService:
    """Registers documents and hands their bytes to the normalizers."""

    def __init__(self, blob_store: LocalBlobStore):
        self.blob_store = blob_store

    def register_file(
        self,
        path: Union[str, Path],
        origin: DocumentOrigin,
        institution: Optional[str] = None,
        academic_year: Optional[str] = None,
    ) -> SourceFile:
        """Copy a local file into the blob store and record its metadata.

        Args:
            path: File to register
            origin: ADMISSION for spreadsheets, TRANSCRIPT for XML exports
            institution: Issuing institution, if known
            academic_year: Academic year covered, if known

        Returns:
            The registered SourceFile with its file_id

        Raises:
            StorageError: If the file cannot be read or stored
        """
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

        return self.register_content(path.name, content, origin, institution, academic_year)

    def register_content(
        self,
        file_name: str,
        content: bytes,
        origin: DocumentOrigin,
        institution: Optional[str] = None,
        academic_year: Optional[str] = None,
    ) -> SourceFile:
        """Store in-memory bytes and record their metadata."""
        storage_key = self.blob_store.put(file_name, content)

        try:
            with get_session() as session:
                source_file = FileRepository(session).add(
                    SourceFile(
                        file_name=file_name,
                        origin=origin,
                        storage_key=storage_key,
                        institution=institution,
                        academic_year=academic_year,
                    )
                )
        except Exception:
            self.blob_store.delete(storage_key)
            raise

        logger.info(
            f"Registered {file_name}",
            extra={
                "event": "storage.file.registered",
                "file_id": source_file.file_id,
                "origin": DocumentOrigin(origin).value,
            },
        )
        return source_file

    def get_file(self, file_id: int) -> Optional[SourceFile]:
        """Metadata of a registered file, or None."""
        with get_session() as session:
            return FileRepository(session).get(file_id)

    def list_files(self, origin: Optional[DocumentOrigin] = None) -> List[SourceFile]:
        with get_session() as session:
            return FileRepository(session).list_files(origin)

    def load_document(self, source_file: SourceFile) -> RawDocument:
        """Read the bytes of a registered file.

        Raises:
            BlobNotFoundError: If the blob has disappeared from the store
        """
        return RawDocument(
            file_id=source_file.file_id,
            file_name=source_file.file_name,
            origin=source_file.origin,
            content=self.blob_store.get(source_file.storage_key),
        )

    def delete_file(self, file_id: int) -> bool:
        """Remove a file, its blob, and all data derived from it."""
        with get_session() as session:
            repo = FileRepository(session)
            source_file = repo.get(file_id)
            if source_file is None:
                return False
            repo.delete(file_id)

        self.blob_store.delete(source_file.storage_key)
        logger.info(
            "Deleted file",
            extra={"event": "storage.file.deleted", "file_id": file_id},
        )
        return True
