"""Field mappings between an admission file and a transcript file.

A mapping says which admission column corresponds to which transcript
column, by indexed-field number. Within one file pair each column can be
mapped at most once on each side.
"""

from typing import List

from gradecheck.domain.models import MappingEntry
from gradecheck.logging import get_logger
from gradecheck.persistence.database import get_session
from gradecheck.persistence.repositories import MappingRepository

from .exceptions import MappingEntryNotFoundError, MappingError

logger = get_logger(__name__, component="mapping")


def _conflict_message(side: str, entry: MappingEntry) -> str:
    if side == "admission":
        return (
            f"Admission column {entry.admission_column_index} ({entry.admission_column_name}) "
            f"is already mapped to {entry.transcript_column_name}"
        )
    return (
        f"Transcript column {entry.transcript_column_index} ({entry.transcript_column_name}) "
        f"is already mapped to {entry.admission_column_name}"
    )


class MappingService:
    """Manages the field mapping of admission/transcript file pairs."""

    def add_entry(
        self,
        admission_file_id: int,
        transcript_file_id: int,
        admission_column_index: int,
        admission_column_name: str,
        transcript_column_index: int,
        transcript_column_name: str,
    ) -> MappingEntry:
        """Map one admission column to one transcript column.

        The file pair's mapping configuration is created on first use.

        Returns:
            The stored entry with its entry_id

        Raises:
            MappingError: If either column is already mapped for this pair
        """
        entry = MappingEntry(
            admission_column_index=admission_column_index,
            admission_column_name=admission_column_name,
            transcript_column_index=transcript_column_index,
            transcript_column_name=transcript_column_name,
        )

        with get_session() as session:
            repo = MappingRepository(session)
            mapping_id = repo.get_or_create(admission_file_id, transcript_file_id)
            conflict = repo.find_conflict(mapping_id, admission_column_index, transcript_column_index)
            if conflict is not None:
                side, existing = conflict
                raise MappingError(_conflict_message(side, existing), side=side)
            stored = repo.add_entry(mapping_id, entry)

        logger.info(
            f"Mapped {admission_column_name} -> {transcript_column_name}",
            extra={
                "event": "mapping.entry.added",
                "admission_file_id": admission_file_id,
                "transcript_file_id": transcript_file_id,
                "entry_id": stored.entry_id,
            },
        )
        return stored

    def get_entries(self, admission_file_id: int, transcript_file_id: int) -> List[MappingEntry]:
        """Entries of a file pair in creation order (empty if none)."""
        with get_session() as session:
            return MappingRepository(session).get_entries(admission_file_id, transcript_file_id)

    def update_entry(
        self,
        entry_id: int,
        admission_column_index: int,
        admission_column_name: str,
        transcript_column_index: int,
        transcript_column_name: str,
    ) -> MappingEntry:
        """Point an existing entry at different columns.

        Raises:
            MappingEntryNotFoundError: If the entry does not exist
            MappingError: If either column is used by another entry
        """
        with get_session() as session:
            repo = MappingRepository(session)
            found = repo.get_entry(entry_id)
            if found is None:
                raise MappingEntryNotFoundError(f"Mapping entry {entry_id} not found")

            mapping_id, _ = found
            conflict = repo.find_conflict(
                mapping_id, admission_column_index, transcript_column_index, exclude_entry_id=entry_id
            )
            if conflict is not None:
                side, existing = conflict
                raise MappingError(_conflict_message(side, existing), side=side)

            updated = repo.update_entry(
                MappingEntry(
                    entry_id=entry_id,
                    admission_column_index=admission_column_index,
                    admission_column_name=admission_column_name,
                    transcript_column_index=transcript_column_index,
                    transcript_column_name=transcript_column_name,
                )
            )

        logger.info(
            "Updated mapping entry",
            extra={"event": "mapping.entry.updated", "entry_id": entry_id},
        )
        return updated

    def delete_entry(self, entry_id: int) -> bool:
        """Delete one entry. Returns False if it did not exist."""
        with get_session() as session:
            deleted = MappingRepository(session).delete_entry(entry_id)
        if deleted:
            logger.info("Deleted mapping entry", extra={"event": "mapping.entry.deleted", "entry_id": entry_id})
        return deleted

    def clear(self, admission_file_id: int, transcript_file_id: int) -> int:
        """Delete every entry of a file pair. Returns the number removed."""
        with get_session() as session:
            removed = MappingRepository(session).clear(admission_file_id, transcript_file_id)
        logger.info(
            f"Cleared {removed} mapping entries",
            extra={
                "event": "mapping.cleared",
                "admission_file_id": admission_file_id,
                "transcript_file_id": transcript_file_id,
                "removed": removed,
            },
        )
        return removed
