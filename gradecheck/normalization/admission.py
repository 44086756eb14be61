"""Normalization service for admission spreadsheets.

Converts a registered spreadsheet into NormalizedCandidate rows (with their
academic records and scores) and exposes them as indexed records, the
column-number view used by field mappings and the comparison engine.

Admission field indexes:
    0   fullName
    1   dateOfBirth
    2+  score_<label>, one per distinct score label in order of first appearance
"""

from typing import Dict, List, Optional

from gradecheck.domain.models import (
    DocumentOrigin,
    FieldCategory,
    IndexedField,
    NormalizedCandidate,
)
from gradecheck.logging import get_logger
from gradecheck.normalizers.exceptions import NormalizationErrorCode, NormalizerError
from gradecheck.normalizers.spreadsheet import AdmissionSpreadsheetNormalizer
from gradecheck.persistence.database import get_session
from gradecheck.persistence.exceptions import PersistenceError
from gradecheck.persistence.repositories import AdmissionRepository, FileRepository
from gradecheck.storage.exceptions import StorageError
from gradecheck.storage.service import FileService

from .exceptions import AdmissionNormalizationError
from .models import AdmissionNormalizationSummary, IndexedRecord

logger = get_logger(__name__, component="normalization")

FULL_NAME_INDEX = 0
DATE_OF_BIRTH_INDEX = 1
FIRST_SCORE_INDEX = 2


def score_field_name(label: str) -> str:
    """Indexed field name of a score label ("Note GMAT" -> "score_Note_GMAT")."""
    return "score_" + "_".join(label.split())


class AdmissionNormalizationService:
    """Normalizes admission spreadsheets and serves the normalized rows."""

    def __init__(
        self,
        file_service: FileService,
        normalizer: Optional[AdmissionSpreadsheetNormalizer] = None,
    ):
        self.file_service = file_service
        self.normalizer = normalizer or AdmissionSpreadsheetNormalizer()

    def normalize_file(self, file_id: int) -> AdmissionNormalizationSummary:
        """Normalize a registered admission spreadsheet.

        Preconditions are checked before the file is read; all rows are
        written in a single transaction.

        Args:
            file_id: Registered file to normalize

        Returns:
            AdmissionNormalizationSummary with row counts

        Raises:
            AdmissionNormalizationError: ALREADY_NORMALIZED, FILE_NOT_FOUND,
                INVALID_FILE_TYPE, MISSING_REQUIRED_COLUMNS or PROCESSING_ERROR
        """
        with get_session() as session:
            source_file = FileRepository(session).get(file_id)
            if source_file is None:
                raise AdmissionNormalizationError(NormalizationErrorCode.FILE_NOT_FOUND, file_id=file_id)
            if source_file.origin != DocumentOrigin.ADMISSION:
                raise AdmissionNormalizationError(NormalizationErrorCode.INVALID_FILE_TYPE, file_id=file_id)
            if AdmissionRepository(session).count_candidates(file_id) > 0:
                raise AdmissionNormalizationError(NormalizationErrorCode.ALREADY_NORMALIZED, file_id=file_id)

        try:
            document = self.file_service.load_document(source_file)
        except StorageError as e:
            raise AdmissionNormalizationError(
                NormalizationErrorCode.FILE_NOT_FOUND, str(e), file_id=file_id
            ) from e

        try:
            extraction = self.normalizer.extract(document.content)
        except NormalizerError as e:
            logger.warning(
                f"Admission file {file_id} rejected: {e.message}",
                extra={"event": "normalization.admission.rejected", "file_id": file_id, "code": e.code.value},
            )
            raise AdmissionNormalizationError(e.code, e.message, file_id=file_id) from e

        try:
            with get_session() as session:
                AdmissionRepository(session).save_extraction(file_id, extraction)
        except PersistenceError as e:
            logger.error(
                f"Failed to save admission file {file_id}: {e}",
                extra={"event": "normalization.admission.save_failed", "file_id": file_id},
            )
            raise AdmissionNormalizationError(
                NormalizationErrorCode.PROCESSING_ERROR, str(e), file_id=file_id
            ) from e

        summary = AdmissionNormalizationSummary(
            file_id=file_id,
            candidates_count=len(extraction.candidates),
            academic_records_count=len(extraction.academic_records),
            scores_count=len(extraction.scores),
        )
        logger.info(
            f"Normalized admission file {file_id}: {summary.candidates_count} candidates",
            extra={
                "event": "normalization.admission.completed",
                "file_id": file_id,
                "candidates_count": summary.candidates_count,
                "academic_records_count": summary.academic_records_count,
                "scores_count": summary.scores_count,
            },
        )
        return summary

    def get_normalized_data(self, file_id: int) -> List[NormalizedCandidate]:
        """Candidates of a file with their academic records and scores."""
        with get_session() as session:
            return AdmissionRepository(session).get_candidates(file_id, include_children=True)

    def get_candidate(self, candidate_id: int) -> Optional[NormalizedCandidate]:
        with get_session() as session:
            return AdmissionRepository(session).get_candidate(candidate_id)

    def search_candidates(
        self,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        candidate_number: Optional[str] = None,
        file_id: Optional[int] = None,
    ) -> List[NormalizedCandidate]:
        """Case-insensitive substring search; every given criterion must match."""
        with get_session() as session:
            return AdmissionRepository(session).search_candidates(
                first_name=first_name,
                last_name=last_name,
                candidate_number=candidate_number,
                file_id=file_id,
            )

    def is_normalized(self, file_id: int) -> bool:
        with get_session() as session:
            return AdmissionRepository(session).count_candidates(file_id) > 0

    def delete_normalized_data(self, file_id: int) -> bool:
        """Delete a file's candidates, records and scores.

        Returns:
            True if anything was deleted
        """
        with get_session() as session:
            deleted = AdmissionRepository(session).delete_by_file(file_id)

        logger.info(
            f"Deleted normalized admission data for file {file_id}",
            extra={"event": "normalization.admission.deleted", "file_id": file_id, "candidates": deleted},
        )
        return deleted > 0

    def get_available_fields(self, file_id: int) -> List[IndexedField]:
        """Fields that can be mapped for a normalized admission file."""
        with get_session() as session:
            labels = AdmissionRepository(session).get_score_labels(file_id)

        fields = [
            IndexedField(index=FULL_NAME_INDEX, name="fullName", label="Full name", category=FieldCategory.IDENTITY),
            IndexedField(
                index=DATE_OF_BIRTH_INDEX, name="dateOfBirth", label="Date of birth", category=FieldCategory.IDENTITY
            ),
        ]
        for offset, label in enumerate(labels):
            fields.append(
                IndexedField(
                    index=FIRST_SCORE_INDEX + offset,
                    name=score_field_name(label),
                    label=label,
                    category=FieldCategory.SCORE,
                )
            )
        return fields

    def get_indexed_records(self, file_id: int) -> List[IndexedRecord]:
        """One indexed record per candidate, in candidate order."""
        return list(self.get_indexed_record_map(file_id).values())

    def get_indexed_record_map(self, file_id: int) -> Dict[int, IndexedRecord]:
        """Indexed records keyed by candidate_id.

        Scores a candidate does not have are left out of its record.
        """
        with get_session() as session:
            repo = AdmissionRepository(session)
            labels = repo.get_score_labels(file_id)
            candidates = repo.get_candidates(file_id, include_children=True)

        label_index = {label: FIRST_SCORE_INDEX + offset for offset, label in enumerate(labels)}
        records: Dict[int, IndexedRecord] = {}
        for candidate in sorted(candidates, key=lambda c: c.candidate_id):
            record: IndexedRecord = {
                FULL_NAME_INDEX: candidate.full_name,
                DATE_OF_BIRTH_INDEX: candidate.date_of_birth,
            }
            for score in candidate.scores:
                index = label_index.get(score.score_label)
                if index is not None and index not in record:
                    record[index] = score.score_value
            records[candidate.candidate_id] = record
        return records
