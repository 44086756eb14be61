"""Normalization service for institution transcript exports.

The registry picks the first normalizer that recognises the document; its
students are written in one transaction, tagged with the normalizer's dialect.

Transcript field indexes:
    0   name
    1   dateOfBirth
    2   studentNumber
    3+  grade_<semester>, one per distinct semester in order of first appearance
"""

from typing import Dict, List, Optional

from gradecheck.domain.models import (
    DocumentOrigin,
    FieldCategory,
    IndexedField,
    NormalizedStudentData,
)
from gradecheck.logging import get_logger
from gradecheck.normalizers.exceptions import NormalizationErrorCode
from gradecheck.normalizers.registry import NormalizerRegistry, build_default_registry
from gradecheck.persistence.database import get_session
from gradecheck.persistence.exceptions import PersistenceError
from gradecheck.persistence.repositories import FileRepository, TranscriptRepository
from gradecheck.storage.exceptions import StorageError
from gradecheck.storage.service import FileService

from .exceptions import TranscriptNormalizationError
from .models import IndexedRecord, TranscriptNormalizationSummary

logger = get_logger(__name__, component="normalization")

NAME_INDEX = 0
DATE_OF_BIRTH_INDEX = 1
STUDENT_NUMBER_INDEX = 2
FIRST_GRADE_INDEX = 3


def grade_field_name(semester_name: str) -> str:
    """Indexed field name of a semester ("Semestre 1" -> "grade_Semestre_1")."""
    return "grade_" + "_".join(semester_name.split())


class TranscriptNormalizationService:
    """Normalizes transcript exports and serves the extracted students."""

    def __init__(self, file_service: FileService, registry: Optional[NormalizerRegistry] = None):
        self.file_service = file_service
        self.registry = registry or build_default_registry()

    def normalize_file(self, file_id: int) -> TranscriptNormalizationSummary:
        """Normalize a registered transcript export.

        Args:
            file_id: Registered file to normalize

        Returns:
            TranscriptNormalizationSummary with the student count and dialect

        Raises:
            TranscriptNormalizationError: ALREADY_NORMALIZED, FILE_NOT_FOUND,
                INVALID_FILE_TYPE, UNSUPPORTED_FORMAT, or the normalizer's own
                INVALID_XML, MISSING_REQUIRED_FIELDS and PARSING_ERROR, or
                PROCESSING_ERROR when the students cannot be saved
        """
        with get_session() as session:
            source_file = FileRepository(session).get(file_id)
            if source_file is None:
                raise TranscriptNormalizationError(NormalizationErrorCode.FILE_NOT_FOUND, file_id=file_id)
            if source_file.origin != DocumentOrigin.TRANSCRIPT:
                raise TranscriptNormalizationError(NormalizationErrorCode.INVALID_FILE_TYPE, file_id=file_id)
            if TranscriptRepository(session).count_students(file_id) > 0:
                raise TranscriptNormalizationError(NormalizationErrorCode.ALREADY_NORMALIZED, file_id=file_id)

        try:
            document = self.file_service.load_document(source_file)
        except StorageError as e:
            raise TranscriptNormalizationError(
                NormalizationErrorCode.FILE_NOT_FOUND, str(e), file_id=file_id
            ) from e

        normalizer = self.registry.find_suitable(document.content)
        if normalizer is None:
            logger.warning(
                f"No normalizer recognises transcript file {file_id}",
                extra={"event": "normalization.transcript.unsupported", "file_id": file_id},
            )
            raise TranscriptNormalizationError(NormalizationErrorCode.UNSUPPORTED_FORMAT, file_id=file_id)

        result = normalizer.normalize(document.content)
        if not result.success:
            logger.warning(
                f"Transcript file {file_id} rejected: {result.error_message}",
                extra={
                    "event": "normalization.transcript.rejected",
                    "file_id": file_id,
                    "code": result.error.value,
                    "dialect": normalizer.dialect.value,
                },
            )
            raise TranscriptNormalizationError(result.error, result.error_message, file_id=file_id)

        dialect = normalizer.dialect.value
        try:
            with get_session() as session:
                TranscriptRepository(session).save_students(file_id, dialect, result.data)
        except PersistenceError as e:
            logger.error(
                f"Failed to save transcript file {file_id}: {e}",
                extra={"event": "normalization.transcript.save_failed", "file_id": file_id},
            )
            raise TranscriptNormalizationError(
                NormalizationErrorCode.PROCESSING_ERROR, str(e), file_id=file_id
            ) from e

        summary = TranscriptNormalizationSummary(
            file_id=file_id, students_count=len(result.data), dialect=dialect
        )
        logger.info(
            f"Normalized transcript file {file_id}: {summary.students_count} students",
            extra={
                "event": "normalization.transcript.completed",
                "file_id": file_id,
                "students_count": summary.students_count,
                "dialect": dialect,
            },
        )
        return summary

    def get_normalized_data(self, file_id: int) -> List[NormalizedStudentData]:
        """Students of a file with their semester results."""
        with get_session() as session:
            return TranscriptRepository(session).get_students(file_id)

    def get_student(self, student_id: int) -> Optional[NormalizedStudentData]:
        with get_session() as session:
            return TranscriptRepository(session).get_student(student_id)

    def is_normalized(self, file_id: int) -> bool:
        with get_session() as session:
            return TranscriptRepository(session).count_students(file_id) > 0

    def delete_normalized_data(self, file_id: int) -> bool:
        """Delete a file's students and semester results.

        Returns:
            True if anything was deleted
        """
        with get_session() as session:
            deleted = TranscriptRepository(session).delete_by_file(file_id)

        logger.info(
            f"Deleted normalized transcript data for file {file_id}",
            extra={"event": "normalization.transcript.deleted", "file_id": file_id, "students": deleted},
        )
        return deleted > 0

    def get_available_fields(self, file_id: int) -> List[IndexedField]:
        """Fields that can be mapped for a normalized transcript file."""
        with get_session() as session:
            semester_names = TranscriptRepository(session).get_semester_names(file_id)

        fields = [
            IndexedField(index=NAME_INDEX, name="name", label="Name", category=FieldCategory.IDENTITY),
            IndexedField(
                index=DATE_OF_BIRTH_INDEX, name="dateOfBirth", label="Date of birth", category=FieldCategory.IDENTITY
            ),
            IndexedField(
                index=STUDENT_NUMBER_INDEX,
                name="studentNumber",
                label="Student number",
                category=FieldCategory.IDENTITY,
            ),
        ]
        for offset, semester_name in enumerate(semester_names):
            fields.append(
                IndexedField(
                    index=FIRST_GRADE_INDEX + offset,
                    name=grade_field_name(semester_name),
                    label=semester_name,
                    category=FieldCategory.GRADE,
                )
            )
        return fields

    def get_indexed_records(self, file_id: int) -> List[IndexedRecord]:
        """One indexed record per student, in student order."""
        return list(self.get_indexed_record_map(file_id).values())

    def get_indexed_record_map(self, file_id: int) -> Dict[int, IndexedRecord]:
        """Indexed records keyed by student_id.

        Semesters a student has no grade for are left out of its record.
        """
        with get_session() as session:
            repo = TranscriptRepository(session)
            semester_names = repo.get_semester_names(file_id)
            students = repo.get_students(file_id)

        semester_index = {name: FIRST_GRADE_INDEX + offset for offset, name in enumerate(semester_names)}
        records: Dict[int, IndexedRecord] = {}
        for student in students:
            record: IndexedRecord = {
                NAME_INDEX: student.name,
                DATE_OF_BIRTH_INDEX: student.date_of_birth,
                STUDENT_NUMBER_INDEX: student.student_number,
            }
            for result in student.semester_results:
                index = semester_index.get(result.semester_name)
                if index is not None and index not in record:
                    record[index] = result.grade
            records[student.student_id] = record
        return records
