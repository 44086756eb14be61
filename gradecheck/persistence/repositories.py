"""Data access layer (repositories) for persistence operations.

Repositories wrap a session, return domain models rather than ORM models,
and translate SQLAlchemy failures into PersistenceError subclasses. They
never commit; the caller's get_session() block owns the transaction.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gradecheck.domain.models import (
    AdmissionExtraction,
    CandidateMatch,
    ComparisonSummary,
    DocumentOrigin,
    FieldComparison,
    MappingEntry,
    NormalizedCandidate,
    NormalizedStudentData,
    SourceFile,
)
from gradecheck.utils.timestamps import format_timestamp, utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    AcademicRecordModel,
    CandidateMatchModel,
    CandidateModel,
    CandidateScoreModel,
    ComparisonSummaryModel,
    FieldComparisonModel,
    MappingConfigurationModel,
    MappingEntryModel,
    SemesterResultModel,
    SourceFileModel,
    StudentModel,
)

logger = logging.getLogger(__name__)


class FileRepository:
    """Repository for stored document metadata."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, source_file: SourceFile) -> SourceFile:
        """Insert file metadata and return it with its assigned id.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            if source_file.uploaded_at is None:
                source_file = source_file.model_copy(update={"uploaded_at": utc_now()})
            model = SourceFileModel.from_domain(source_file)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except SQLAlchemyError as e:
            logger.error(f"Error registering file {source_file.file_name}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to register file: {e}") from e

    def get(self, file_id: int) -> Optional[SourceFile]:
        """Retrieve file metadata by id, or None if unknown."""
        try:
            model = self.session.get(SourceFileModel, file_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve file: {e}") from e

    def list_files(self, origin: Optional[DocumentOrigin] = None) -> List[SourceFile]:
        """List registered files, optionally filtered by origin, oldest first."""
        try:
            stmt = select(SourceFileModel).order_by(SourceFileModel.file_id)
            if origin is not None:
                stmt = stmt.where(SourceFileModel.origin == DocumentOrigin(origin).value)
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing files: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list files: {e}") from e

    def delete(self, file_id: int) -> bool:
        """Delete a file and, through cascades, everything derived from it.

        Returns:
            True if a file was deleted, False if it did not exist
        """
        try:
            result = self.session.execute(
                delete(SourceFileModel).where(SourceFileModel.file_id == file_id)
            )
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete file: {e}") from e


class AdmissionRepository:
    """Repository for normalized admission candidates, records and scores."""

    def __init__(self, session: Session):
        self.session = session

    def count_candidates(self, file_id: int) -> int:
        """Number of candidates already normalized for a file."""
        try:
            stmt = select(func.count()).select_from(CandidateModel).where(
                CandidateModel.source_file_id == file_id
            )
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting candidates for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count candidates: {e}") from e

    def save_extraction(self, file_id: int, extraction: AdmissionExtraction) -> Dict[int, int]:
        """Persist one spreadsheet's candidates, records and scores.

        Candidates are inserted first; the store-assigned id of each one is
        recorded against its row_index, then records and scores are attached
        through that map.

        Args:
            file_id: Source file the rows belong to
            extraction: Output of the spreadsheet normalizer

        Returns:
            Mapping of row_index -> candidate_id

        Raises:
            DataIntegrityError: If a record or score refers to a row without a
                candidate, or a constraint is violated
            PersistenceError: If database error occurs
        """
        try:
            candidate_ids: Dict[int, int] = {}
            for extracted in extraction.candidates:
                model = CandidateModel(
                    source_file_id=file_id,
                    row_index=extracted.row_index,
                    last_name=extracted.last_name,
                    first_name=extracted.first_name,
                    full_name=extracted.full_name,
                    candidate_number=extracted.candidate_number,
                    date_of_birth=extracted.date_of_birth,
                )
                self.session.add(model)
                self.session.flush()
                candidate_ids[extracted.row_index] = model.candidate_id

            for extracted in extraction.academic_records:
                candidate_id = self._resolve(candidate_ids, extracted.row_index, "academic record")
                self.session.add(AcademicRecordModel.from_domain(extracted.record, candidate_id))

            for extracted in extraction.scores:
                candidate_id = self._resolve(candidate_ids, extracted.row_index, "score")
                self.session.add(
                    CandidateScoreModel(
                        candidate_id=candidate_id,
                        score_label=extracted.score.score_label,
                        score_value=extracted.score.score_value,
                    )
                )

            self.session.flush()
            return candidate_ids

        except DataIntegrityError:
            raise
        except IntegrityError as e:
            logger.error(f"Integrity error saving candidates for file {file_id}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to save candidates due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving candidates for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save candidates: {e}") from e

    @staticmethod
    def _resolve(candidate_ids: Dict[int, int], row_index: int, kind: str) -> int:
        if row_index not in candidate_ids:
            raise DataIntegrityError(f"Extracted {kind} refers to row {row_index} with no candidate")
        return candidate_ids[row_index]

    def get_candidates(self, file_id: int, include_children: bool = True) -> List[NormalizedCandidate]:
        """Candidates of a file in spreadsheet row order.

        Args:
            file_id: Source file id
            include_children: Also load academic records and scores

        Returns:
            List of candidates (empty if none)
        """
        try:
            stmt = (
                select(CandidateModel)
                .where(CandidateModel.source_file_id == file_id)
                .order_by(CandidateModel.row_index, CandidateModel.candidate_id)
            )
            candidates = [model.to_domain() for model in self.session.execute(stmt).scalars()]
            if include_children and candidates:
                self._attach_children(candidates)
            return candidates
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving candidates for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve candidates: {e}") from e

    def get_candidate(self, candidate_id: int) -> Optional[NormalizedCandidate]:
        """A single candidate with records and scores, or None."""
        try:
            model = self.session.get(CandidateModel, candidate_id)
            if model is None:
                return None
            candidate = model.to_domain()
            self._attach_children([candidate])
            return candidate
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving candidate {candidate_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve candidate: {e}") from e

    def search_candidates(
        self,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        candidate_number: Optional[str] = None,
        file_id: Optional[int] = None,
    ) -> List[NormalizedCandidate]:
        """Case-insensitive substring search over candidate identity fields.

        Every given criterion must match. Without criteria, all candidates
        (of file_id, if given) are returned.
        """
        try:
            stmt = select(CandidateModel)
            if first_name:
                stmt = stmt.where(CandidateModel.first_name.ilike(f"%{first_name}%"))
            if last_name:
                stmt = stmt.where(CandidateModel.last_name.ilike(f"%{last_name}%"))
            if candidate_number:
                stmt = stmt.where(CandidateModel.candidate_number.ilike(f"%{candidate_number}%"))
            if file_id is not None:
                stmt = stmt.where(CandidateModel.source_file_id == file_id)
            stmt = stmt.order_by(
                CandidateModel.source_file_id, CandidateModel.row_index, CandidateModel.candidate_id
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error searching candidates: {e}", exc_info=True)
            raise PersistenceError(f"Failed to search candidates: {e}") from e

    def get_score_labels(self, file_id: int) -> List[str]:
        """Distinct score labels of a file, in order of first appearance."""
        try:
            first_seen = func.min(CandidateScoreModel.score_id)
            stmt = (
                select(CandidateScoreModel.score_label, first_seen)
                .join(CandidateModel, CandidateModel.candidate_id == CandidateScoreModel.candidate_id)
                .where(CandidateModel.source_file_id == file_id)
                .group_by(CandidateScoreModel.score_label)
                .order_by(first_seen)
            )
            return [label for label, _ in self.session.execute(stmt).all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving score labels for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve score labels: {e}") from e

    def delete_by_file(self, file_id: int) -> int:
        """Delete every candidate of a file (records and scores cascade).

        Returns:
            Number of candidates deleted
        """
        try:
            result = self.session.execute(
                delete(CandidateModel).where(CandidateModel.source_file_id == file_id)
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error deleting candidates for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete candidates: {e}") from e

    def _attach_children(self, candidates: List[NormalizedCandidate]) -> None:
        by_id = {candidate.candidate_id: candidate for candidate in candidates}
        ids = list(by_id)

        records = self.session.execute(
            select(AcademicRecordModel)
            .where(AcademicRecordModel.candidate_id.in_(ids))
            .order_by(AcademicRecordModel.record_id)
        ).scalars()
        for record in records:
            by_id[record.candidate_id].academic_records.append(record.to_domain())

        scores = self.session.execute(
            select(CandidateScoreModel)
            .where(CandidateScoreModel.candidate_id.in_(ids))
            .order_by(CandidateScoreModel.score_id)
        ).scalars()
        for score in scores:
            by_id[score.candidate_id].scores.append(score.to_domain())


class TranscriptRepository:
    """Repository for students extracted from transcript exports."""

    def __init__(self, session: Session):
        self.session = session

    def count_students(self, file_id: int) -> int:
        """Number of students already normalized for a file."""
        try:
            stmt = select(func.count()).select_from(StudentModel).where(
                StudentModel.source_file_id == file_id
            )
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting students for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count students: {e}") from e

    def save_students(
        self, file_id: int, dialect: str, students: List[NormalizedStudentData]
    ) -> List[NormalizedStudentData]:
        """Persist students and their semester results.

        Returns:
            The students with student_id and source_file_id assigned

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            saved = []
            for student in students:
                model = StudentModel(
                    source_file_id=file_id,
                    dialect=dialect,
                    name=student.name,
                    date_of_birth=student.date_of_birth,
                    student_number=student.student_number,
                )
                self.session.add(model)
                self.session.flush()

                for position, result in enumerate(student.semester_results):
                    self.session.add(
                        SemesterResultModel(
                            student_id=model.student_id,
                            position=position,
                            semester_name=result.semester_name,
                            grade=result.grade,
                        )
                    )

                saved.append(
                    student.model_copy(
                        update={"student_id": model.student_id, "source_file_id": file_id}
                    )
                )

            self.session.flush()
            return saved

        except IntegrityError as e:
            logger.error(f"Integrity error saving students for file {file_id}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to save students due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving students for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save students: {e}") from e

    def get_students(self, file_id: int) -> List[NormalizedStudentData]:
        """Students of a file in extraction order, with semester results."""
        try:
            stmt = (
                select(StudentModel)
                .where(StudentModel.source_file_id == file_id)
                .order_by(StudentModel.student_id)
            )
            return self._with_results(list(self.session.execute(stmt).scalars()))
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving students for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve students: {e}") from e

    def get_student(self, student_id: int) -> Optional[NormalizedStudentData]:
        """A single student with semester results, or None."""
        try:
            model = self.session.get(StudentModel, student_id)
            if model is None:
                return None
            return self._with_results([model])[0]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving student {student_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve student: {e}") from e

    def get_dialect(self, file_id: int) -> Optional[str]:
        """Dialect that normalized a file, or None if not normalized."""
        try:
            stmt = select(StudentModel.dialect).where(StudentModel.source_file_id == file_id).limit(1)
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving dialect for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve dialect: {e}") from e

    def get_semester_names(self, file_id: int) -> List[str]:
        """Distinct semester names of a file, in order of first appearance."""
        try:
            first_seen = func.min(SemesterResultModel.result_id)
            stmt = (
                select(SemesterResultModel.semester_name, first_seen)
                .join(StudentModel, StudentModel.student_id == SemesterResultModel.student_id)
                .where(StudentModel.source_file_id == file_id)
                .group_by(SemesterResultModel.semester_name)
                .order_by(first_seen)
            )
            return [name for name, _ in self.session.execute(stmt).all()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving semester names for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve semester names: {e}") from e

    def delete_by_file(self, file_id: int) -> int:
        """Delete every student of a file (semester results cascade).

        Returns:
            Number of students deleted
        """
        try:
            result = self.session.execute(
                delete(StudentModel).where(StudentModel.source_file_id == file_id)
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error deleting students for file {file_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete students: {e}") from e

    def _with_results(self, models: List[StudentModel]) -> List[NormalizedStudentData]:
        if not models:
            return []

        results: Dict[int, list] = {model.student_id: [] for model in models}
        stmt = (
            select(SemesterResultModel)
            .where(SemesterResultModel.student_id.in_(list(results)))
            .order_by(SemesterResultModel.student_id, SemesterResultModel.position)
        )
        for row in self.session.execute(stmt).scalars():
            results[row.student_id].append(row.to_domain())

        return [
            NormalizedStudentData(
                student_id=model.student_id,
                source_file_id=model.source_file_id,
                name=model.name,
                date_of_birth=model.date_of_birth,
                student_number=model.student_number,
                semester_results=results[model.student_id],
            )
            for model in models
        ]


class MappingRepository:
    """Repository for field mappings between an admission and a transcript file."""

    def __init__(self, session: Session):
        self.session = session

    def get_mapping_id(self, admission_file_id: int, transcript_file_id: int) -> Optional[int]:
        """Id of the mapping configuration for a file pair, or None."""
        try:
            stmt = select(MappingConfigurationModel.mapping_id).where(
                MappingConfigurationModel.admission_file_id == admission_file_id,
                MappingConfigurationModel.transcript_file_id == transcript_file_id,
            )
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving mapping: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve mapping: {e}") from e

    def get_or_create(self, admission_file_id: int, transcript_file_id: int) -> int:
        """Return the mapping id for a file pair, creating it if needed."""
        mapping_id = self.get_mapping_id(admission_file_id, transcript_file_id)
        if mapping_id is not None:
            return mapping_id

        try:
            model = MappingConfigurationModel(
                admission_file_id=admission_file_id,
                transcript_file_id=transcript_file_id,
                created_at=format_timestamp(utc_now()),
            )
            self.session.add(model)
            self.session.flush()
            return model.mapping_id
        except IntegrityError as e:
            logger.error(f"Integrity error creating mapping: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to create mapping: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating mapping: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create mapping: {e}") from e

    def get_entries(self, admission_file_id: int, transcript_file_id: int) -> List[MappingEntry]:
        """Entries of the mapping for a file pair, in creation order."""
        try:
            stmt = (
                select(MappingEntryModel)
                .join(
                    MappingConfigurationModel,
                    MappingConfigurationModel.mapping_id == MappingEntryModel.mapping_id,
                )
                .where(
                    MappingConfigurationModel.admission_file_id == admission_file_id,
                    MappingConfigurationModel.transcript_file_id == transcript_file_id,
                )
                .order_by(MappingEntryModel.entry_id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving mapping entries: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve mapping entries: {e}") from e

    def find_conflict(
        self,
        mapping_id: int,
        admission_column_index: int,
        transcript_column_index: int,
        exclude_entry_id: Optional[int] = None,
    ) -> Optional[Tuple[str, MappingEntry]]:
        """Find an entry already using either column.

        Returns:
            ("admission" | "transcript", conflicting entry), or None
        """
        try:
            stmt = select(MappingEntryModel).where(
                MappingEntryModel.mapping_id == mapping_id,
                or_(
                    MappingEntryModel.admission_column_index == admission_column_index,
                    MappingEntryModel.transcript_column_index == transcript_column_index,
                ),
            )
            if exclude_entry_id is not None:
                stmt = stmt.where(MappingEntryModel.entry_id != exclude_entry_id)

            for model in self.session.execute(stmt.order_by(MappingEntryModel.entry_id)).scalars():
                side = (
                    "admission"
                    if model.admission_column_index == admission_column_index
                    else "transcript"
                )
                return side, model.to_domain()
            return None
        except SQLAlchemyError as e:
            logger.error(f"Error checking mapping conflicts: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check mapping conflicts: {e}") from e

    def add_entry(self, mapping_id: int, entry: MappingEntry) -> MappingEntry:
        """Insert an entry into a mapping.

        Raises:
            DataIntegrityError: If a column is already mapped
            PersistenceError: If database error occurs
        """
        try:
            model = MappingEntryModel(
                mapping_id=mapping_id,
                admission_column_index=entry.admission_column_index,
                admission_column_name=entry.admission_column_name,
                transcript_column_index=entry.transcript_column_index,
                transcript_column_name=entry.transcript_column_name,
            )
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error adding mapping entry: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add mapping entry: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding mapping entry: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add mapping entry: {e}") from e

    def get_entry(self, entry_id: int) -> Optional[Tuple[int, MappingEntry]]:
        """(mapping_id, entry) for an entry id, or None."""
        try:
            model = self.session.get(MappingEntryModel, entry_id)
            return (model.mapping_id, model.to_domain()) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving mapping entry {entry_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve mapping entry: {e}") from e

    def update_entry(self, entry: MappingEntry) -> MappingEntry:
        """Replace the columns of an existing entry.

        Raises:
            RecordNotFoundError: If the entry does not exist
            DataIntegrityError: If a column is already mapped by another entry
        """
        try:
            model = self.session.get(MappingEntryModel, entry.entry_id)
            if model is None:
                raise RecordNotFoundError(f"Mapping entry {entry.entry_id} not found")

            model.admission_column_index = entry.admission_column_index
            model.admission_column_name = entry.admission_column_name
            model.transcript_column_index = entry.transcript_column_index
            model.transcript_column_name = entry.transcript_column_name
            self.session.flush()
            return model.to_domain()
        except RecordNotFoundError:
            raise
        except IntegrityError as e:
            logger.error(f"Integrity error updating mapping entry: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to update mapping entry: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error updating mapping entry: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update mapping entry: {e}") from e

    def delete_entry(self, entry_id: int) -> bool:
        """Delete one entry. Returns False if it did not exist."""
        try:
            result = self.session.execute(
                delete(MappingEntryModel).where(MappingEntryModel.entry_id == entry_id)
            )
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting mapping entry {entry_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete mapping entry: {e}") from e

    def clear(self, admission_file_id: int, transcript_file_id: int) -> int:
        """Delete every entry of a file pair's mapping. Returns the count."""
        mapping_id = self.get_mapping_id(admission_file_id, transcript_file_id)
        if mapping_id is None:
            return 0

        try:
            result = self.session.execute(
                delete(MappingEntryModel).where(MappingEntryModel.mapping_id == mapping_id)
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error clearing mapping {mapping_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to clear mapping: {e}") from e


class MatchRepository:
    """Repository for fuzzy matcher output."""

    def __init__(self, session: Session):
        self.session = session

    def add_all(self, matches: List[CandidateMatch]) -> List[CandidateMatch]:
        """Insert matches and return them with ids assigned.

        Raises:
            DataIntegrityError: If a match refers to a missing candidate or student
        """
        try:
            models = []
            for match in matches:
                if match.created_at is None:
                    match = match.model_copy(update={"created_at": utc_now()})
                model = CandidateMatchModel.from_domain(match)
                self.session.add(model)
                models.append(model)
            self.session.flush()
            return [model.to_domain() for model in models]
        except IntegrityError as e:
            logger.error(f"Integrity error saving matches: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to save matches due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving matches: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save matches: {e}") from e

    def get(self, match_id: int) -> Optional[CandidateMatch]:
        """A match by id, or None."""
        try:
            model = self.session.get(CandidateMatchModel, match_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve match: {e}") from e

    def get_by_files(self, admission_file_id: int, transcript_file_id: int) -> List[CandidateMatch]:
        """Matches of a file pair in creation order."""
        try:
            stmt = (
                select(CandidateMatchModel)
                .where(
                    CandidateMatchModel.admission_file_id == admission_file_id,
                    CandidateMatchModel.transcript_file_id == transcript_file_id,
                )
                .order_by(CandidateMatchModel.match_id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving matches: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve matches: {e}") from e

    def get_by_candidate(self, candidate_id: int) -> List[CandidateMatch]:
        """Every match involving an admission candidate."""
        try:
            stmt = (
                select(CandidateMatchModel)
                .where(CandidateMatchModel.admission_candidate_id == candidate_id)
                .order_by(CandidateMatchModel.match_id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving matches for candidate {candidate_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve matches: {e}") from e

    def delete_by_files(self, admission_file_id: int, transcript_file_id: int) -> int:
        """Delete a file pair's matches (comparison rows cascade). Returns the count."""
        try:
            result = self.session.execute(
                delete(CandidateMatchModel).where(
                    CandidateMatchModel.admission_file_id == admission_file_id,
                    CandidateMatchModel.transcript_file_id == transcript_file_id,
                )
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error deleting matches: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete matches: {e}") from e


class ComparisonRepository:
    """Repository for comparison results and summaries."""

    def __init__(self, session: Session):
        self.session = session

    def save(
        self, match_id: int, fields: List[FieldComparison], summary: ComparisonSummary
    ) -> ComparisonSummary:
        """Replace the stored comparison of a match.

        Raises:
            DataIntegrityError: If the match does not exist
            PersistenceError: If database error occurs
        """
        try:
            self.delete_by_match(match_id)

            for field in fields:
                self.session.add(FieldComparisonModel.from_domain(field, match_id))

            if summary.compared_at is None:
                summary = summary.model_copy(update={"compared_at": utc_now()})
            model = ComparisonSummaryModel.from_domain(summary)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error saving comparison for match {match_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to save comparison: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving comparison for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save comparison: {e}") from e

    def get_fields(self, match_id: int) -> List[FieldComparison]:
        """Per-field results of a match in the order they were compared."""
        try:
            stmt = (
                select(FieldComparisonModel)
                .where(FieldComparisonModel.match_id == match_id)
                .order_by(FieldComparisonModel.comparison_id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving comparisons for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve comparisons: {e}") from e

    def get_summary(self, match_id: int) -> Optional[ComparisonSummary]:
        """Summary of a match, or None if it was never compared."""
        try:
            model = self.session.get(ComparisonSummaryModel, match_id)
            return model.to_domain() if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving summary for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve summary: {e}") from e

    def delete_by_match(self, match_id: int) -> bool:
        """Delete fields and summary of a match. Returns True if anything was removed."""
        try:
            fields = self.session.execute(
                delete(FieldComparisonModel).where(FieldComparisonModel.match_id == match_id)
            )
            summary = self.session.execute(
                delete(ComparisonSummaryModel).where(ComparisonSummaryModel.match_id == match_id)
            )
            self.session.flush()
            return (fields.rowcount + summary.rowcount) > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting comparison for match {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete comparison: {e}") from e
