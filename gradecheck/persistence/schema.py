"""Database schema definition and ORM models.

Each ORM model converts to and from its domain model. Child tables reference
their parent with ON DELETE CASCADE so deleting a file, a candidate, a
student or a match removes everything derived from it in one statement.
"""

import logging

from sqlalchemy import (
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from gradecheck.domain.models import (
    AcademicRecord,
    CandidateMatch,
    CandidateScore,
    ComparisonSummary,
    DocumentOrigin,
    FieldComparison,
    MappingEntry,
    NormalizedCandidate,
    SemesterResult,
    SourceFile,
    VerificationStatus,
)
from gradecheck.utils.timestamps import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

Base = declarative_base()


class SourceFileModel(Base):
    """ORM model for the files table (metadata of stored documents)."""

    __tablename__ = "files"

    file_id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(String(255), nullable=False)
    origin = Column(String(20), nullable=False)
    storage_key = Column(String(512), nullable=False)
    institution = Column(String(255), nullable=True)
    academic_year = Column(String(20), nullable=True)
    uploaded_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_files_origin", "origin"),)

    def to_domain(self) -> SourceFile:
        return SourceFile(
            file_id=self.file_id,
            file_name=self.file_name,
            origin=DocumentOrigin(self.origin),
            storage_key=self.storage_key,
            institution=self.institution,
            academic_year=self.academic_year,
            uploaded_at=parse_timestamp(self.uploaded_at),
        )

    @classmethod
    def from_domain(cls, source_file: SourceFile) -> "SourceFileModel":
        return cls(
            file_id=source_file.file_id,
            file_name=source_file.file_name,
            origin=DocumentOrigin(source_file.origin).value,
            storage_key=source_file.storage_key,
            institution=source_file.institution,
            academic_year=source_file.academic_year,
            uploaded_at=format_timestamp(source_file.uploaded_at),
        )


class CandidateModel(Base):
    """ORM model for admission candidates.

    row_index is the spreadsheet row the candidate came from; it keeps the
    original ordering and ties records and scores to their candidate.
    """

    __tablename__ = "normalized_candidates"

    candidate_id = Column(Integer, primary_key=True, autoincrement=True)
    source_file_id = Column(
        Integer, ForeignKey("files.file_id", ondelete="CASCADE"), nullable=False
    )
    row_index = Column(Integer, nullable=False)
    last_name = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=True)
    full_name = Column(String(512), nullable=False)
    candidate_number = Column(String(64), nullable=True)
    date_of_birth = Column(String(32), nullable=True)

    __table_args__ = (
        Index("idx_candidates_file", "source_file_id"),
        UniqueConstraint("source_file_id", "row_index", name="uq_candidates_file_row"),
    )

    def to_domain(self) -> NormalizedCandidate:
        return NormalizedCandidate(
            candidate_id=self.candidate_id,
            source_file_id=self.source_file_id,
            last_name=self.last_name,
            first_name=self.first_name,
            full_name=self.full_name,
            candidate_number=self.candidate_number,
            date_of_birth=self.date_of_birth,
        )


class AcademicRecordModel(Base):
    """ORM model for academic records declared by candidates."""

    __tablename__ = "academic_records"

    record_id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(
        Integer,
        ForeignKey("normalized_candidates.candidate_id", ondelete="CASCADE"),
        nullable=False,
    )
    academic_year = Column(String(20), nullable=False)
    program_type = Column(Text, nullable=True)
    curriculum_year = Column(String(64), nullable=True)
    specialization = Column(Text, nullable=True)
    course_path = Column(Text, nullable=True)
    grade_semester_1 = Column(Float, nullable=True)
    grade_semester_2 = Column(Float, nullable=True)
    institution = Column(Text, nullable=True)

    __table_args__ = (Index("idx_records_candidate", "candidate_id"),)

    def to_domain(self) -> AcademicRecord:
        return AcademicRecord(
            record_id=self.record_id,
            candidate_id=self.candidate_id,
            academic_year=self.academic_year,
            program_type=self.program_type,
            curriculum_year=self.curriculum_year,
            specialization=self.specialization,
            course_path=self.course_path,
            grade_semester_1=self.grade_semester_1,
            grade_semester_2=self.grade_semester_2,
            institution=self.institution,
        )

    @classmethod
    def from_domain(cls, record: AcademicRecord, candidate_id: int) -> "AcademicRecordModel":
        return cls(
            candidate_id=candidate_id,
            academic_year=record.academic_year,
            program_type=record.program_type,
            curriculum_year=record.curriculum_year,
            specialization=record.specialization,
            course_path=record.course_path,
            grade_semester_1=record.grade_semester_1,
            grade_semester_2=record.grade_semester_2,
            institution=record.institution,
        )


class CandidateScoreModel(Base):
    """ORM model for score-like spreadsheet columns."""

    __tablename__ = "candidate_scores"

    score_id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(
        Integer,
        ForeignKey("normalized_candidates.candidate_id", ondelete="CASCADE"),
        nullable=False,
    )
    score_label = Column(String(255), nullable=False)
    score_value = Column(Text, nullable=True)

    __table_args__ = (Index("idx_scores_candidate", "candidate_id"),)

    def to_domain(self) -> CandidateScore:
        return CandidateScore(
            score_id=self.score_id,
            candidate_id=self.candidate_id,
            score_label=self.score_label,
            score_value=self.score_value,
        )


class StudentModel(Base):
    """ORM model for students extracted from transcript exports."""

    __tablename__ = "normalized_students"

    student_id = Column(Integer, primary_key=True, autoincrement=True)
    source_file_id = Column(
        Integer, ForeignKey("files.file_id", ondelete="CASCADE"), nullable=False
    )
    dialect = Column(String(50), nullable=False)
    name = Column(String(512), nullable=False)
    date_of_birth = Column(String(32), nullable=True)
    student_number = Column(String(64), nullable=False)

    __table_args__ = (Index("idx_students_file", "source_file_id"),)


class SemesterResultModel(Base):
    """ORM model for semester grades; position keeps transcript order."""

    __tablename__ = "semester_results"

    result_id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(
        Integer,
        ForeignKey("normalized_students.student_id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False)
    semester_name = Column(String(255), nullable=False)
    grade = Column(Float, nullable=False)

    __table_args__ = (Index("idx_semesters_student", "student_id"),)

    def to_domain(self) -> SemesterResult:
        return SemesterResult(semester_name=self.semester_name, grade=self.grade)


class MappingConfigurationModel(Base):
    """ORM model for the mapping between one admission file and one transcript file."""

    __tablename__ = "mapping_configurations"

    mapping_id = Column(Integer, primary_key=True, autoincrement=True)
    admission_file_id = Column(
        Integer, ForeignKey("files.file_id", ondelete="CASCADE"), nullable=False
    )
    transcript_file_id = Column(
        Integer, ForeignKey("files.file_id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "admission_file_id", "transcript_file_id", name="uq_mapping_file_pair"
        ),
    )


class MappingEntryModel(Base):
    """ORM model for one admission column <-> transcript column entry."""

    __tablename__ = "mapping_entries"

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    mapping_id = Column(
        Integer,
        ForeignKey("mapping_configurations.mapping_id", ondelete="CASCADE"),
        nullable=False,
    )
    admission_column_index = Column(Integer, nullable=False)
    admission_column_name = Column(String(255), nullable=False)
    transcript_column_index = Column(Integer, nullable=False)
    transcript_column_name = Column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("mapping_id", "admission_column_index", name="uq_entry_admission_column"),
        UniqueConstraint("mapping_id", "transcript_column_index", name="uq_entry_transcript_column"),
    )

    def to_domain(self) -> MappingEntry:
        return MappingEntry(
            entry_id=self.entry_id,
            admission_column_index=self.admission_column_index,
            admission_column_name=self.admission_column_name,
            transcript_column_index=self.transcript_column_index,
            transcript_column_name=self.transcript_column_name,
        )


class CandidateMatchModel(Base):
    """ORM model for fuzzy matcher output.

    Uniqueness per candidate is not enforced here; re-running reconciliation
    clears the matches of the file pair first.
    """

    __tablename__ = "candidate_matches"

    match_id = Column(Integer, primary_key=True, autoincrement=True)
    admission_file_id = Column(
        Integer, ForeignKey("files.file_id", ondelete="CASCADE"), nullable=False
    )
    transcript_file_id = Column(
        Integer, ForeignKey("files.file_id", ondelete="CASCADE"), nullable=False
    )
    admission_candidate_id = Column(
        Integer,
        ForeignKey("normalized_candidates.candidate_id", ondelete="CASCADE"),
        nullable=False,
    )
    transcript_student_id = Column(
        Integer,
        ForeignKey("normalized_students.student_id", ondelete="CASCADE"),
        nullable=False,
    )
    score = Column(Float, nullable=False)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_matches_files", "admission_file_id", "transcript_file_id"),
        Index("idx_matches_candidate", "admission_candidate_id"),
    )

    def to_domain(self) -> CandidateMatch:
        return CandidateMatch(
            match_id=self.match_id,
            admission_file_id=self.admission_file_id,
            transcript_file_id=self.transcript_file_id,
            admission_candidate_id=self.admission_candidate_id,
            transcript_student_id=self.transcript_student_id,
            score=self.score,
            created_at=parse_timestamp(self.created_at),
        )

    @classmethod
    def from_domain(cls, match: CandidateMatch) -> "CandidateMatchModel":
        return cls(
            admission_file_id=match.admission_file_id,
            transcript_file_id=match.transcript_file_id,
            admission_candidate_id=match.admission_candidate_id,
            transcript_student_id=match.transcript_student_id,
            score=match.score,
            created_at=format_timestamp(match.created_at),
        )


class FieldComparisonModel(Base):
    """ORM model for per-field comparison results."""

    __tablename__ = "field_comparisons"

    comparison_id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(
        Integer,
        ForeignKey("candidate_matches.match_id", ondelete="CASCADE"),
        nullable=False,
    )
    field_name = Column(String(512), nullable=False)
    admission_value = Column(Text, nullable=True)
    transcript_value = Column(Text, nullable=True)
    similarity = Column(Float, nullable=False)
    status = Column(String(32), nullable=False)

    __table_args__ = (Index("idx_field_comparisons_match", "match_id"),)

    def to_domain(self) -> FieldComparison:
        return FieldComparison(
            comparison_id=self.comparison_id,
            match_id=self.match_id,
            field_name=self.field_name,
            admission_value=self.admission_value,
            transcript_value=self.transcript_value,
            similarity=self.similarity,
            status=VerificationStatus(self.status),
        )

    @classmethod
    def from_domain(cls, field: FieldComparison, match_id: int) -> "FieldComparisonModel":
        return cls(
            match_id=match_id,
            field_name=field.field_name,
            admission_value=field.admission_value,
            transcript_value=field.transcript_value,
            similarity=field.similarity,
            status=VerificationStatus(field.status).value,
        )


class ComparisonSummaryModel(Base):
    """ORM model for the aggregate comparison of one match."""

    __tablename__ = "comparison_summaries"

    match_id = Column(
        Integer,
        ForeignKey("candidate_matches.match_id", ondelete="CASCADE"),
        primary_key=True,
    )
    average_similarity = Column(Float, nullable=False)
    status = Column(String(32), nullable=False)
    compared_fields = Column(Integer, nullable=False, default=0)
    compared_at = Column(String(50), nullable=False)

    def to_domain(self) -> ComparisonSummary:
        return ComparisonSummary(
            match_id=self.match_id,
            average_similarity=self.average_similarity,
            status=VerificationStatus(self.status),
            compared_fields=self.compared_fields,
            compared_at=parse_timestamp(self.compared_at),
        )

    @classmethod
    def from_domain(cls, summary: ComparisonSummary) -> "ComparisonSummaryModel":
        return cls(
            match_id=summary.match_id,
            average_similarity=summary.average_similarity,
            status=VerificationStatus(summary.status).value,
            compared_fields=summary.compared_fields,
            compared_at=format_timestamp(summary.compared_at),
        )


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
