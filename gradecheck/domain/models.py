"""Core domain models for admission candidates, transcripts, and verification.

This module defines the data structures used throughout the application:
- SourceFile / RawDocument: a stored document and its bytes
- NormalizedCandidate, AcademicRecord, CandidateScore: admission-side rows
- NormalizedStudentData, SemesterResult: transcript-side rows
- CandidateMatch: the pairing produced by the fuzzy matcher
- MappingEntry: one admission field <-> transcript field correspondence
- FieldComparison, ComparisonSummary, ComparisonReport: verification output
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class DocumentOrigin(str, Enum):
    """Where a document comes from."""

    ADMISSION = "admission"
    TRANSCRIPT = "transcript"


class VerificationStatus(str, Enum):
    """Outcome of comparing declared grades with recorded grades."""

    FULLY_VERIFIED = "fully_verified"
    PARTIALLY_VERIFIED = "partially_verified"
    FRAUD = "fraud"
    CANNOT_VERIFY = "cannot_verify"


class FieldCategory(str, Enum):
    """Kind of value an indexed field holds."""

    IDENTITY = "identity"
    SCORE = "score"
    GRADE = "grade"


def _to_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class SourceFile(BaseModel):
    """Metadata for a document registered in the blob store."""

    file_id: Optional[int] = Field(None, description="Store-assigned identifier")
    file_name: str = Field(..., min_length=1, description="Original file name")
    origin: DocumentOrigin = Field(..., description="Admission spreadsheet or transcript export")
    storage_key: str = Field(..., min_length=1, description="Key of the bytes in the blob store")
    institution: Optional[str] = Field(None, description="Issuing institution, if known")
    academic_year: Optional[str] = Field(None, description="Academic year covered, if known")
    uploaded_at: Optional[datetime] = Field(None, description="Registration time (UTC)")

    @field_validator("uploaded_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class RawDocument(BaseModel):
    """Bytes of a stored document, read once and never mutated."""

    file_id: int
    file_name: str
    origin: DocumentOrigin
    content: bytes


class AcademicRecord(BaseModel):
    """One academic year declared by a candidate on the admission platform.

    Both semester grades are already on the 0-20 scale.
    """

    record_id: Optional[int] = None
    candidate_id: Optional[int] = None
    academic_year: str = Field(..., description="Academic year label, e.g. 2022-2023")
    program_type: Optional[str] = None
    curriculum_year: Optional[str] = None
    specialization: Optional[str] = None
    course_path: Optional[str] = None
    grade_semester_1: Optional[float] = Field(None, ge=0, le=20)
    grade_semester_2: Optional[float] = Field(None, ge=0, le=20)
    institution: Optional[str] = None


class CandidateScore(BaseModel):
    """A score-like column found in the admission spreadsheet.

    score_value holds the normalized grade rendering when the cell was
    numeric, or the literal cell text otherwise.
    """

    score_id: Optional[int] = None
    candidate_id: Optional[int] = None
    score_label: str = Field(..., min_length=1)
    score_value: Optional[str] = None


class NormalizedCandidate(BaseModel):
    """One candidate row from an admission spreadsheet."""

    candidate_id: Optional[int] = None
    source_file_id: int
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    full_name: str = Field(..., description='"<last name> <first name>"')
    candidate_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    academic_records: List[AcademicRecord] = Field(default_factory=list)
    scores: List[CandidateScore] = Field(default_factory=list)


class SemesterResult(BaseModel):
    """A semester grade recorded on a transcript, on the 0-20 scale."""

    semester_name: str = Field(..., min_length=1)
    grade: float = Field(..., ge=0, le=20)


class NormalizedStudentData(BaseModel):
    """One student extracted from an institution transcript export."""

    student_id: Optional[int] = None
    source_file_id: Optional[int] = None
    name: str = Field(..., min_length=1)
    date_of_birth: Optional[str] = None
    student_number: str = Field(..., min_length=1)
    semester_results: List[SemesterResult] = Field(default_factory=list)

    @field_validator("name", "student_number")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from identity fields."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped


class CandidateMatch(BaseModel):
    """Pairing of an admission candidate with a transcript student."""

    match_id: Optional[int] = None
    admission_file_id: int
    transcript_file_id: int
    admission_candidate_id: int
    transcript_student_id: int
    score: float = Field(..., ge=0, le=1, description="Combined matcher confidence")
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class MappingEntry(BaseModel):
    """Correspondence between an admission indexed field and a transcript one."""

    entry_id: Optional[int] = None
    admission_column_index: int = Field(..., ge=0)
    admission_column_name: str = Field(..., min_length=1)
    transcript_column_index: int = Field(..., ge=0)
    transcript_column_name: str = Field(..., min_length=1)


class IndexedField(BaseModel):
    """A column of the flattened, index-addressed view of normalized data."""

    index: int = Field(..., ge=0)
    name: str
    label: str
    category: FieldCategory


class FieldComparison(BaseModel):
    """Result of comparing one mapped field of a matched pair."""

    comparison_id: Optional[int] = None
    match_id: Optional[int] = None
    field_name: str
    admission_value: Optional[str] = None
    transcript_value: Optional[str] = None
    similarity: float = Field(..., ge=0, le=1)
    status: VerificationStatus


class ComparisonSummary(BaseModel):
    """Aggregate verification outcome for one matched pair."""

    match_id: int
    average_similarity: float = Field(..., ge=0, le=1)
    status: VerificationStatus
    compared_fields: int = Field(0, ge=0)
    compared_at: Optional[datetime] = None

    @field_validator("compared_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return _to_utc(v)


class ComparisonReport(BaseModel):
    """Everything known about the verification of one match."""

    match: CandidateMatch
    candidate: Optional[NormalizedCandidate] = None
    student: Optional[NormalizedStudentData] = None
    summary: Optional[ComparisonSummary] = None
    fields: List[FieldComparison] = Field(default_factory=list)


class ExtractedCandidate(BaseModel):
    """A candidate read from spreadsheet row ``row_index``, before persistence."""

    row_index: int = Field(..., ge=0)
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    full_name: str
    candidate_number: Optional[str] = None
    date_of_birth: Optional[str] = None


class ExtractedAcademicRecord(BaseModel):
    """An academic record linked to its candidate by spreadsheet row."""

    row_index: int = Field(..., ge=0)
    record: AcademicRecord


class ExtractedScore(BaseModel):
    """A score linked to its candidate by spreadsheet row."""

    row_index: int = Field(..., ge=0)
    score: CandidateScore


class AdmissionExtraction(BaseModel):
    """Everything extracted from one admission spreadsheet.

    The three lists are produced by independent passes over the same rows.
    ``row_index`` is the only link between a record or score and its
    candidate; persistence resolves it to the store-assigned candidate id.
    """

    candidates: List[ExtractedCandidate] = Field(default_factory=list)
    academic_records: List[ExtractedAcademicRecord] = Field(default_factory=list)
    scores: List[ExtractedScore] = Field(default_factory=list)
