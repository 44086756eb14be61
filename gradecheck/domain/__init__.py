"""Domain models for admission grade reconciliation."""

from .models import (
    AcademicRecord,
    AdmissionExtraction,
    CandidateMatch,
    CandidateScore,
    ComparisonReport,
    ComparisonSummary,
    DocumentOrigin,
    ExtractedAcademicRecord,
    ExtractedCandidate,
    ExtractedScore,
    FieldCategory,
    FieldComparison,
    IndexedField,
    MappingEntry,
    NormalizedCandidate,
    NormalizedStudentData,
    RawDocument,
    SemesterResult,
    SourceFile,
    VerificationStatus,
)

__all__ = [
    "AcademicRecord",
    "AdmissionExtraction",
    "CandidateMatch",
    "CandidateScore",
    "ComparisonReport",
    "ComparisonSummary",
    "DocumentOrigin",
    "ExtractedAcademicRecord",
    "ExtractedCandidate",
    "ExtractedScore",
    "FieldCategory",
    "FieldComparison",
    "IndexedField",
    "MappingEntry",
    "NormalizedCandidate",
    "NormalizedStudentData",
    "RawDocument",
    "SemesterResult",
    "SourceFile",
    "VerificationStatus",
]
