"""Normalization services for admission spreadsheets and transcript exports."""

from .admission import AdmissionNormalizationService, score_field_name
from .exceptions import (
    AdmissionNormalizationError,
    NormalizationError,
    TranscriptNormalizationError,
)
from .models import (
    AdmissionNormalizationSummary,
    IndexedRecord,
    TranscriptNormalizationSummary,
)
from .transcript import TranscriptNormalizationService, grade_field_name

__all__ = [
    # Services
    "AdmissionNormalizationService",
    "TranscriptNormalizationService",
    # Results
    "AdmissionNormalizationSummary",
    "TranscriptNormalizationSummary",
    "IndexedRecord",
    # Field names
    "score_field_name",
    "grade_field_name",
    # Exceptions
    "NormalizationError",
    "AdmissionNormalizationError",
    "TranscriptNormalizationError",
]
