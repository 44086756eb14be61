"""Document normalizers: transcript XML dialects and admission spreadsheets."""

from .base import BaseTranscriptNormalizer, TranscriptNormalizationResult
from .bordeaux import BordeauxTranscriptNormalizer
from .exceptions import ERROR_MESSAGES, NormalizationErrorCode, NormalizerError
from .registry import NormalizerRegistry, build_default_registry
from .spreadsheet import AdmissionSpreadsheetNormalizer, is_score_column

__all__ = [
    # Transcript plugins
    "BaseTranscriptNormalizer",
    "TranscriptNormalizationResult",
    "BordeauxTranscriptNormalizer",
    "NormalizerRegistry",
    "build_default_registry",
    # Admission
    "AdmissionSpreadsheetNormalizer",
    "is_score_column",
    # Errors
    "NormalizationErrorCode",
    "NormalizerError",
    "ERROR_MESSAGES",
]
