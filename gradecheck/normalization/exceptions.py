"""Exceptions raised by the normalization services."""

from typing import Optional

from gradecheck.normalizers.exceptions import ERROR_MESSAGES, NormalizationErrorCode


class NormalizationError(Exception):
    """Base exception for a file that could not be normalized.

    Attributes:
        code: NormalizationErrorCode describing the failure
        message: Human-readable detail
        file_id: File being normalized, when known
    """

    def __init__(
        self,
        code: NormalizationErrorCode,
        message: Optional[str] = None,
        file_id: Optional[int] = None,
    ) -> None:
        self.code = NormalizationErrorCode(code)
        self.message = message or ERROR_MESSAGES[self.code]
        self.file_id = file_id
        super().__init__(f"{self.code.value}: {self.message}")


class AdmissionNormalizationError(NormalizationError):
    """Raised when an admission spreadsheet cannot be normalized."""

    pass


class TranscriptNormalizationError(NormalizationError):
    """Raised when a transcript export cannot be normalized."""

    pass
