"""Error codes and exceptions shared by the document normalizers."""

from enum import Enum


class NormalizationErrorCode(str, Enum):
    """Why a document could not be normalized."""

    ALREADY_NORMALIZED = "ALREADY_NORMALIZED"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    MISSING_REQUIRED_COLUMNS = "MISSING_REQUIRED_COLUMNS"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    INVALID_XML = "INVALID_XML"
    MISSING_REQUIRED_FIELDS = "MISSING_REQUIRED_FIELDS"
    PARSING_ERROR = "PARSING_ERROR"


ERROR_MESSAGES = {
    NormalizationErrorCode.ALREADY_NORMALIZED: "File has already been normalized",
    NormalizationErrorCode.FILE_NOT_FOUND: "File not found",
    NormalizationErrorCode.INVALID_FILE_TYPE: "File origin does not match the requested normalization",
    NormalizationErrorCode.PROCESSING_ERROR: "Error processing the file",
    NormalizationErrorCode.MISSING_REQUIRED_COLUMNS: "Missing required columns",
    NormalizationErrorCode.UNSUPPORTED_FORMAT: "No normalizer supports this transcript format",
    NormalizationErrorCode.INVALID_XML: "Invalid XML structure",
    NormalizationErrorCode.MISSING_REQUIRED_FIELDS: "Missing required student fields",
    NormalizationErrorCode.PARSING_ERROR: "Error parsing the transcript file",
}


class NormalizerError(Exception):
    """Raised by a normalizer that cannot convert a document.

    Attributes:
        code: Machine-readable failure reason
        message: Human-readable detail
    """

    def __init__(self, code: NormalizationErrorCode, message: str = "") -> None:
        self.code = NormalizationErrorCode(code)
        self.message = message or ERROR_MESSAGES[self.code]
        super().__init__(f"{self.code.value}: {self.message}")
