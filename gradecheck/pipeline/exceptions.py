"""Reconciliation exceptions."""

from enum import Enum
from typing import Optional


class ReconciliationErrorCode(str, Enum):
    """Why a reconciliation request was refused."""

    NOT_NORMALIZED = "NOT_NORMALIZED"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"


class ReconciliationError(Exception):
    """Raised when a file pair or match cannot be reconciled.

    Attributes:
        code: ReconciliationErrorCode
        message: Human-readable detail
    """

    def __init__(self, code: ReconciliationErrorCode, message: Optional[str] = None) -> None:
        self.code = ReconciliationErrorCode(code)
        self.message = message or self.code.value
        super().__init__(f"{self.code.value}: {self.message}")
