"""Reconciliation pipeline: match, compare, persist."""

from .exceptions import ReconciliationError, ReconciliationErrorCode
from .models import ReconciliationOutcome, ReconciliationResult
from .runner import ReconciliationPipeline

__all__ = [
    "ReconciliationPipeline",
    "ReconciliationResult",
    "ReconciliationOutcome",
    "ReconciliationError",
    "ReconciliationErrorCode",
]
