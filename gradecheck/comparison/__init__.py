"""Grade comparison and verification."""

from .engine import ComparisonOutcome, GradeComparator

__all__ = [
    "GradeComparator",
    "ComparisonOutcome",
]
