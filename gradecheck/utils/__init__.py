"""Utility functions for grade scales, text folding, and time handling."""

from .grades import (
    GradeScale,
    detect_grade_scale,
    format_grade,
    grade_text,
    normalize_grade,
    parse_grade_literal,
)
from .text import canonical_date, clean_text, fold_name, strip_label_prefix
from .timestamps import ensure_utc, format_timestamp, parse_timestamp, utc_now

__all__ = [
    # Grades
    "GradeScale",
    "detect_grade_scale",
    "normalize_grade",
    "parse_grade_literal",
    "format_grade",
    "grade_text",
    # Text
    "clean_text",
    "fold_name",
    "strip_label_prefix",
    "canonical_date",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "format_timestamp",
    "parse_timestamp",
]
