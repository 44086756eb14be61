"""Test helper utilities for gradecheck tests."""

from .documents import (
    ADMISSION_HEADERS,
    build_admission_workbook,
    build_bordeaux_xml,
    sample_admission_workbook,
    sample_bordeaux_xml,
)

__all__ = [
    "ADMISSION_HEADERS",
    "build_admission_workbook",
    "build_bordeaux_xml",
    "sample_admission_workbook",
    "sample_bordeaux_xml",
]
