"""Result types of the normalization services."""

from dataclasses import dataclass
from typing import Any, Dict

# Column index -> value, as consumed by the comparison engine
IndexedRecord = Dict[int, Any]


@dataclass
class AdmissionNormalizationSummary:
    """Counts of rows written for one admission spreadsheet.

    Attributes:
        file_id: Normalized file
        candidates_count: One per spreadsheet data row
        academic_records_count: Previous-year blocks with an academic year
        scores_count: Non-empty score cells
    """

    file_id: int
    candidates_count: int
    academic_records_count: int
    scores_count: int


@dataclass
class TranscriptNormalizationSummary:
    """Outcome of normalizing one transcript export.

    Attributes:
        file_id: Normalized file
        students_count: Students written
        dialect: Dialect of the normalizer that handled the file
    """

    file_id: int
    students_count: int
    dialect: str
