"""Normalizer for admission-platform candidate spreadsheets (XLSX).

One row describes one candidate. Previous academic years repeat the same
block of columns with "_1" to "_7" suffixes, and any other column whose
header mentions a grade-like keyword is kept as a free-form score. Numeric
scores are stored on the 0-20 scale at full precision.
"""

import io
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import openpyxl

from gradecheck.domain.models import (
    AcademicRecord,
    AdmissionExtraction,
    CandidateScore,
    ExtractedAcademicRecord,
    ExtractedCandidate,
    ExtractedScore,
)
from gradecheck.logging import get_logger
from gradecheck.utils.grades import grade_text, normalize_grade
from gradecheck.utils.text import clean_text

from .exceptions import NormalizationErrorCode, NormalizerError

logger = get_logger(__name__, component="normalizer")

LAST_NAME_COLUMN = "Nom de naissance"
FIRST_NAME_COLUMN = "Prénom"
CANDIDATE_NUMBER_COLUMN = "Numéro de candidat"
BIRTH_DATE_COLUMN = "Date de naissance"

REQUIRED_COLUMNS = (LAST_NAME_COLUMN, FIRST_NAME_COLUMN)

# Academic record block, repeated once per suffix
ACADEMIC_YEAR_COLUMN = "Année universitaire"
ACADEMIC_RECORD_COLUMNS = {
    "program_type": "Type de formation ou de diplôme préparé",
    "curriculum_year": "Année dans le cursus",
    "specialization": "Mention ou spécialité",
    "course_path": "Parcours",
    "institution": "Établissement",
}
SEMESTER_1_COLUMN = "Moyenne au premier semestre"
SEMESTER_2_COLUMN = "Moyenne au second semestre"
RECORD_SUFFIXES = ["", "_1", "_2", "_3", "_4", "_5", "_6", "_7"]

SCORE_KEYWORDS = ("moyenne", "note", "score")
EXCLUDED_SCORE_PATTERNS = (
    re.compile(r"^Moyenne au premier semestre(_\d+)?$"),
    re.compile(r"^Moyenne au second semestre(_\d+)?$"),
    re.compile(r"^Relevés de notes$"),
)

DATE_FORMAT = "%d/%m/%Y"


def is_score_column(header: str) -> bool:
    """Whether a header names a candidate score rather than a record field."""
    if any(pattern.match(header) for pattern in EXCLUDED_SCORE_PATTERNS):
        return False
    lowered = header.lower()
    return any(keyword in lowered for keyword in SCORE_KEYWORDS)


def _cell_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FORMAT)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _cell_text(value: Any) -> Optional[str]:
    # Integral floats come back from numeric cells ("12345.0")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return clean_text(value)


def _unique_headers(raw_headers: List[Any]) -> List[str]:
    headers = []
    seen: Dict[str, int] = {}
    for raw in raw_headers:
        header = str(raw).strip() if raw is not None else ""
        if not header:
            headers.append("")
            continue
        count = seen.get(header, 0)
        seen[header] = count + 1
        headers.append(header if count == 0 else f"{header}_{count}")
    return headers


class AdmissionSpreadsheetNormalizer:
    """Turns an admission spreadsheet into candidates, records and scores."""

    def read_rows(self, content: bytes) -> List[Dict[str, Any]]:
        """Read the first worksheet into one dict per non-blank row.

        The first row holds the headers. Repeated headers get "_1", "_2"...
        suffixes in order of appearance, blank cells are left out and date
        cells are rendered as dd/mm/yyyy.

        Raises:
            NormalizerError: PROCESSING_ERROR if the workbook cannot be read,
                MISSING_REQUIRED_COLUMNS if a required header is absent
        """
        try:
            wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except Exception as e:
            raise NormalizerError(
                NormalizationErrorCode.PROCESSING_ERROR, f"Cannot open workbook: {e}"
            ) from e

        try:
            ws = wb.worksheets[0] if wb.worksheets else None
            raw_rows = list(ws.iter_rows(values_only=True)) if ws is not None else []
        finally:
            wb.close()

        if not raw_rows:
            raise NormalizerError(NormalizationErrorCode.PROCESSING_ERROR, "Spreadsheet is empty")

        headers = _unique_headers(list(raw_rows[0]))
        missing = [column for column in REQUIRED_COLUMNS if column not in headers]
        if missing:
            raise NormalizerError(
                NormalizationErrorCode.MISSING_REQUIRED_COLUMNS,
                f"Missing required columns: {', '.join(missing)}",
            )

        rows = []
        for raw_row in raw_rows[1:]:
            row = {}
            for header, value in zip(headers, raw_row):
                value = _cell_value(value)
                if header and value is not None:
                    row[header] = value
            if row:
                rows.append(row)
        return rows

    def extract(self, content: bytes) -> AdmissionExtraction:
        """Read a spreadsheet and extract all three kinds of rows.

        Raises:
            NormalizerError: See read_rows(); PROCESSING_ERROR when no data row exists
        """
        rows = self.read_rows(content)
        if not rows:
            raise NormalizerError(NormalizationErrorCode.PROCESSING_ERROR, "Spreadsheet has no data rows")

        extraction = AdmissionExtraction(
            candidates=self.extract_candidates(rows),
            academic_records=self.extract_academic_records(rows),
            scores=self.extract_scores(rows),
        )
        logger.debug(
            "Extracted admission rows",
            extra={
                "event": "normalizer.admission.extracted",
                "candidate_count": len(extraction.candidates),
                "record_count": len(extraction.academic_records),
                "score_count": len(extraction.scores),
            },
        )
        return extraction

    def extract_candidates(self, rows: List[Dict[str, Any]]) -> List[ExtractedCandidate]:
        candidates = []
        for row_index, row in enumerate(rows):
            last_name = _cell_text(row.get(LAST_NAME_COLUMN))
            first_name = _cell_text(row.get(FIRST_NAME_COLUMN))
            full_name = f"{last_name or ''} {first_name or ''}".strip()
            candidates.append(
                ExtractedCandidate(
                    row_index=row_index,
                    last_name=last_name,
                    first_name=first_name,
                    full_name=full_name,
                    candidate_number=_cell_text(row.get(CANDIDATE_NUMBER_COLUMN)),
                    date_of_birth=_cell_text(row.get(BIRTH_DATE_COLUMN)),
                )
            )
        return candidates

    def extract_academic_records(self, rows: List[Dict[str, Any]]) -> List[ExtractedAcademicRecord]:
        records = []
        for row_index, row in enumerate(rows):
            for suffix in RECORD_SUFFIXES:
                academic_year = _cell_text(row.get(f"{ACADEMIC_YEAR_COLUMN}{suffix}"))
                if not academic_year:
                    continue

                fields = {
                    name: _cell_text(row.get(f"{column}{suffix}"))
                    for name, column in ACADEMIC_RECORD_COLUMNS.items()
                }
                record = AcademicRecord(
                    academic_year=academic_year,
                    grade_semester_1=normalize_grade(row.get(f"{SEMESTER_1_COLUMN}{suffix}")),
                    grade_semester_2=normalize_grade(row.get(f"{SEMESTER_2_COLUMN}{suffix}")),
                    **fields,
                )
                records.append(ExtractedAcademicRecord(row_index=row_index, record=record))
        return records

    def extract_scores(self, rows: List[Dict[str, Any]]) -> List[ExtractedScore]:
        scores = []
        for row_index, row in enumerate(rows):
            for header, value in row.items():
                if not is_score_column(header):
                    continue
                grade = normalize_grade(value)
                score_value = grade_text(grade) if grade is not None else _cell_text(value)
                if score_value is None:
                    continue
                scores.append(
                    ExtractedScore(
                        row_index=row_index,
                        score=CandidateScore(score_label=header, score_value=score_value),
                    )
                )
        return scores
