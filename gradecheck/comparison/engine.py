"""Grade comparison and verification engine.

For a matched candidate/student pair, every mapping entry that links an
admission score column (index >= 2) to a transcript grade column
(index >= 3) is compared. Each field gets a similarity that decays linearly
over the grade scale, and the match gets the same classification applied to
the mean similarity of its comparable fields.

Classification (defaults):
    similarity >= 0.95   FULLY_VERIFIED
    similarity >= 0.80   PARTIALLY_VERIFIED
    similarity >  0      FRAUD
    otherwise            CANNOT_VERIFY

Data gaps never raise: a missing mapping, record or value, or a value that
is not a number, yields CANNOT_VERIFY with similarity 0.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from gradecheck.config.models import ComparisonConfig
from gradecheck.domain.models import FieldComparison, MappingEntry, VerificationStatus
from gradecheck.logging import get_logger
from gradecheck.utils.grades import format_grade, parse_grade_literal

logger = get_logger(__name__, component="comparison")

FIRST_ADMISSION_SCORE_INDEX = 2
FIRST_TRANSCRIPT_GRADE_INDEX = 3


@dataclass
class ComparisonOutcome:
    """Result of comparing one matched pair.

    Attributes:
        fields: One FieldComparison per grade mapping entry, in mapping order
        average_similarity: Mean similarity of the comparable fields (0 if none)
        status: Classification of average_similarity
        compared_fields: Number of fields where both values were numbers
    """

    fields: List[FieldComparison] = field(default_factory=list)
    average_similarity: float = 0.0
    status: VerificationStatus = VerificationStatus.CANNOT_VERIFY
    compared_fields: int = 0


def _render(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float):
        return format_grade(value)
    text = str(value).strip()
    return text or None


class GradeComparator:
    """Compares declared admission scores with recorded transcript grades."""

    def __init__(self, config: Optional[ComparisonConfig] = None, logger_instance: logging.Logger = None):
        """Initialize GradeComparator.

        Args:
            config: Verification thresholds and grade scale (defaults if None)
            logger_instance: Optional logger instance (defaults to module logger)
        """
        self.config = config or ComparisonConfig()
        self.logger = logger_instance or logger

    def grade_similarity(self, a: float, b: float) -> float:
        """Linear similarity of two grades: 1 when equal, 0 a full scale apart.

        Rounded to 10 decimals so that, for example, 15 vs 16 gives exactly 0.95.
        """
        similarity = 1.0 - abs(a - b) / self.config.grade_scale_max
        return round(max(0.0, similarity), 10)

    def classify(self, similarity: float) -> VerificationStatus:
        """Map a similarity to a verification status.

        Both verification thresholds are inclusive; FRAUD requires a
        similarity strictly above 0.
        """
        if similarity >= self.config.fully_verified_threshold:
            return VerificationStatus.FULLY_VERIFIED
        if similarity >= self.config.partially_verified_threshold:
            return VerificationStatus.PARTIALLY_VERIFIED
        if similarity > 0:
            return VerificationStatus.FRAUD
        return VerificationStatus.CANNOT_VERIFY

    @staticmethod
    def is_grade_mapping(entry: MappingEntry) -> bool:
        """Whether an entry links an admission score to a transcript grade."""
        return (
            entry.admission_column_index >= FIRST_ADMISSION_SCORE_INDEX
            and entry.transcript_column_index >= FIRST_TRANSCRIPT_GRADE_INDEX
        )

    def compare_field(
        self,
        entry: MappingEntry,
        admission_record: Optional[Mapping[int, Any]],
        transcript_record: Optional[Mapping[int, Any]],
    ) -> FieldComparison:
        """Compare the two values one mapping entry points at."""
        admission_value = (admission_record or {}).get(entry.admission_column_index)
        transcript_value = (transcript_record or {}).get(entry.transcript_column_index)

        result = FieldComparison(
            field_name=f"{entry.admission_column_name} / {entry.transcript_column_name}",
            admission_value=_render(admission_value),
            transcript_value=_render(transcript_value),
            similarity=0.0,
            status=VerificationStatus.CANNOT_VERIFY,
        )

        admission_grade = parse_grade_literal(admission_value)
        transcript_grade = parse_grade_literal(transcript_value)
        if admission_grade is None or transcript_grade is None:
            return result

        similarity = self.grade_similarity(admission_grade, transcript_grade)
        return result.model_copy(update={"similarity": similarity, "status": self.classify(similarity)})

    @staticmethod
    def _is_comparable(
        entry: MappingEntry, admission_record: Mapping[int, Any], transcript_record: Mapping[int, Any]
    ) -> bool:
        return (
            parse_grade_literal(admission_record.get(entry.admission_column_index)) is not None
            and parse_grade_literal(transcript_record.get(entry.transcript_column_index)) is not None
        )

    def compare(
        self,
        mapping_entries: Optional[Sequence[MappingEntry]],
        admission_record: Optional[Mapping[int, Any]],
        transcript_record: Optional[Mapping[int, Any]],
    ) -> ComparisonOutcome:
        """Compare every grade mapping of a matched pair.

        Args:
            mapping_entries: Mapping of the file pair (None or empty if unmapped)
            admission_record: Indexed record of the admission candidate
            transcript_record: Indexed record of the transcript student

        Returns:
            ComparisonOutcome; CANNOT_VERIFY with no fields when the mapping
            or either record is missing
        """
        if not mapping_entries or admission_record is None or transcript_record is None:
            self.logger.debug(
                "Nothing to compare",
                extra={
                    "event": "comparison.skipped",
                    "has_mapping": bool(mapping_entries),
                    "has_admission_record": admission_record is not None,
                    "has_transcript_record": transcript_record is not None,
                },
            )
            return ComparisonOutcome()

        fields = []
        comparable = []
        for entry in mapping_entries:
            if not self.is_grade_mapping(entry):
                continue
            result = self.compare_field(entry, admission_record, transcript_record)
            fields.append(result)
            if self._is_comparable(entry, admission_record, transcript_record):
                comparable.append(result)

        if not comparable:
            return ComparisonOutcome(fields=fields)

        average = round(sum(f.similarity for f in comparable) / len(comparable), 10)
        return ComparisonOutcome(
            fields=fields,
            average_similarity=average,
            status=self.classify(average),
            compared_fields=len(comparable),
        )
