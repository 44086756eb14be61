"""Unit tests for the grade comparison engine."""

from unittest.mock import Mock

import pytest

from gradecheck.comparison import ComparisonOutcome, GradeComparator
from gradecheck.config.models import ComparisonConfig
from gradecheck.domain.models import MappingEntry, VerificationStatus


def entry(admission_index, transcript_index, admission_name="score_Note", transcript_name="grade_S1"):
    return MappingEntry(
        admission_column_index=admission_index,
        admission_column_name=admission_name,
        transcript_column_index=transcript_index,
        transcript_column_name=transcript_name,
    )


@pytest.fixture
def comparator():
    """Comparator with default thresholds."""
    return GradeComparator(ComparisonConfig(), logger_instance=Mock())


class TestGradeSimilarity:
    """Test per-grade similarity."""

    def test_equal_grades(self, comparator):
        """Test equal grades are fully similar."""
        assert comparator.grade_similarity(14.5, 14.5) == 1.0

    def test_one_point_apart(self, comparator):
        """Test one point on a 20 scale gives exactly 0.95."""
        assert comparator.grade_similarity(15, 16) == 0.95

    def test_symmetric(self, comparator):
        """Test the order of the grades does not matter."""
        assert comparator.grade_similarity(12, 8) == comparator.grade_similarity(8, 12) == 0.8

    def test_floor_at_zero(self, comparator):
        """Test distances beyond the scale give 0."""
        assert comparator.grade_similarity(0, 20) == 0.0
        assert comparator.grade_similarity(0, 35) == 0.0

    def test_custom_scale(self):
        """Test the scale maximum sets the decay."""
        comparator = GradeComparator(ComparisonConfig(grade_scale_max=10), logger_instance=Mock())
        assert comparator.grade_similarity(5, 6) == 0.9


class TestClassify:
    """Test status classification."""

    @pytest.mark.parametrize(
        "similarity, status",
        [
            (1.0, VerificationStatus.FULLY_VERIFIED),
            (0.95, VerificationStatus.FULLY_VERIFIED),
            (0.9499, VerificationStatus.PARTIALLY_VERIFIED),
            (0.80, VerificationStatus.PARTIALLY_VERIFIED),
            (0.7999, VerificationStatus.FRAUD),
            (0.0001, VerificationStatus.FRAUD),
            (0.0, VerificationStatus.CANNOT_VERIFY),
        ],
    )
    def test_boundaries(self, comparator, similarity, status):
        """Test thresholds are inclusive and 0 cannot be verified."""
        assert comparator.classify(similarity) == status

    def test_configured_thresholds(self):
        """Test configured thresholds replace the defaults."""
        comparator = GradeComparator(
            ComparisonConfig(fully_verified_threshold=0.9, partially_verified_threshold=0.5),
            logger_instance=Mock(),
        )
        assert comparator.classify(0.9) == VerificationStatus.FULLY_VERIFIED
        assert comparator.classify(0.5) == VerificationStatus.PARTIALLY_VERIFIED


class TestIsGradeMapping:
    """Test which mapping entries are compared."""

    @pytest.mark.parametrize(
        "admission_index, transcript_index, expected",
        [(2, 3, True), (5, 4, True), (1, 3, False), (2, 2, False), (0, 0, False)],
    )
    def test_index_ranges(self, admission_index, transcript_index, expected):
        """Test only score-to-grade entries qualify."""
        assert GradeComparator.is_grade_mapping(entry(admission_index, transcript_index)) is expected


class TestCompareField:
    """Test single field comparison."""

    def test_numeric_values(self, comparator):
        """Test numeric strings and floats are compared."""
        result = comparator.compare_field(entry(2, 3), {2: "15"}, {3: 16.0})

        assert result.field_name == "score_Note / grade_S1"
        assert result.admission_value == "15"
        assert result.transcript_value == "16"
        assert result.similarity == 0.95
        assert result.status == VerificationStatus.FULLY_VERIFIED

    def test_non_numeric_value(self, comparator):
        """Test a text score cannot be verified."""
        result = comparator.compare_field(entry(2, 3), {2: "Absent"}, {3: 12.0})

        assert result.admission_value == "Absent"
        assert result.similarity == 0.0
        assert result.status == VerificationStatus.CANNOT_VERIFY

    def test_missing_value(self, comparator):
        """Test a missing value cannot be verified."""
        result = comparator.compare_field(entry(2, 3), {2: "12"}, {})

        assert result.transcript_value is None
        assert result.status == VerificationStatus.CANNOT_VERIFY

    @pytest.mark.parametrize(
        "declared, recorded, similarity, status",
        [
            ("15.5", "15.5", 1.0, VerificationStatus.FULLY_VERIFIED),
            ("10", "18", 0.6, VerificationStatus.FRAUD),
            (None, "12", 0.0, VerificationStatus.CANNOT_VERIFY),
        ],
    )
    def test_declared_against_recorded(self, comparator, declared, recorded, similarity, status):
        """Test declared scores against recorded grades end to end."""
        result = comparator.compare_field(entry(2, 3), {2: declared}, {3: recorded})

        assert result.similarity == similarity
        assert result.status == status


class TestCompare:
    """Test whole-match comparison."""

    def test_no_mapping(self, comparator):
        """Test an empty mapping gives CANNOT_VERIFY without fields."""
        for mapping in (None, []):
            outcome = comparator.compare(mapping, {2: "15"}, {3: 15.0})
            assert outcome == ComparisonOutcome()
            assert outcome.status == VerificationStatus.CANNOT_VERIFY

    def test_missing_record(self, comparator):
        """Test a missing record gives CANNOT_VERIFY."""
        outcome = comparator.compare([entry(2, 3)], None, {3: 15.0})
        assert outcome.status == VerificationStatus.CANNOT_VERIFY
        assert outcome.fields == []

    def test_average_over_comparable_fields(self, comparator):
        """Test the mean ignores fields without two numbers."""
        mapping = [
            entry(2, 3, "score_A", "grade_S1"),
            entry(3, 4, "score_B", "grade_S2"),
            entry(4, 5, "score_C", "grade_S3"),
        ]
        outcome = comparator.compare(mapping, {2: "15", 3: "12", 4: "Absent"}, {3: 16.0, 4: 10.0, 5: 9.0})

        assert len(outcome.fields) == 3
        assert outcome.compared_fields == 2
        assert outcome.average_similarity == 0.925
        assert outcome.status == VerificationStatus.PARTIALLY_VERIFIED
        assert outcome.fields[2].status == VerificationStatus.CANNOT_VERIFY

    def test_identity_entries_skipped(self, comparator):
        """Test entries outside the grade ranges produce no field."""
        mapping = [entry(0, 0, "fullName", "name"), entry(2, 3)]
        outcome = comparator.compare(mapping, {0: "Dupont Élodie", 2: "14"}, {0: "DUPONT Elodie", 3: 14.0})

        assert [f.field_name for f in outcome.fields] == ["score_Note / grade_S1"]
        assert outcome.status == VerificationStatus.FULLY_VERIFIED

    def test_nothing_comparable(self, comparator):
        """Test fields are kept even when none can be compared."""
        outcome = comparator.compare([entry(2, 3)], {2: "Absent"}, {3: 12.0})

        assert len(outcome.fields) == 1
        assert outcome.compared_fields == 0
        assert outcome.average_similarity == 0.0
        assert outcome.status == VerificationStatus.CANNOT_VERIFY

    def test_fraud(self, comparator):
        """Test a large gap is flagged as fraud."""
        outcome = comparator.compare([entry(2, 3)], {2: "18"}, {3: 9.0})

        assert outcome.average_similarity == 0.55
        assert outcome.status == VerificationStatus.FRAUD
