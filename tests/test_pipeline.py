"""Unit tests for the reconciliation pipeline.

Tests the ReconciliationPipeline orchestration including:
- Precondition checks on both files
- Match and comparison persistence for a file pair
- Status counts and unmatched candidates in the run result
- Single-match re-comparison and report retrieval
"""

import logging
from datetime import timedelta
from unittest.mock import Mock

import pytest

from gradecheck.comparison import ComparisonOutcome, GradeComparator
from gradecheck.config.models import AppConfig
from gradecheck.domain.models import DocumentOrigin, VerificationStatus
from gradecheck.mapping import MappingService
from gradecheck.normalization import AdmissionNormalizationService, TranscriptNormalizationService
from gradecheck.persistence import close_database, init_database
from gradecheck.pipeline import (
    ReconciliationError,
    ReconciliationErrorCode,
    ReconciliationPipeline,
    ReconciliationResult,
)
from gradecheck.pipeline.runner import grade_entries
from gradecheck.storage import FileService, LocalBlobStore
from gradecheck.utils.timestamps import utc_now
from tests.helpers import build_bordeaux_xml, sample_admission_workbook, sample_bordeaux_xml


@pytest.fixture
def file_service(tmp_path):
    """File service over a temporary database and blob directory."""
    init_database(f"sqlite:///{tmp_path / 'test.db'}")
    yield FileService(LocalBlobStore(tmp_path / "blobs"))
    close_database()


@pytest.fixture
def admission_service(file_service):
    return AdmissionNormalizationService(file_service)


@pytest.fixture
def transcript_service(file_service):
    return TranscriptNormalizationService(file_service)


@pytest.fixture
def pipeline(admission_service, transcript_service):
    """Pipeline with default configuration."""
    return ReconciliationPipeline(AppConfig(), admission_service, transcript_service)


@pytest.fixture
def file_pair(file_service, admission_service, transcript_service):
    """Normalized sample admission and transcript files."""
    admission = file_service.register_content("c.xlsx", sample_admission_workbook(), DocumentOrigin.ADMISSION)
    transcript = file_service.register_content("t.xml", sample_bordeaux_xml(), DocumentOrigin.TRANSCRIPT)
    admission_service.normalize_file(admission.file_id)
    transcript_service.normalize_file(transcript.file_id)
    return admission.file_id, transcript.file_id


@pytest.fixture
def gmat_mapping(file_pair):
    """Map the GMAT score to the second semester grade."""
    return MappingService().add_entry(*file_pair, 2, "score_Note_GMAT", 4, "grade_Semestre_2")


class TestReconcile:
    """Test full reconciliation runs."""

    def test_requires_normalized_admission_file(self, pipeline, file_service):
        """Test an unnormalized admission file is refused."""
        admission = file_service.register_content("c.xlsx", sample_admission_workbook(), DocumentOrigin.ADMISSION)

        with pytest.raises(ReconciliationError) as exc_info:
            pipeline.reconcile(admission.file_id, 999)

        assert exc_info.value.code == ReconciliationErrorCode.NOT_NORMALIZED
        assert "Admission file" in exc_info.value.message

    def test_requires_normalized_transcript_file(self, pipeline, file_service, admission_service):
        """Test an unnormalized transcript file is refused."""
        admission = file_service.register_content("c.xlsx", sample_admission_workbook(), DocumentOrigin.ADMISSION)
        transcript = file_service.register_content("t.xml", sample_bordeaux_xml(), DocumentOrigin.TRANSCRIPT)
        admission_service.normalize_file(admission.file_id)

        with pytest.raises(ReconciliationError) as exc_info:
            pipeline.reconcile(admission.file_id, transcript.file_id)

        assert "Transcript file" in exc_info.value.message

    def test_with_mapping(self, pipeline, file_pair, gmat_mapping):
        """Test matched candidates are compared through the mapping."""
        result = pipeline.reconcile(*file_pair)

        assert result.candidates_count == 2
        assert result.students_count == 2
        assert result.mapped_fields == 1
        assert result.matched_count == 2
        assert result.unmatched_candidate_ids == []
        assert [o.status for o in result.outcomes] == [
            VerificationStatus.FULLY_VERIFIED,
            VerificationStatus.CANNOT_VERIFY,
        ]
        assert result.outcomes[0].similarity == 0.95
        assert result.outcomes[0].match_score == 1.0
        assert result.status_counts() == {
            "fully_verified": 1,
            "partially_verified": 0,
            "fraud": 0,
            "cannot_verify": 1,
        }
        assert result.run_finished_at >= result.run_started_at

    def test_without_mapping(self, pipeline, file_pair, caplog):
        """Test every match is CANNOT_VERIFY and a warning is logged."""
        with caplog.at_level(logging.WARNING):
            result = pipeline.reconcile(*file_pair)

        assert result.mapped_fields == 0
        assert all(o.status == VerificationStatus.CANNOT_VERIFY for o in result.outcomes)
        assert any(getattr(r, "event", None) == "pipeline.reconcile.no_mapping" for r in caplog.records)

    def test_unmatched_candidates(self, pipeline, file_service, admission_service, transcript_service):
        """Test candidates without a student are listed separately."""
        admission = file_service.register_content("c.xlsx", sample_admission_workbook(), DocumentOrigin.ADMISSION)
        transcript = file_service.register_content(
            "t.xml",
            build_bordeaux_xml(
                [
                    {
                        "name": "DUPONT Elodie",
                        "birth_date": "1995-05-15",
                        "student_number": "22222222",
                        "semesters": [("Semestre 1", "14")],
                    }
                ]
            ),
            DocumentOrigin.TRANSCRIPT,
        )
        admission_service.normalize_file(admission.file_id)
        transcript_service.normalize_file(transcript.file_id)
        martin = admission_service.search_candidates(last_name="Martin")[0]

        result = pipeline.reconcile(admission.file_id, transcript.file_id)

        assert result.matched_count == 1
        assert result.unmatched_candidate_ids == [martin.candidate_id]

    def test_rerun_replaces_previous_matches(self, pipeline, file_pair, gmat_mapping):
        """Test a second run leaves one set of matches for the pair."""
        pipeline.reconcile(*file_pair)
        second = pipeline.reconcile(*file_pair)

        reports = pipeline.get_reports(*file_pair)

        assert len(reports) == 2
        assert [r.match.match_id for r in reports] == [o.match_id for o in second.outcomes]
        assert [len(r.fields) for r in reports] == [1, 1]

    def test_uses_injected_comparator(self, admission_service, transcript_service, file_pair, gmat_mapping):
        """Test a supplied comparator replaces the configured one."""
        comparator = Mock(spec=GradeComparator)
        comparator.is_grade_mapping.return_value = True
        comparator.compare.return_value = ComparisonOutcome(
            average_similarity=0.5, status=VerificationStatus.FRAUD, compared_fields=1
        )
        pipeline = ReconciliationPipeline(
            AppConfig(), admission_service, transcript_service, comparator=comparator
        )

        result = pipeline.reconcile(*file_pair)

        assert comparator.compare.call_count == 2
        assert result.status_counts()["fraud"] == 2


class TestReports:
    """Test report retrieval and single-match comparison."""

    def test_report_contents(self, pipeline, file_pair, gmat_mapping):
        """Test a report carries both parties and the field results."""
        result = pipeline.reconcile(*file_pair)

        report = pipeline.get_report(result.outcomes[0].match_id)

        assert report.candidate.full_name == "Dupont Élodie"
        assert report.student.student_number == "22222222"
        assert report.summary.status == VerificationStatus.FULLY_VERIFIED
        assert report.summary.compared_fields == 1
        assert [(f.field_name, f.admission_value, f.transcript_value) for f in report.fields] == [
            ("score_Note_GMAT / grade_Semestre_2", "16", "15")
        ]

    def test_missing_report(self, pipeline, file_pair):
        """Test an unknown match has no report."""
        assert pipeline.get_report(999) is None

    def test_reports_for_candidate(self, pipeline, file_pair):
        """Test reports can be listed per candidate."""
        result = pipeline.reconcile(*file_pair)

        reports = pipeline.get_reports_for_candidate(result.outcomes[1].candidate_id)

        assert [r.match.match_id for r in reports] == [result.outcomes[1].match_id]

    def test_compare_match_uses_current_mapping(self, pipeline, file_pair, gmat_mapping):
        """Test re-comparing a match picks up a changed mapping."""
        result = pipeline.reconcile(*file_pair)
        MappingService().update_entry(gmat_mapping.entry_id, 2, "score_Note_GMAT", 3, "grade_Semestre_1")

        report = pipeline.compare_match(result.outcomes[0].match_id)

        assert report.summary.status == VerificationStatus.PARTIALLY_VERIFIED
        assert report.summary.average_similarity == 0.925
        assert [f.field_name for f in report.fields] == ["score_Note_GMAT / grade_Semestre_1"]

    def test_compare_unknown_match(self, pipeline, file_pair):
        """Test re-comparing an unknown match raises MATCH_NOT_FOUND."""
        with pytest.raises(ReconciliationError) as exc_info:
            pipeline.compare_match(999)
        assert exc_info.value.code == ReconciliationErrorCode.MATCH_NOT_FOUND

    def test_delete_comparison_keeps_match(self, pipeline, file_pair, gmat_mapping):
        """Test deleting a comparison leaves an uncompared match."""
        match_id = pipeline.reconcile(*file_pair).outcomes[0].match_id

        assert pipeline.delete_comparison(match_id) is True
        assert pipeline.delete_comparison(match_id) is False

        report = pipeline.get_report(match_id)
        assert report is not None
        assert report.summary is None
        assert report.fields == []


class TestResultModel:
    """Test ReconciliationResult helpers."""

    def test_duration(self):
        """Test duration is 0 until the run finishes."""
        started = utc_now()
        result = ReconciliationResult(admission_file_id=1, transcript_file_id=2, run_started_at=started)
        assert result.duration_seconds == 0.0

        result.run_finished_at = started + timedelta(seconds=3)
        assert result.duration_seconds == 3.0

    def test_empty_status_counts(self):
        """Test every status is present even without outcomes."""
        result = ReconciliationResult(admission_file_id=1, transcript_file_id=2, run_started_at=utc_now())
        assert result.status_counts() == {status.value: 0 for status in VerificationStatus}

    def test_grade_entries(self):
        """Test only score-to-grade entries count as mapped fields."""
        comparator = GradeComparator()
        identity = Mock(admission_column_index=0, transcript_column_index=0)
        grade = Mock(admission_column_index=2, transcript_column_index=3)
        assert grade_entries([identity, grade], comparator) == [grade]
