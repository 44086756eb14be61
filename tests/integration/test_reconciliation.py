"""Integration tests for the reconciliation flow.

Runs registration, normalization, mapping, matching and comparison against
a file-backed database and blob store, the way the CLI wires them.
"""

import pytest

from gradecheck.config.models import AppConfig, AssignmentStrategy, MatchingConfig
from gradecheck.domain.models import DocumentOrigin, VerificationStatus
from gradecheck.main import build_services
from gradecheck.persistence import close_database, get_session, init_database
from gradecheck.persistence.repositories import MatchRepository
from tests.helpers import build_admission_workbook, build_bordeaux_xml


@pytest.fixture
def services(tmp_path):
    """Services over a file-backed database and blob store."""
    init_database(f"sqlite:///{tmp_path / 'gradecheck.db'}")
    app_config = AppConfig()
    app_config.storage.blob_dir = str(tmp_path / "blobs")
    yield build_services(app_config)
    close_database()


@pytest.fixture
def cohort_files(tmp_path):
    """Admission spreadsheet with four candidates and a Latin-1 transcript export."""
    spreadsheet = tmp_path / "candidats_2024.xlsx"
    spreadsheet.write_bytes(
        build_admission_workbook(
            [
                ["C001", "Dupont", "Élodie", "15/05/1995", "2022-2023", "Licence", 14, 15, "Bordeaux", 15],
                ["C002", "Martin", "Paul", "02/11/1996", "2022-2023", "Licence", 12, 12, "Bordeaux", 18],
                ["C003", "Leroy", "Chloé", "01/01/1997", "2022-2023", "Licence", 12, 12, "Bordeaux", 120],
                ["C004", "Bernard", "Luc", "03/03/1994", "2022-2023", "Licence", 10, 10, "Lyon", 11],
            ]
        )
    )

    export = tmp_path / "EREPVR10.xml"
    export.write_bytes(
        build_bordeaux_xml(
            [
                {
                    "name": "Elodie DUPONT",
                    "birth_date": "1995-05-15",
                    "student_number": "N° étudiant : 21000001",
                    "semesters": [("Semestre 1", "14"), ("Semestre 2", "15")],
                },
                {
                    "name": "MARTIN Paul",
                    "birth_date": "1996-11-02",
                    "student_number": "N° étudiant : 21000002",
                    "semesters": [("Semestre 1", "9"), ("Semestre 2", "11")],
                },
                {
                    "name": "LEROY Chloé",
                    "birth_date": "1997-01-01",
                    "student_number": "N° étudiant : 21000003",
                    "semesters": [("Semestre 1", "13"), ("Semestre 2", "12,5")],
                },
                {"name": "SANS Numero", "birth_date": "1990-01-01", "semesters": [("Semestre 1", "10")]},
            ],
            encoding="ISO-8859-1",
        )
    )
    return spreadsheet, export


@pytest.fixture
def reconciled_pair(services, cohort_files):
    """Registered, normalized and mapped file pair."""
    spreadsheet, export = cohort_files
    admission = services.files.register_file(spreadsheet, DocumentOrigin.ADMISSION, academic_year="2024-2025")
    transcript = services.files.register_file(export, DocumentOrigin.TRANSCRIPT, institution="Université de Bordeaux")

    services.admission.normalize_file(admission.file_id)
    services.transcript.normalize_file(transcript.file_id)

    admission_fields = {f.name: f.index for f in services.admission.get_available_fields(admission.file_id)}
    transcript_fields = {f.name: f.index for f in services.transcript.get_available_fields(transcript.file_id)}
    services.mapping.add_entry(
        admission.file_id,
        transcript.file_id,
        admission_fields["score_Note_GMAT"],
        "score_Note_GMAT",
        transcript_fields["grade_Semestre_2"],
        "grade_Semestre_2",
    )
    return admission.file_id, transcript.file_id


class TestCohortReconciliation:
    """End-to-end verification of a cohort."""

    def test_normalization_counts(self, services, reconciled_pair):
        """Test incomplete transcript students are dropped."""
        admission_id, transcript_id = reconciled_pair

        assert len(services.admission.get_normalized_data(admission_id)) == 4
        students = services.transcript.get_normalized_data(transcript_id)
        assert [s.student_number for s in students] == ["21000001", "21000002", "21000003"]
        assert students[2].name == "LEROY Chloé"

    def test_statuses(self, services, reconciled_pair):
        """Test each matched candidate gets the expected verdict."""
        result = services.pipeline.reconcile(*reconciled_pair)

        assert [o.status for o in result.outcomes] == [
            VerificationStatus.FULLY_VERIFIED,
            VerificationStatus.FRAUD,
            VerificationStatus.FULLY_VERIFIED,
        ]
        assert [o.similarity for o in result.outcomes] == [1.0, 0.65, 0.975]
        assert result.status_counts() == {
            "fully_verified": 2,
            "partially_verified": 0,
            "fraud": 1,
            "cannot_verify": 0,
        }

    def test_unmatched_candidate(self, services, reconciled_pair):
        """Test a candidate absent from the transcript is reported unmatched."""
        admission_id, _ = reconciled_pair
        bernard = services.admission.search_candidates(last_name="Bernard", file_id=admission_id)[0]

        result = services.pipeline.reconcile(*reconciled_pair)

        assert result.unmatched_candidate_ids == [bernard.candidate_id]

    def test_score_on_200_scale_reported_normalized(self, services, reconciled_pair):
        """Test a 0-200 score is compared and reported on 0-20."""
        result = services.pipeline.reconcile(*reconciled_pair)

        report = services.pipeline.get_report(result.outcomes[2].match_id)

        assert report.fields[0].admission_value == "12"
        assert report.fields[0].transcript_value == "12.5"

    def test_rerun_is_idempotent(self, services, reconciled_pair):
        """Test repeated runs leave a single set of matches and comparisons."""
        first = services.pipeline.reconcile(*reconciled_pair)
        second = services.pipeline.reconcile(*reconciled_pair)

        reports = services.pipeline.get_reports(*reconciled_pair)

        assert len(reports) == 3
        assert [r.summary.status for r in reports] == [o.status for o in second.outcomes]
        assert [o.status for o in first.outcomes] == [o.status for o in second.outcomes]

    def test_best_per_source_strategy(self, services, reconciled_pair):
        """Test the alternative strategy gives the same pairs for distinct identities."""
        services.pipeline.matcher.config = MatchingConfig(assignment=AssignmentStrategy.BEST_PER_SOURCE)

        result = services.pipeline.reconcile(*reconciled_pair)

        assert result.matched_count == 3

    def test_deleting_transcript_removes_matches(self, services, reconciled_pair):
        """Test removing a file drops the matches that depend on it."""
        admission_id, transcript_id = reconciled_pair
        services.pipeline.reconcile(admission_id, transcript_id)

        assert services.files.delete_file(transcript_id) is True

        with get_session() as session:
            assert MatchRepository(session).get_by_files(admission_id, transcript_id) == []
        assert services.pipeline.get_reports(admission_id, transcript_id) == []
        assert services.admission.is_normalized(admission_id) is True
