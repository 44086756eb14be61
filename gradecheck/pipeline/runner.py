"""Reconciliation of an admission file with a transcript file."""

from typing import List, Optional
from uuid import uuid4

from gradecheck.comparison.engine import ComparisonOutcome, GradeComparator
from gradecheck.config.models import AppConfig
from gradecheck.domain.models import (
    CandidateMatch,
    ComparisonReport,
    ComparisonSummary,
    MappingEntry,
)
from gradecheck.logging import get_logger
from gradecheck.logging.context import log_context
from gradecheck.matching.engine import FuzzyMatcher
from gradecheck.normalization.admission import AdmissionNormalizationService
from gradecheck.normalization.transcript import TranscriptNormalizationService
from gradecheck.persistence.database import get_session
from gradecheck.persistence.repositories import (
    AdmissionRepository,
    ComparisonRepository,
    MappingRepository,
    MatchRepository,
    TranscriptRepository,
)
from gradecheck.utils.timestamps import utc_now

from .exceptions import ReconciliationError, ReconciliationErrorCode
from .models import ReconciliationOutcome, ReconciliationResult

logger = get_logger(__name__, component="pipeline")


class ReconciliationPipeline:
    """
    Matches candidates to transcript students and verifies their grades.

    A run replaces every match and comparison previously stored for the
    file pair; all of its writes happen in one transaction.
    """

    def __init__(
        self,
        app_config: AppConfig,
        admission_service: AdmissionNormalizationService,
        transcript_service: TranscriptNormalizationService,
        matcher: Optional[FuzzyMatcher] = None,
        comparator: Optional[GradeComparator] = None,
    ):
        """
        Initialize the reconciliation pipeline.

        Args:
            app_config: Application configuration
            admission_service: Source of candidates and admission indexed records
            transcript_service: Source of students and transcript indexed records
            matcher: Fuzzy matcher (built from app_config.matching if None)
            comparator: Grade comparator (built from app_config.comparison if None)
        """
        self.app_config = app_config
        self.admission_service = admission_service
        self.transcript_service = transcript_service
        self.matcher = matcher or FuzzyMatcher(app_config.matching)
        self.comparator = comparator or GradeComparator(app_config.comparison)

    def reconcile(self, admission_file_id: int, transcript_file_id: int) -> ReconciliationResult:
        """
        Match and compare every candidate of an admission file.

        This method:
        1. Checks both files have been normalized
        2. Matches candidates to students with the fuzzy matcher
        3. Compares each match through the file pair's field mapping
        4. Replaces the pair's stored matches and comparisons in one transaction

        Args:
            admission_file_id: Normalized admission spreadsheet
            transcript_file_id: Normalized transcript export

        Returns:
            ReconciliationResult with one outcome per matched candidate

        Raises:
            ReconciliationError: NOT_NORMALIZED if either file has no normalized data
        """
        result = ReconciliationResult(
            admission_file_id=admission_file_id,
            transcript_file_id=transcript_file_id,
            run_started_at=utc_now(),
        )

        with log_context(
            run_id=uuid4().hex,
            admission_file_id=admission_file_id,
            transcript_file_id=transcript_file_id,
        ):
            self._require_normalized(admission_file_id, transcript_file_id)

            candidates = self.admission_service.get_normalized_data(admission_file_id)
            students = self.transcript_service.get_normalized_data(transcript_file_id)
            result.candidates_count = len(candidates)
            result.students_count = len(students)

            logger.info(
                "Reconciliation started",
                extra={
                    "event": "pipeline.reconcile.started",
                    "candidates": len(candidates),
                    "students": len(students),
                },
            )

            matches = self.matcher.find_best_matches(candidates, students)
            admission_records = self.admission_service.get_indexed_record_map(admission_file_id)
            transcript_records = self.transcript_service.get_indexed_record_map(transcript_file_id)

            with get_session() as session:
                entries = MappingRepository(session).get_entries(admission_file_id, transcript_file_id)
                result.mapped_fields = len(grade_entries(entries, self.comparator))

                match_repo = MatchRepository(session)
                cleared = match_repo.delete_by_files(admission_file_id, transcript_file_id)
                stored = match_repo.add_all(
                    [
                        CandidateMatch(
                            admission_file_id=admission_file_id,
                            transcript_file_id=transcript_file_id,
                            admission_candidate_id=m.candidate.candidate_id,
                            transcript_student_id=m.student.student_id,
                            score=m.score,
                        )
                        for m in matches
                    ]
                )

                comparison_repo = ComparisonRepository(session)
                for match in stored:
                    outcome = self.comparator.compare(
                        entries,
                        admission_records.get(match.admission_candidate_id),
                        transcript_records.get(match.transcript_student_id),
                    )
                    self._save_outcome(comparison_repo, match.match_id, outcome)
                    result.outcomes.append(
                        ReconciliationOutcome(
                            candidate_id=match.admission_candidate_id,
                            transcript_student_id=match.transcript_student_id,
                            match_id=match.match_id,
                            match_score=match.score,
                            status=outcome.status,
                            similarity=outcome.average_similarity,
                        )
                    )

            matched_ids = {o.candidate_id for o in result.outcomes}
            result.unmatched_candidate_ids = [
                c.candidate_id for c in candidates if c.candidate_id not in matched_ids
            ]
            result.run_finished_at = utc_now()

            logger.info(
                f"Reconciliation completed: {result.matched_count} of {result.candidates_count} candidates matched",
                extra={
                    "event": "pipeline.reconcile.completed",
                    "matched": result.matched_count,
                    "unmatched": len(result.unmatched_candidate_ids),
                    "replaced_matches": cleared,
                    "mapped_fields": result.mapped_fields,
                    "status_counts": result.status_counts(),
                    "duration_seconds": round(result.duration_seconds, 3),
                },
            )
            if result.mapped_fields == 0:
                logger.warning(
                    "No grade mapping configured for this file pair; every match is CANNOT_VERIFY",
                    extra={"event": "pipeline.reconcile.no_mapping"},
                )

        return result

    def compare_match(self, match_id: int) -> ComparisonReport:
        """
        Re-run the comparison of one stored match with the current mapping.

        Raises:
            ReconciliationError: MATCH_NOT_FOUND if the match does not exist
        """
        with get_session() as session:
            match = MatchRepository(session).get(match_id)
            if match is None:
                raise ReconciliationError(
                    ReconciliationErrorCode.MATCH_NOT_FOUND, f"Match {match_id} not found"
                )
            entries = MappingRepository(session).get_entries(match.admission_file_id, match.transcript_file_id)

        admission_records = self.admission_service.get_indexed_record_map(match.admission_file_id)
        transcript_records = self.transcript_service.get_indexed_record_map(match.transcript_file_id)
        admission_record = admission_records.get(match.admission_candidate_id)
        transcript_record = transcript_records.get(match.transcript_student_id)
        outcome = self.comparator.compare(entries, admission_record, transcript_record)

        with get_session() as session:
            self._save_outcome(ComparisonRepository(session), match_id, outcome)

        logger.info(
            f"Compared match {match_id}: {outcome.status.value}",
            extra={
                "event": "pipeline.match.compared",
                "match_id": match_id,
                "status": outcome.status.value,
                "similarity": outcome.average_similarity,
            },
        )
        return self.get_report(match_id)

    def get_report(self, match_id: int) -> Optional[ComparisonReport]:
        """Match, both parties and comparison results, or None if no such match."""
        with get_session() as session:
            match = MatchRepository(session).get(match_id)
            if match is None:
                return None
            return self._build_report(session, match)

    def get_reports(self, admission_file_id: int, transcript_file_id: int) -> List[ComparisonReport]:
        """Reports of every stored match of a file pair."""
        with get_session() as session:
            matches = MatchRepository(session).get_by_files(admission_file_id, transcript_file_id)
            return [self._build_report(session, match) for match in matches]

    def get_reports_for_candidate(self, candidate_id: int) -> List[ComparisonReport]:
        """Reports of every stored match involving an admission candidate."""
        with get_session() as session:
            matches = MatchRepository(session).get_by_candidate(candidate_id)
            return [self._build_report(session, match) for match in matches]

    def delete_comparison(self, match_id: int) -> bool:
        """Drop the stored comparison of a match, keeping the match itself."""
        with get_session() as session:
            deleted = ComparisonRepository(session).delete_by_match(match_id)
        if deleted:
            logger.info(
                "Deleted comparison",
                extra={"event": "pipeline.comparison.deleted", "match_id": match_id},
            )
        return deleted

    def _require_normalized(self, admission_file_id: int, transcript_file_id: int) -> None:
        if not self.admission_service.is_normalized(admission_file_id):
            raise ReconciliationError(
                ReconciliationErrorCode.NOT_NORMALIZED,
                f"Admission file {admission_file_id} has not been normalized",
            )
        if not self.transcript_service.is_normalized(transcript_file_id):
            raise ReconciliationError(
                ReconciliationErrorCode.NOT_NORMALIZED,
                f"Transcript file {transcript_file_id} has not been normalized",
            )

    @staticmethod
    def _save_outcome(repo: ComparisonRepository, match_id: int, outcome: ComparisonOutcome) -> None:
        repo.save(
            match_id,
            outcome.fields,
            ComparisonSummary(
                match_id=match_id,
                average_similarity=outcome.average_similarity,
                status=outcome.status,
                compared_fields=outcome.compared_fields,
            ),
        )

    @staticmethod
    def _build_report(session, match: CandidateMatch) -> ComparisonReport:
        comparison_repo = ComparisonRepository(session)
        return ComparisonReport(
            match=match,
            candidate=AdmissionRepository(session).get_candidate(match.admission_candidate_id),
            student=TranscriptRepository(session).get_student(match.transcript_student_id),
            summary=comparison_repo.get_summary(match.match_id),
            fields=comparison_repo.get_fields(match.match_id),
        )


def grade_entries(entries: List[MappingEntry], comparator: GradeComparator) -> List[MappingEntry]:
    """Entries of a mapping that the comparator will compare."""
    return [entry for entry in entries if comparator.is_grade_mapping(entry)]
