"""Data models for reconciliation runs."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from gradecheck.domain.models import VerificationStatus


@dataclass
class ReconciliationOutcome:
    """
    Verification result for one matched candidate.

    Attributes:
        candidate_id: Admission-side candidate
        transcript_student_id: Transcript student it was matched with
        match_id: Stored CandidateMatch id
        match_score: Fuzzy matcher confidence (0-1)
        status: Verification status of the pair
        similarity: Mean similarity of the compared grades (0-1)
    """

    candidate_id: int
    transcript_student_id: int
    match_id: int
    match_score: float
    status: VerificationStatus
    similarity: float


@dataclass
class ReconciliationResult:
    """
    Results of reconciling one admission file with one transcript file.

    Attributes:
        admission_file_id: Admission spreadsheet
        transcript_file_id: Transcript export
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        candidates_count: Candidates considered
        students_count: Transcript students considered
        mapped_fields: Grade mapping entries used for comparison
        outcomes: One entry per matched candidate, in candidate order
        unmatched_candidate_ids: Candidates with no student above the threshold
    """

    admission_file_id: int
    transcript_file_id: int
    run_started_at: datetime
    run_finished_at: Optional[datetime] = None
    candidates_count: int = 0
    students_count: int = 0
    mapped_fields: int = 0
    outcomes: List[ReconciliationOutcome] = field(default_factory=list)
    unmatched_candidate_ids: List[int] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.run_finished_at is None:
            return 0.0
        return (self.run_finished_at - self.run_started_at).total_seconds()

    @property
    def matched_count(self) -> int:
        return len(self.outcomes)

    def status_counts(self) -> Dict[str, int]:
        """Number of outcomes per verification status value."""
        counts = Counter(VerificationStatus(o.status).value for o in self.outcomes)
        return {status.value: counts.get(status.value, 0) for status in VerificationStatus}
