"""Data models for the fuzzy identity matcher."""

from dataclasses import dataclass

from gradecheck.domain.models import NormalizedCandidate, NormalizedStudentData


@dataclass
class PairScore:
    """Similarity of one candidate/student pair.

    Attributes:
        name_score: Best name similarity over the candidate's name orders (0-1)
        date_score: 1.0 when the dates of birth agree, else 0.0
        score: Weighted combination of the two, rescaled to 0-1
    """

    name_score: float
    date_score: float
    score: float


@dataclass
class MatchCandidate:
    """A scored pairing of an admission candidate with a transcript student.

    Attributes:
        source_index: Position of the candidate in the input list
        target_index: Position of the student in the input list
        candidate: Admission-side candidate
        student: Transcript-side student
        name_score: Name similarity (0-1)
        date_score: Date-of-birth agreement (0 or 1)
        score: Combined score (0-1)
    """

    source_index: int
    target_index: int
    candidate: NormalizedCandidate
    student: NormalizedStudentData
    name_score: float
    date_score: float
    score: float
