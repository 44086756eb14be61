"""Fuzzy identity matching between admission candidates and transcript students.

This module implements the matching logic that:
1. Scores names with a normalized Levenshtein similarity after folding case,
   diacritics and whitespace, trying both "first last" and "last first"
2. Scores dates of birth as exact agreement of their canonical digit form
3. Combines both with the configured weights and keeps pairs at or above
   the threshold
4. Assigns students to candidates, either greedily (each student used once)
   or by letting every candidate take its own best student
"""

import logging
from typing import List, Optional, Sequence

from rapidfuzz import distance

from gradecheck.config.models import AssignmentStrategy, MatchingConfig
from gradecheck.domain.models import NormalizedCandidate, NormalizedStudentData
from gradecheck.logging import get_logger
from gradecheck.utils.text import canonical_date, fold_name

from .models import MatchCandidate, PairScore

logger = get_logger(__name__, component="matching")


class FuzzyMatcher:
    """Pairs admission candidates with transcript students.

    Responsibilities:
    - Score every candidate/student pair
    - Filter pairs against the acceptance threshold
    - Resolve pairs into one student per candidate
    """

    def __init__(self, config: Optional[MatchingConfig] = None, logger_instance: logging.Logger = None):
        """Initialize FuzzyMatcher.

        Args:
            config: Threshold, weights and assignment strategy (defaults if None)
            logger_instance: Optional logger instance (defaults to module logger)
        """
        self.config = config or MatchingConfig()
        self.logger = logger_instance or logger

    @staticmethod
    def name_similarity(a: Optional[str], b: Optional[str]) -> float:
        """Normalized Levenshtein similarity of two folded names.

        Returns:
            Similarity in [0, 1]; 0.0 when either name is empty
        """
        folded_a = fold_name(a)
        folded_b = fold_name(b)
        if not folded_a or not folded_b:
            return 0.0
        return distance.Levenshtein.normalized_similarity(folded_a, folded_b)

    @staticmethod
    def date_similarity(a: Optional[str], b: Optional[str]) -> float:
        """1.0 when both dates reduce to the same digits, else 0.0.

        Example:
            >>> FuzzyMatcher.date_similarity("15/05/1995", "1995-05-15")
            1.0
        """
        date_a = canonical_date(a)
        date_b = canonical_date(b)
        if not date_a or not date_b:
            return 0.0
        return 1.0 if date_a == date_b else 0.0

    def candidate_name_score(self, candidate: NormalizedCandidate, target_name: str) -> float:
        """Best similarity over the candidate's name orders."""
        first = candidate.first_name or ""
        last = candidate.last_name or ""
        variants = {f"{first} {last}".strip(), f"{last} {first}".strip()}
        if candidate.full_name:
            variants.add(candidate.full_name)
        return max(self.name_similarity(variant, target_name) for variant in variants)

    def score_pair(self, candidate: NormalizedCandidate, student: NormalizedStudentData) -> PairScore:
        """Combined similarity of one candidate/student pair.

        The weighted sum is divided by the total weight, so the score stays
        in [0, 1] even when the weights do not add up to 1.
        """
        name_score = self.candidate_name_score(candidate, student.name)
        date_score = self.date_similarity(candidate.date_of_birth, student.date_of_birth)

        name_weight = self.config.name_weight
        date_weight = self.config.date_weight
        combined = (name_weight * name_score + date_weight * date_score) / (name_weight + date_weight)

        return PairScore(
            name_score=name_score,
            date_score=date_score,
            score=min(1.0, round(combined, 10)),
        )

    def find_matches(
        self,
        candidates: Sequence[NormalizedCandidate],
        students: Sequence[NormalizedStudentData],
    ) -> List[MatchCandidate]:
        """All pairs at or above the threshold, best score first.

        Equal scores keep input order (candidate first, then student).
        """
        threshold = self.config.threshold
        matches = []
        for source_index, candidate in enumerate(candidates):
            for target_index, student in enumerate(students):
                pair = self.score_pair(candidate, student)
                if pair.score < threshold:
                    continue
                matches.append(
                    MatchCandidate(
                        source_index=source_index,
                        target_index=target_index,
                        candidate=candidate,
                        student=student,
                        name_score=pair.name_score,
                        date_score=pair.date_score,
                        score=pair.score,
                    )
                )

        matches.sort(key=lambda m: -m.score)
        return matches

    def find_best_matches(
        self,
        candidates: Sequence[NormalizedCandidate],
        students: Sequence[NormalizedStudentData],
    ) -> List[MatchCandidate]:
        """At most one student per candidate, following the assignment strategy.

        Returns:
            Accepted matches in candidate order
        """
        matches = self.find_matches(candidates, students)
        strategy = AssignmentStrategy(self.config.assignment)

        if strategy == AssignmentStrategy.BEST_PER_SOURCE:
            selected = self._best_per_source(matches)
        else:
            selected = self._greedy(matches)

        selected.sort(key=lambda m: m.source_index)
        self.logger.info(
            f"Matched {len(selected)} of {len(candidates)} candidates",
            extra={
                "event": "matching.completed",
                "candidates": len(candidates),
                "students": len(students),
                "accepted_pairs": len(matches),
                "matched": len(selected),
                "strategy": strategy.value,
            },
        )
        return selected

    @staticmethod
    def _greedy(matches: List[MatchCandidate]) -> List[MatchCandidate]:
        # matches are already sorted best first
        used_sources = set()
        used_targets = set()
        selected = []
        for match in matches:
            if match.source_index in used_sources or match.target_index in used_targets:
                continue
            used_sources.add(match.source_index)
            used_targets.add(match.target_index)
            selected.append(match)
        return selected

    @staticmethod
    def _best_per_source(matches: List[MatchCandidate]) -> List[MatchCandidate]:
        best = {}
        for match in matches:
            if match.source_index not in best:
                best[match.source_index] = match
        return list(best.values())
