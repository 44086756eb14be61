"""Fuzzy identity matching of admission candidates to transcript students."""

from .engine import FuzzyMatcher
from .models import MatchCandidate, PairScore

__all__ = [
    "FuzzyMatcher",
    "MatchCandidate",
    "PairScore",
]
