"""Scorer protocol for pluggable scoring engines.

Defines the interface that all scoring implementations must satisfy.
MatchScorer is the weighted heuristic implementation; any replacement
(e.g. a learned model) implements the same protocol.
"""
from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from swipefeed.matching.match_scorer import MatchResult
from swipefeed.models import CandidateProfile, JobPosting


@runtime_checkable
class Scorer(Protocol):
    """Protocol for job scoring engines."""

    def score(
        self,
        profile: CandidateProfile,
        job: JobPosting,
        now: Optional[datetime] = None,
    ) -> MatchResult:
        """Score a single job and return a MatchResult."""
        ...
