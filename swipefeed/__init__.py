"""Job recommendation feed and swipe-session engine."""
from swipefeed.engine.session import SwipeOutcome, SwipeSession
from swipefeed.matching.match_scorer import MatchBreakdown, MatchResult, MatchScorer
from swipefeed.models import (
    CandidateProfile,
    JobPosting,
    SwipeAction,
    SwipeLimitStatus,
)

__all__ = [
    "CandidateProfile",
    "JobPosting",
    "MatchBreakdown",
    "MatchResult",
    "MatchScorer",
    "SwipeAction",
    "SwipeLimitStatus",
    "SwipeOutcome",
    "SwipeSession",
]
