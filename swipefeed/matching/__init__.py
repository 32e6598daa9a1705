"""Job matching and scoring."""
from .match_scorer import MatchBreakdown, MatchResult, MatchScorer, ScoringWeights
from .scorer import JobRanker, ScoredJob, rank, rank_key

__all__ = [
    "JobRanker",
    "MatchBreakdown",
    "MatchResult",
    "MatchScorer",
    "ScoredJob",
    "ScoringWeights",
    "rank",
    "rank_key",
]
