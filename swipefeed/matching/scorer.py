"""Job scoring and ranking."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from swipefeed.matching.match_scorer import MatchResult, MatchScorer
from swipefeed.matching.scorer_protocol import Scorer
from swipefeed.models import CandidateProfile, JobPosting

logger = logging.getLogger(__name__)


@dataclass
class ScoredJob:
    """A job with its match score and details."""

    job: JobPosting
    match_result: MatchResult

    @property
    def job_id(self) -> str:
        return self.job.id

    @property
    def score(self) -> float:
        return self.match_result.score

    @property
    def reasons(self) -> tuple[str, ...]:
        return self.match_result.reasons


def rank_key(scored: ScoredJob) -> tuple:
    """Sort key: highest score, then most recent posting, then identifier."""
    posted = scored.job.posted_at
    recency = -posted.timestamp() if posted else float("inf")
    return (-scored.score, recency, scored.job.id)


def rank(scored_jobs: Iterable[ScoredJob]) -> list[ScoredJob]:
    """Return a new list in feed order."""
    return sorted(scored_jobs, key=rank_key)


class JobRanker:
    """Score and rank postings for one candidate."""

    def __init__(self, scorer: Optional[Scorer] = None, min_score: float = 0):
        """
        Initialize job ranker.

        Args:
            scorer: Scorer implementation (defaults to MatchScorer)
            min_score: Minimum score to include (0-100)
        """
        self.scorer = scorer or MatchScorer()
        self.min_score = min_score

    def score_job(
        self,
        profile: CandidateProfile,
        job: JobPosting,
        now: Optional[datetime] = None,
    ) -> ScoredJob:
        return ScoredJob(job=job, match_result=self.scorer.score(profile, job, now))

    def score_jobs(
        self,
        profile: CandidateProfile,
        jobs: Iterable[JobPosting],
        now: Optional[datetime] = None,
    ) -> list[ScoredJob]:
        """
        Score a batch of postings.

        Args:
            profile: Candidate profile snapshot
            jobs: Postings to score
            now: Reference time for recency

        Returns:
            List of ScoredJob objects in feed order. Postings that are not
            active or fall below ``min_score`` are dropped.
        """
        scored: list[ScoredJob] = []

        for job in jobs:
            if not job.is_active:
                logger.debug("Skipping %s job %s", job.status.value, job.id)
                continue

            result = self.score_job(profile, job, now)
            if result.score < self.min_score:
                continue
            scored.append(result)

        return rank(scored)
