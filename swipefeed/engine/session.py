"""Swipe session: the entry point a feed view talks to."""
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from config.settings import settings
from swipefeed.backends.base import SwipeBackend
from swipefeed.engine.feed import FeedManager, FeedSessionState, FetchCoordinator
from swipefeed.engine.limit_tracker import SwipeLimitTracker
from swipefeed.engine.notices import Notice, NoticeKind, Notifier, log_notice, safe_notify
from swipefeed.engine.queue import SwipeActionQueue, SwipeCommand
from swipefeed.engine.rewind_cache import RewindCache
from swipefeed.matching.match_scorer import MatchScorer, ScoringWeights
from swipefeed.matching.scorer import JobRanker, ScoredJob
from swipefeed.models import (
    CandidateProfile,
    JobPosting,
    SwipeAction,
    SwipeLimitStatus,
    SwipeQueueItem,
    utcnow,
)

logger = logging.getLogger(__name__)


class SwipeOutcome(str, Enum):
    """What happened to a swipe gesture at gesture time."""

    QUEUED = "queued"
    LIMIT_REACHED = "limit_reached"
    NOT_FOUND = "not_found"


class SwipeSession:
    """One user's swipe session over a ranked job feed.

    Wires the feed, the quota tracker, the action queue and the rewind
    cache together. ``on_swipe`` and ``on_rewind`` are the only gesture
    entry points; ``visible_jobs`` and ``swipe_status`` are what the view
    renders.
    """

    def __init__(
        self,
        user_id: str,
        profile: CandidateProfile,
        backend: SwipeBackend,
        *,
        initial_jobs: Iterable[Union[JobPosting, ScoredJob]] = (),
        initial_status: Optional[SwipeLimitStatus] = None,
        ranker: Optional[JobRanker] = None,
        coordinator: Optional[FetchCoordinator] = None,
        notifier: Notifier = log_notice,
        page_size: Optional[int] = None,
        replenish_threshold: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize a swipe session.

        Args:
            user_id: User doing the swiping
            profile: Candidate profile used to score the feed
            backend: Persistence/matching collaborator
            initial_jobs: Server-prefetched first batch for first paint
            initial_status: Server-prefetched quota for first paint
            ranker: Scoring/ranking strategy
            coordinator: Single-flight fetch guard shared across views
            notifier: Receives user-facing notices
            page_size: Postings per fetched page
            replenish_threshold: Remaining-card count that triggers a fetch
            clock: Reference time source for recency scoring
        """
        self.user_id = user_id
        self.backend = backend
        self.notifier = notifier

        if ranker is None:
            weights = (
                ScoringWeights.from_yaml(settings.profile_path)
                if settings.profile_path.exists()
                else ScoringWeights()
            )
            ranker = JobRanker(
                MatchScorer(
                    weights=weights,
                    reason_threshold=settings.reason_threshold,
                    recency_window_days=settings.recency_window_days,
                )
            )

        self.state = FeedSessionState(user_id=user_id)
        self.tracker = SwipeLimitTracker(initial_status)
        self.feed = FeedManager(
            backend,
            profile,
            self.state,
            ranker=ranker,
            coordinator=coordinator,
            page_size=page_size or settings.feed_page_size,
            replenish_threshold=(
                settings.replenish_threshold
                if replenish_threshold is None
                else replenish_threshold
            ),
            notifier=notifier,
            clock=clock,
        )
        self.rewind_cache = RewindCache(backend, user_id)
        self.queue = SwipeActionQueue(backend)

        initial_jobs = list(initial_jobs)
        if initial_jobs:
            self.feed.seed(initial_jobs)

    @classmethod
    async def create(
        cls,
        user_id: str,
        profile: CandidateProfile,
        backend: SwipeBackend,
        **kwargs,
    ) -> "SwipeSession":
        """Build a session, fetching the quota and first page when not supplied."""
        session = cls(user_id, profile, backend, **kwargs)

        if kwargs.get("initial_status") is None:
            try:
                session.tracker.reconcile(await backend.get_swipe_limit_status(user_id))
            except Exception as e:
                logger.error("Could not load swipe quota for %s: %s", user_id, e, exc_info=True)

        await session.feed.load_initial()
        return session

    # ------------------------------------------------------------------
    # Rendering state

    @property
    def swipe_status(self) -> SwipeLimitStatus:
        return self.tracker.status

    @property
    def visible_jobs(self) -> list[JobPosting]:
        return self.feed.visible_jobs

    @property
    def has_swiped_jobs(self) -> bool:
        """Whether the rewind control should be enabled."""
        return self.rewind_cache.has_swiped_jobs

    @property
    def is_exhausted(self) -> bool:
        return self.feed.is_exhausted and len(self.feed) == 0

    # ------------------------------------------------------------------
    # Gestures

    def on_swipe(self, job_id: str, action: Union[SwipeAction, str]) -> SwipeOutcome:
        """
        Handle a swipe gesture.

        The quota check happens before anything else: a rejected swipe
        never touches the queue or the quota. Must be called from inside a
        running event loop.

        Args:
            job_id: Card being swiped
            action: like, skip or superlike

        Returns:
            SwipeOutcome describing what happened
        """
        action = SwipeAction(action)

        if not self.tracker.can_swipe:
            safe_notify(
                self.notifier,
                Notice(
                    NoticeKind.SWIPE_LIMIT_REACHED,
                    "You've used all your swipes for today. Come back tomorrow!",
                    job_id,
                ),
            )
            return SwipeOutcome.LIMIT_REACHED

        entry = self.feed.get(job_id)
        if entry is None:
            logger.debug("Ignoring swipe on job %s not in the feed", job_id)
            return SwipeOutcome.NOT_FOUND

        command = SwipeCommand(
            SwipeQueueItem(job_id=job_id, action=action, job=entry.job),
            self.user_id,
            tracker=self.tracker,
            feed=self.feed,
            rewind_cache=self.rewind_cache,
            notifier=self.notifier,
        )
        command.apply()
        self.queue.enqueue(command)
        self.feed.maybe_replenish()
        return SwipeOutcome.QUEUED

    async def on_rewind(self) -> Optional[JobPosting]:
        """
        Undo the most recent swipe.

        Waits for queued swipes to settle first so the most recently issued
        gesture is the one undone.

        Returns:
            The job put back in the feed, or None if there was nothing to undo
            or the rewind failed.
        """
        await self.queue.join()

        try:
            entry = await self.rewind_cache.consume(self.feed)
        except Exception as e:
            logger.warning("Rewind failed for %s: %s", self.user_id, e)
            safe_notify(
                self.notifier,
                Notice(NoticeKind.REWIND_FAILED, "Couldn't undo your last swipe. Please try again."),
            )
            return None

        return entry.job if entry else None

    async def refresh(self, profile: Optional[CandidateProfile] = None) -> int:
        """Reload the feed from the first page, e.g. after a preference change."""
        return await self.feed.refresh(profile)

    async def close(self) -> None:
        """Let pending swipes finish and stop background fetches."""
        await self.queue.aclose()
        await self.feed.aclose()
