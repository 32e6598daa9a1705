"""Ranked, paginated feed of job cards with background replenishment."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from swipefeed.backends.base import SwipeBackend
from swipefeed.engine.notices import Notice, NoticeKind, Notifier, log_notice, safe_notify
from swipefeed.matching.scorer import JobRanker, ScoredJob
from swipefeed.models import CandidateProfile, JobPosting, utcnow

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
DEFAULT_REPLENISH_THRESHOLD = 3


class FetchCoordinator:
    """Single-flight guard for feed fetches.

    One instance is shared by every feed view that may be mounted at the
    same time, so at most one replenishment per user is in flight. A view
    that must load now waits for the holder to finish instead of giving up.

    Usage:
        coordinator = FetchCoordinator.shared()
        token = coordinator.try_acquire(user_id)
        if token is not None:
            try:
                ...
            finally:
                coordinator.release(user_id, token)
    """

    _shared: Optional["FetchCoordinator"] = None

    def __init__(self):
        self._in_progress: dict[str, asyncio.Event] = {}

    @classmethod
    def shared(cls) -> "FetchCoordinator":
        """Process-wide instance used when none is injected."""
        if cls._shared is None:
            cls._shared = cls()
        return cls._shared

    def in_progress(self, key: str) -> bool:
        return key in self._in_progress

    def try_acquire(self, key: str) -> Optional[asyncio.Event]:
        """Claim the fetch slot for ``key``. Returns the slot token, or None if taken."""
        if key in self._in_progress:
            return None
        token = self._in_progress[key] = asyncio.Event()
        return token

    async def acquire(self, key: str) -> asyncio.Event:
        """Claim the fetch slot for ``key``, waiting out any fetch holding it."""
        while True:
            token = self.try_acquire(key)
            if token is not None:
                return token
            await self._in_progress[key].wait()

    def release(self, key: str, token: Optional[asyncio.Event] = None) -> None:
        """Free the slot for ``key``. With a token, only if that token still holds it."""
        if token is not None and self._in_progress.get(key) is not token:
            return
        done = self._in_progress.pop(key, None)
        if done is not None:
            done.set()


@dataclass
class FeedSessionState:
    """Bookkeeping that lives exactly as long as one swipe session."""

    user_id: str
    offset: int = 0
    exhausted: bool = False
    initial_load_done: bool = False
    # Bumped by refresh; pages fetched under an older value are discarded
    generation: int = 0
    swiped_job_ids: set[str] = field(default_factory=set)
    started_at: datetime = field(default_factory=utcnow)


class FeedManager:
    """Owns the feed buffer: the ordered cards not yet swiped.

    Fetched pages are scored, deduplicated against the buffer and against
    jobs already swiped this session, ranked, and appended. Cards leave the
    buffer optimistically on swipe and come back at the head on rollback or
    rewind.
    """

    def __init__(
        self,
        backend: SwipeBackend,
        profile: CandidateProfile,
        state: FeedSessionState,
        *,
        ranker: Optional[JobRanker] = None,
        coordinator: Optional[FetchCoordinator] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        replenish_threshold: int = DEFAULT_REPLENISH_THRESHOLD,
        notifier: Notifier = log_notice,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize feed manager.

        Args:
            backend: Collaborator providing matched job pages
            profile: Candidate profile used for scoring
            state: Session bookkeeping (offset, swiped ids, exhaustion)
            ranker: Scores and orders postings (defaults to JobRanker())
            coordinator: Shared single-flight fetch guard
            page_size: Postings requested per page
            replenish_threshold: Fetch more when this many cards or fewer remain
            notifier: Receives the exhausted-feed notice
            clock: Reference time source for recency scoring
        """
        self.backend = backend
        self.profile = profile
        self.state = state
        self.ranker = ranker or JobRanker()
        self.coordinator = coordinator or FetchCoordinator.shared()
        self.page_size = page_size
        self.replenish_threshold = replenish_threshold
        self.notifier = notifier
        self.clock = clock
        self._buffer: list[ScoredJob] = []
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read access

    @property
    def entries(self) -> list[ScoredJob]:
        return list(self._buffer)

    @property
    def visible_jobs(self) -> list[JobPosting]:
        return [entry.job for entry in self._buffer]

    @property
    def is_exhausted(self) -> bool:
        return self.state.exhausted

    @property
    def is_fetching(self) -> bool:
        return self.coordinator.in_progress(self.state.user_id)

    def __len__(self) -> int:
        return len(self._buffer)

    def __contains__(self, job_id: str) -> bool:
        return any(entry.job.id == job_id for entry in self._buffer)

    def get(self, job_id: str) -> Optional[ScoredJob]:
        for entry in self._buffer:
            if entry.job.id == job_id:
                return entry
        return None

    # ------------------------------------------------------------------
    # Buffer mutation

    def seed(self, jobs: Iterable[Union[JobPosting, ScoredJob]]) -> int:
        """Load a server-prefetched first batch. Returns the number of cards added."""
        jobs = list(jobs)
        postings = [j.job if isinstance(j, ScoredJob) else j for j in jobs]
        added = self._append(postings)
        self.state.offset += len(postings)
        self.state.initial_load_done = True
        logger.debug("Seeded feed for %s with %d cards", self.state.user_id, added)
        return added

    def remove(self, job_id: str) -> Optional[ScoredJob]:
        """Take a card out of the buffer and remember it as swiped."""
        for index, entry in enumerate(self._buffer):
            if entry.job.id == job_id:
                del self._buffer[index]
                self.state.swiped_job_ids.add(job_id)
                return entry
        return None

    def reinsert(self, job: JobPosting) -> bool:
        """Put a job back at the head of the buffer unless it is already there."""
        self.state.swiped_job_ids.discard(job.id)
        if job.id in self:
            return False
        self._buffer.insert(0, self.ranker.score_job(self.profile, job, self.clock()))
        return True

    def _append(self, jobs: Iterable[JobPosting]) -> int:
        present = {entry.job.id for entry in self._buffer}
        fresh: list[JobPosting] = []
        for job in jobs:
            if job.id in present or job.id in self.state.swiped_job_ids:
                continue
            present.add(job.id)
            fresh.append(job)

        ranked = self.ranker.score_jobs(self.profile, fresh, self.clock())
        self._buffer.extend(ranked)
        return len(ranked)

    # ------------------------------------------------------------------
    # Fetching

    def needs_replenish(self) -> bool:
        return not self.state.exhausted and len(self._buffer) <= self.replenish_threshold

    def maybe_replenish(self) -> Optional[asyncio.Task]:
        """Start a background fetch if the buffer is low and no fetch is in flight.

        Must be called from inside a running event loop. Returns the task,
        or None when nothing was started.
        """
        if not self.needs_replenish():
            return None
        token = self.coordinator.try_acquire(self.state.user_id)
        if token is None:
            logger.debug("Replenishment already in flight for %s", self.state.user_id)
            return None

        task = asyncio.get_running_loop().create_task(self._run_locked(token))
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._task_done(done, token))
        return task

    async def replenish(self) -> int:
        """Fetch the next page now, waiting for any fetch already in flight for this user."""
        token = await self.coordinator.acquire(self.state.user_id)
        return await self._run_locked(token)

    async def load_initial(self) -> int:
        """Fetch the first page unless the feed was already seeded or loaded."""
        token = await self.coordinator.acquire(self.state.user_id)
        if self.state.initial_load_done:
            self.coordinator.release(self.state.user_id, token)
            return 0
        return await self._run_locked(token)

    async def refresh(self, profile: Optional[CandidateProfile] = None) -> int:
        """Start over from the first page, e.g. after a preference change.

        Pages still in flight from before the refresh are cancelled, and any
        that land anyway are dropped.
        """
        if profile is not None:
            self.profile = profile
        self.state.generation += 1
        await self.aclose()
        self._buffer.clear()
        self.state.offset = 0
        self.state.exhausted = False
        return await self.replenish()

    async def _run_locked(self, token: asyncio.Event) -> int:
        try:
            return await self._fetch_next_page()
        finally:
            self.coordinator.release(self.state.user_id, token)

    def _task_done(self, task: asyncio.Task, token: asyncio.Event) -> None:
        self._tasks.discard(task)
        # A task cancelled before it started never reached its finally block
        self.coordinator.release(self.state.user_id, token)

    async def _fetch_next_page(self) -> int:
        offset = self.state.offset
        generation = self.state.generation
        try:
            jobs = await self.backend.fetch_matched_jobs(
                self.state.user_id, self.page_size, offset
            )
        except Exception as e:
            logger.warning(
                "Feed replenishment failed for %s at offset %d: %s",
                self.state.user_id, offset, e,
            )
            return 0

        if generation != self.state.generation:
            logger.debug("Dropping stale page at offset %d for %s", offset, self.state.user_id)
            return 0

        self.state.initial_load_done = True
        self.state.offset = max(self.state.offset, offset + len(jobs))
        added = self._append(jobs)
        logger.debug(
            "Fetched %d postings at offset %d for %s, %d new",
            len(jobs), offset, self.state.user_id, added,
        )

        if added == 0:
            self.state.exhausted = True
            logger.info("Feed exhausted for %s", self.state.user_id)
            if not self._buffer:
                safe_notify(
                    self.notifier,
                    Notice(NoticeKind.FEED_EXHAUSTED, "No more jobs match your preferences right now."),
                )
        return added

    async def wait_idle(self) -> None:
        """Wait for background fetches started by this feed to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel background fetches still running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

