"""SQLAlchemy-backed swipe persistence and matched-job retrieval."""
import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy import and_, case, select
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from swipefeed.backends.base import SwipeBackend
from swipefeed.cache import FeedPageCache, matched_jobs_cache_key, matched_jobs_cache_prefix
from swipefeed.exceptions import BackendError, RewindUnavailableError
from swipefeed.models import (
    UNLIMITED_SWIPES,
    JobPosting,
    SubmitResult,
    SwipeAction,
    SwipeLimitStatus,
)
from swipefeed.persistence.database import SessionLocal, get_session
from swipefeed.persistence.models import JobInteraction, JobPost, User

logger = logging.getLogger(__name__)

# Interaction names stored for each swipe action
INTERACTION_ACTIONS = {
    SwipeAction.LIKE: "swipe_right",
    SwipeAction.SKIP: "swipe_left",
    SwipeAction.SUPERLIKE: "superlike",
}


def _naive_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class SqlSwipeBackend(SwipeBackend):
    """Swipe backend over the local database.

    Database work is synchronous SQLAlchemy run in a worker thread, so the
    session factory must hand out connections usable from any thread.
    """

    name = "sql"

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        cache: Optional[FeedPageCache] = None,
        today: Callable[[], date] = _utc_today,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Initialize SQL backend.

        Args:
            session_factory: SQLAlchemy sessionmaker (defaults to SessionLocal)
            cache: Matched-jobs cache (defaults to one using the configured TTL)
            today: Date source for the daily credit refill
            now: Time source for boost expiry and rewind timestamps
        """
        self.session_factory = session_factory or SessionLocal
        self.cache = cache or FeedPageCache(ttl=settings.matched_jobs_cache_ttl_seconds)
        self._today = today
        self._now = now

    # ------------------------------------------------------------------
    # Quota

    def _refill_if_new_day(self, user: User) -> None:
        if user.is_unlimited:
            return
        today = self._today()
        if user.credits_reset_on != today:
            user.swipe_credits = user.daily_swipe_limit
            user.credits_reset_on = today
            logger.debug("Refilled swipe credits for %s to %d", user.id, user.daily_swipe_limit)

    @staticmethod
    def _status_for(user: User) -> SwipeLimitStatus:
        return SwipeLimitStatus.build(user.swipe_credits or 0, user.daily_swipe_limit or 0)

    def _load_status(self, user_id: str) -> SwipeLimitStatus:
        with get_session(self.session_factory) as session:
            user = session.get(User, user_id)
            if user is None:
                raise BackendError("get_swipe_limit_status", f"unknown user {user_id}")
            self._refill_if_new_day(user)
            return self._status_for(user)

    async def get_swipe_limit_status(self, user_id: str) -> SwipeLimitStatus:
        return await asyncio.to_thread(self._load_status, user_id)

    # ------------------------------------------------------------------
    # Swipes

    def _active_interaction(
        self, session: Session, user_id: str, job_id: str
    ) -> Optional[JobInteraction]:
        return session.scalars(
            select(JobInteraction).where(
                JobInteraction.user_id == user_id,
                JobInteraction.job_post_id == job_id,
                JobInteraction.is_rewound.is_(False),
            )
        ).first()

    def _record_swipe(self, user_id: str, job_id: str, action: SwipeAction) -> SubmitResult:
        with get_session(self.session_factory) as session:
            user = session.get(User, user_id)
            if user is None:
                return SubmitResult(success=False, error="NOT_AUTHENTICATED")

            self._refill_if_new_day(user)

            if session.get(JobPost, job_id) is None:
                return SubmitResult(
                    success=False, swipe_status=self._status_for(user), error="JOB_NOT_FOUND"
                )

            if self._active_interaction(session, user_id, job_id) is not None:
                # Already decided; nothing new to record or rewind
                return SubmitResult(success=True, swipe_status=self._status_for(user))

            if not user.is_unlimited:
                if (user.swipe_credits or 0) <= 0:
                    return SubmitResult(
                        success=False, swipe_status=self._status_for(user), error="SWIPE_LIMIT"
                    )
                user.swipe_credits -= 1

            interaction = JobInteraction(
                user_id=user_id,
                job_post_id=job_id,
                action=INTERACTION_ACTIONS[action],
            )
            session.add(interaction)
            session.flush()

            return SubmitResult(
                success=True,
                swipe_status=self._status_for(user),
                interaction_id=interaction.id,
            )

    async def submit_swipe_action(
        self, user_id: str, job_id: str, action: SwipeAction
    ) -> SubmitResult:
        action = SwipeAction(action)
        try:
            result = await asyncio.to_thread(self._record_swipe, user_id, job_id, action)
        except Exception as e:
            raise BackendError("submit_swipe_action", str(e)) from e

        if result.success:
            self.cache.delete_prefix(matched_jobs_cache_prefix(user_id))
        return result

    def _mark_rewound(self, interaction_id: str) -> None:
        with get_session(self.session_factory) as session:
            interaction = session.get(JobInteraction, interaction_id)
            if interaction is None or interaction.is_rewound:
                raise RewindUnavailableError(interaction_id)
            interaction.is_rewound = True
            interaction.rewound_at = _naive_utc(self._now())
            logger.info(
                "Rewound %s on job %s for %s",
                interaction.action, interaction.job_post_id, interaction.user_id,
            )

    async def rewind_interaction(self, interaction_id: str) -> None:
        await asyncio.to_thread(self._mark_rewound, interaction_id)

    # ------------------------------------------------------------------
    # Matched jobs

    def _query_matched_jobs(self, user_id: str, limit: int, offset: int) -> list[JobPosting]:
        now = _naive_utc(self._now())
        swiped = select(JobInteraction.job_post_id).where(
            JobInteraction.user_id == user_id,
            JobInteraction.is_rewound.is_(False),
        )
        boost_active = case(
            (and_(JobPost.is_boosted.is_(True), JobPost.boost_expires_at > now), 1),
            else_=0,
        )
        stmt = (
            select(JobPost)
            .where(JobPost.status == "active", JobPost.id.not_in(swiped))
            .order_by(boost_active.desc(), JobPost.created_at.desc(), JobPost.id)
            .offset(offset)
            .limit(limit)
        )
        with get_session(self.session_factory) as session:
            return [row.to_posting() for row in session.scalars(stmt)]

    async def fetch_matched_jobs(
        self, user_id: str, limit: int, offset: int
    ) -> list[JobPosting]:
        key = matched_jobs_cache_key(user_id, limit, offset)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Matched jobs cache hit for %s", key)
            return list(cached)

        try:
            jobs = await asyncio.to_thread(self._query_matched_jobs, user_id, limit, offset)
        except Exception as e:
            raise BackendError("fetch_matched_jobs", str(e)) from e

        self.cache.set(key, jobs)
        return list(jobs)

    async def invalidate_ranked_feed_cache(self, user_id: str) -> None:
        self.cache.delete_prefix(matched_jobs_cache_prefix(user_id))

    # ------------------------------------------------------------------
    # Setup helpers

    def create_user(
        self,
        user_id: str,
        daily_swipe_limit: Optional[int] = None,
        unlimited: bool = False,
        email: Optional[str] = None,
    ) -> None:
        """Register a user with a full day of credits (synchronous)."""
        limit = settings.default_daily_swipe_limit if daily_swipe_limit is None else daily_swipe_limit
        with get_session(self.session_factory) as session:
            session.add(
                User(
                    id=user_id,
                    email=email,
                    swipe_credits=UNLIMITED_SWIPES if unlimited else limit,
                    daily_swipe_limit=limit,
                    credits_reset_on=self._today(),
                )
            )
