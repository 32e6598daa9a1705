"""Abstract contract for the persistence and matching collaborators."""
from abc import ABC, abstractmethod

from swipefeed.models import JobPosting, SubmitResult, SwipeAction, SwipeLimitStatus


class SwipeBackend(ABC):
    """Everything the engine needs from the outside world.

    Implementations raise ``BackendError`` (or any exception) on transport
    failures; the engine absorbs those at its boundaries.
    """

    name: str = "base"

    @abstractmethod
    async def fetch_matched_jobs(
        self, user_id: str, limit: int, offset: int
    ) -> list[JobPosting]:
        """
        Fetch one page of candidate postings for a user.

        Args:
            user_id: User whose feed is being built
            limit: Page size
            offset: Number of postings already consumed

        Returns:
            List of JobPosting objects (possibly empty).
        """
        pass

    @abstractmethod
    async def get_swipe_limit_status(self, user_id: str) -> SwipeLimitStatus:
        """Authoritative quota read."""
        pass

    @abstractmethod
    async def submit_swipe_action(
        self, user_id: str, job_id: str, action: SwipeAction
    ) -> SubmitResult:
        """Persist a single swipe decision."""
        pass

    @abstractmethod
    async def rewind_interaction(self, interaction_id: str) -> None:
        """Invalidate a previously committed decision."""
        pass

    @abstractmethod
    async def invalidate_ranked_feed_cache(self, user_id: str) -> None:
        """Drop any cached ranked feed for the user. Best-effort."""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
