"""Single-slot undo for the most recent committed swipe."""
import logging
from typing import TYPE_CHECKING, Optional

from swipefeed.backends.base import SwipeBackend
from swipefeed.models import JobPosting, RewindEntry

if TYPE_CHECKING:
    from swipefeed.engine.feed import FeedManager

logger = logging.getLogger(__name__)


class RewindCache:
    """Holds at most one rewindable swipe for the current session.

    Recording overwrites the previous entry: rewind undoes the last swipe
    only, it is not a history stack. Nothing here survives a reload.
    """

    def __init__(self, backend: SwipeBackend, user_id: str):
        self._backend = backend
        self._user_id = user_id
        self._entry: Optional[RewindEntry] = None

    @property
    def entry(self) -> Optional[RewindEntry]:
        return self._entry

    @property
    def has_swiped_jobs(self) -> bool:
        return self._entry is not None

    def record(self, job: JobPosting, interaction_id: str) -> RewindEntry:
        self._entry = RewindEntry(job=job, interaction_id=interaction_id)
        return self._entry

    def clear(self) -> None:
        self._entry = None

    async def consume(self, feed: "FeedManager") -> Optional[RewindEntry]:
        """
        Undo the cached swipe.

        Invalidates the persisted interaction, puts the job back at the head
        of the feed, empties the cache and asks for the user's ranked feed
        cache to be dropped so the job can come back through normal scoring.

        Args:
            feed: Feed receiving the rewound job

        Returns:
            The consumed entry, or None when there is nothing to undo.

        Raises:
            Whatever the backend raised if the interaction could not be
            rewound. The cache is empty afterwards either way and the job
            stays swiped.
        """
        entry = self._entry
        if entry is None:
            return None

        self._entry = None
        await self._backend.rewind_interaction(entry.interaction_id)

        feed.reinsert(entry.job)

        try:
            await self._backend.invalidate_ranked_feed_cache(self._user_id)
        except Exception as e:
            logger.warning("Feed cache invalidation failed after rewind: %s", e)

        logger.info("Rewound job %s (interaction %s)", entry.job.id, entry.interaction_id)
        return entry
