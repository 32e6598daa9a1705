"""Ordered, single-flight processing of swipe decisions."""
import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Optional

from swipefeed.backends.base import SwipeBackend
from swipefeed.engine.feed import FeedManager
from swipefeed.engine.limit_tracker import SwipeLimitTracker
from swipefeed.engine.notices import Notice, NoticeKind, Notifier, log_notice, safe_notify
from swipefeed.engine.rewind_cache import RewindCache
from swipefeed.models import SubmitResult, SwipeLimitStatus, SwipeQueueItem

logger = logging.getLogger(__name__)

# Error code the persistence layer returns when the user is out of swipes
SWIPE_LIMIT_ERROR = "SWIPE_LIMIT"


class CommandState(str, Enum):
    ENQUEUED = "enqueued"
    SUBMITTING = "submitting"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class SwipeCommand:
    """One swipe: optimistic local change, remote submit, then commit or rollback.

    Lifecycle: ``apply()`` -> ``submit()`` -> ``commit()`` | ``rollback()``.
    Both ``commit`` and ``rollback`` are terminal.
    """

    def __init__(
        self,
        item: SwipeQueueItem,
        user_id: str,
        *,
        tracker: SwipeLimitTracker,
        feed: FeedManager,
        rewind_cache: RewindCache,
        notifier: Notifier = log_notice,
    ):
        self.item = item
        self.user_id = user_id
        self.tracker = tracker
        self.feed = feed
        self.rewind_cache = rewind_cache
        self.notifier = notifier
        self.state = CommandState.ENQUEUED
        self.result: Optional[SubmitResult] = None

    @property
    def job_id(self) -> str:
        return self.item.job_id

    def apply(self) -> None:
        """Optimistic local change: the card leaves the feed and one swipe is spent."""
        self.feed.remove(self.item.job_id)
        self.tracker.decrement_optimistic()

    async def submit(self, backend: SwipeBackend) -> SubmitResult:
        self.state = CommandState.SUBMITTING
        self.result = await backend.submit_swipe_action(
            self.user_id, self.item.job_id, self.item.action
        )
        return self.result

    def commit(self, result: SubmitResult) -> None:
        """Adopt the server's quota and make this swipe the rewind target."""
        self.state = CommandState.COMMITTED
        if result.swipe_status is not None:
            self.tracker.reconcile(result.swipe_status)
        if result.interaction_id:
            self.rewind_cache.record(self.item.job, result.interaction_id)
        logger.debug("Committed %s on job %s", self.item.action.value, self.item.job_id)

    def rollback(
        self,
        error: Optional[str] = None,
        swipe_status: Optional[SwipeLimitStatus] = None,
    ) -> None:
        """Undo the optimistic change and tell the user."""
        self.state = CommandState.ROLLED_BACK
        self.tracker.restore_one()
        if error == SWIPE_LIMIT_ERROR and swipe_status is not None:
            self.tracker.reconcile(swipe_status)
        self.feed.reinsert(self.item.job)

        title = self.item.job.title or "this job"
        if error == SWIPE_LIMIT_ERROR:
            message = "You're out of swipes for today."
        else:
            message = f"Couldn't save your swipe on {title}. It's back in your feed."
        safe_notify(self.notifier, Notice(NoticeKind.SWIPE_FAILED, message, self.item.job_id))


class SwipeActionQueue:
    """FIFO of swipe commands with exactly one submission in flight.

    A failed item is rolled back and dropped; it never blocks the items
    behind it.
    """

    def __init__(self, backend: SwipeBackend):
        self.backend = backend
        self._pending: deque[SwipeCommand] = deque()
        self._processing = False
        self._driver: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def pending(self) -> list[SwipeQueueItem]:
        return [command.item for command in self._pending]

    @property
    def is_processing(self) -> bool:
        return self._processing

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, command: SwipeCommand) -> None:
        """Append a command and make sure the driver is running.

        Must be called from inside a running event loop.
        """
        command.state = CommandState.ENQUEUED
        self._pending.append(command)
        self._kick()

    async def join(self) -> None:
        """Wait until every queued command has been committed or rolled back."""
        while self._processing:
            await self._idle.wait()

    async def aclose(self) -> None:
        """Drain outstanding submissions."""
        await self.join()

    def _kick(self) -> None:
        if self._processing:
            return
        self._processing = True
        self._idle.clear()
        self._driver = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._pending:
                command = self._pending[0]
                await self._process(command)
                self._pending.popleft()
        except asyncio.CancelledError:
            self._processing = False
            self._idle.set()
            raise

        self._processing = False
        if self._pending:
            # Enqueued while this loop was finishing
            self._kick()
        else:
            self._idle.set()

    async def _process(self, command: SwipeCommand) -> None:
        try:
            result = await command.submit(self.backend)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Swipe submission for job %s failed: %s", command.job_id, e)
            self._finish(command.rollback)
            return

        if result.success:
            self._finish(command.commit, result)
        else:
            logger.warning("Swipe on job %s rejected: %s", command.job_id, result.error)
            self._finish(command.rollback, result.error, result.swipe_status)

    def _finish(self, step, *args) -> None:
        try:
            step(*args)
        except Exception as e:
            logger.error("Swipe %s handler failed: %s", step.__name__, e, exc_info=True)
