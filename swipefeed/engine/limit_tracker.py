"""Client-side view of the daily swipe quota."""
import logging
from typing import Callable, Optional

from swipefeed.models import SwipeLimitStatus

logger = logging.getLogger(__name__)

# Shown until the authoritative status has been read
DEFAULT_STATUS = SwipeLimitStatus(remaining_swipes=0, daily_limit=10, can_swipe=False)


class SwipeLimitTracker:
    """Tracks remaining swipes with optimistic decrement and rollback.

    ``decrement_optimistic`` and ``restore_one`` only touch the local
    counters and are no-ops for unlimited users. ``reconcile`` replaces the
    status wholesale with the value read from the server.

    Usage:
        tracker = SwipeLimitTracker(status)
        if tracker.can_swipe:
            tracker.decrement_optimistic()
    """

    def __init__(self, status: Optional[SwipeLimitStatus] = None):
        self._status = status or DEFAULT_STATUS
        self._listeners: list[Callable[[SwipeLimitStatus], None]] = []

    @property
    def status(self) -> SwipeLimitStatus:
        return self._status

    @property
    def can_swipe(self) -> bool:
        return self._status.can_swipe

    def subscribe(self, listener: Callable[[SwipeLimitStatus], None]) -> None:
        """Call ``listener`` with the new status after every change."""
        self._listeners.append(listener)

    def decrement_optimistic(self) -> SwipeLimitStatus:
        """Spend one swipe locally, never going below zero."""
        if self._status.is_unlimited:
            return self._status
        remaining = max(0, self._status.remaining_swipes - 1)
        return self._set(SwipeLimitStatus.build(remaining, self._status.daily_limit))

    def restore_one(self) -> SwipeLimitStatus:
        """Give back one swipe, never exceeding the daily limit."""
        if self._status.is_unlimited:
            return self._status
        remaining = min(self._status.daily_limit, self._status.remaining_swipes + 1)
        return self._set(SwipeLimitStatus.build(remaining, self._status.daily_limit))

    def reconcile(self, status: SwipeLimitStatus) -> SwipeLimitStatus:
        """Adopt the authoritative status."""
        if status != self._status:
            logger.debug(
                "Reconciled swipe quota %d -> %d",
                self._status.remaining_swipes,
                status.remaining_swipes,
            )
        return self._set(status)

    def _set(self, status: SwipeLimitStatus) -> SwipeLimitStatus:
        self._status = status
        for listener in self._listeners:
            listener(status)
        return status
