"""Swipe-session engine: feed, quota, action queue and rewind."""
from .feed import FeedManager, FeedSessionState, FetchCoordinator
from .limit_tracker import SwipeLimitTracker
from .notices import Notice, NoticeKind
from .queue import CommandState, SwipeActionQueue, SwipeCommand
from .rewind_cache import RewindCache
from .session import SwipeOutcome, SwipeSession

__all__ = [
    "CommandState",
    "FeedManager",
    "FeedSessionState",
    "FetchCoordinator",
    "Notice",
    "NoticeKind",
    "RewindCache",
    "SwipeActionQueue",
    "SwipeCommand",
    "SwipeLimitTracker",
    "SwipeOutcome",
    "SwipeSession",
]
