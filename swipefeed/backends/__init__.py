"""Collaborators the swipe engine reads from and writes to."""
from swipefeed.backends.base import SwipeBackend
from swipefeed.backends.http_backend import HttpSwipeBackend
from swipefeed.backends.sql_backend import SqlSwipeBackend

__all__ = ["SwipeBackend", "HttpSwipeBackend", "SqlSwipeBackend"]
