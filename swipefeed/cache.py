"""In-process cache for ranked feed pages."""
import logging
import time
from typing import Any, Callable, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

# 3 minutes balances freshness with backend load
DEFAULT_TTL_SECONDS = 180
DEFAULT_MAX_PAGES = 1024


def matched_jobs_cache_key(user_id: str, limit: int, offset: int) -> str:
    """Cache key for one page of a user's ranked feed."""
    return f"matched-jobs:{user_id}:{limit}:{offset}"


def matched_jobs_cache_prefix(user_id: str) -> str:
    return f"matched-jobs:{user_id}:"


class FeedPageCache:
    """Ranked feed pages that expire after a fixed TTL.

    Entries live in a ``cachetools.TTLCache``; this adds prefix invalidation
    so every cached page of one user can be dropped at once.

    Usage:
        cache = FeedPageCache(ttl=180)
        cache.set(matched_jobs_cache_key(user_id, 10, 0), jobs)
        cache.get(matched_jobs_cache_key(user_id, 10, 0))  # jobs, or None once expired
        cache.delete_prefix(matched_jobs_cache_prefix(user_id))
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        maxsize: int = DEFAULT_MAX_PAGES,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._pages: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        return self._pages.get(key)

    def set(self, key: str, value: Any) -> None:
        self._pages[key] = value

    def delete(self, key: str) -> None:
        self._pages.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``. Returns the number removed."""
        keys = [k for k in list(self._pages.keys()) if k.startswith(prefix)]
        for key in keys:
            self._pages.pop(key, None)
        if keys:
            logger.debug("Invalidated %d cache entries under %s", len(keys), prefix)
        return len(keys)

    def clear(self) -> None:
        self._pages.clear()

    def __len__(self) -> int:
        return len(self._pages)
