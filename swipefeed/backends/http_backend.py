"""Swipe backend over a JSON REST API."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp

from config.settings import settings
from swipefeed.backends.base import SwipeBackend
from swipefeed.backends.http_utils import http_delete_json, http_get_json, http_post_json
from swipefeed.exceptions import BackendError, RewindUnavailableError
from swipefeed.models import JobPosting, SubmitResult, SwipeAction, SwipeLimitStatus

logger = logging.getLogger(__name__)


def _pick(data: dict, *keys, default=None):
    """First present key, accepting both snake_case and camelCase payloads."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


class HttpSwipeBackend(SwipeBackend):
    """Talks to the matching/persistence service over HTTP.

    Endpoints (relative to ``base_url``):
        GET    /users/{user}/matched-jobs?limit=&offset=
        GET    /users/{user}/swipe-status
        POST   /users/{user}/swipes              {"job_id", "action"}
        POST   /interactions/{id}/rewind
        DELETE /users/{user}/matched-jobs/cache
    """

    name = "http"

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        retries: int = 3,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize HTTP backend.

        Args:
            base_url: API root (defaults to settings.api_base_url)
            timeout: Per-request timeout in seconds
            retries: Attempts per request on transient failures
            session: Shared aiohttp session; one is opened per call if omitted
        """
        base_url = base_url or settings.api_base_url
        if not base_url:
            raise ValueError("HttpSwipeBackend needs a base_url (or SWIPEFEED_API_BASE_URL)")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self.retries = retries
        self._session = session

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            yield session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    async def fetch_matched_jobs(
        self, user_id: str, limit: int, offset: int
    ) -> list[JobPosting]:
        async with self._client() as session:
            payload = await http_get_json(
                session,
                self._url(f"/users/{user_id}/matched-jobs"),
                params={"limit": limit, "offset": offset},
                retries=self.retries,
            )
        if payload is None:
            raise BackendError("fetch_matched_jobs", f"no response for {user_id}")

        rows = payload.get("jobs", []) if isinstance(payload, dict) else payload
        jobs = []
        for row in rows:
            if not row.get("id") and not row.get("_id"):
                logger.debug("Skipping matched job without an id: %s", row)
                continue
            jobs.append(JobPosting.from_dict(row))
        return jobs

    async def get_swipe_limit_status(self, user_id: str) -> SwipeLimitStatus:
        async with self._client() as session:
            payload = await http_get_json(
                session, self._url(f"/users/{user_id}/swipe-status"), retries=self.retries
            )
        if not isinstance(payload, dict):
            raise BackendError("get_swipe_limit_status", f"no response for {user_id}")
        return SwipeLimitStatus.from_dict(payload)

    async def submit_swipe_action(
        self, user_id: str, job_id: str, action: SwipeAction
    ) -> SubmitResult:
        action = SwipeAction(action)
        async with self._client() as session:
            payload = await http_post_json(
                session,
                self._url(f"/users/{user_id}/swipes"),
                json={"job_id": job_id, "action": action.value},
                retries=self.retries,
            )
        if not isinstance(payload, dict):
            raise BackendError("submit_swipe_action", f"no response for job {job_id}")

        status = _pick(payload, "swipe_status", "swipeStatus")
        return SubmitResult(
            success=bool(payload.get("success", False)),
            swipe_status=SwipeLimitStatus.from_dict(status) if status else None,
            interaction_id=_pick(payload, "interaction_id", "interactionId"),
            error=payload.get("error"),
        )

    async def rewind_interaction(self, interaction_id: str) -> None:
        async with self._client() as session:
            payload = await http_post_json(
                session,
                self._url(f"/interactions/{interaction_id}/rewind"),
                retries=self.retries,
            )
        if payload is None:
            raise BackendError("rewind_interaction", f"no response for {interaction_id}")
        if isinstance(payload, dict) and payload.get("success") is False:
            raise RewindUnavailableError(interaction_id)

    async def invalidate_ranked_feed_cache(self, user_id: str) -> None:
        async with self._client() as session:
            payload = await http_delete_json(
                session, self._url(f"/users/{user_id}/matched-jobs/cache"), retries=self.retries
            )
        if payload is None:
            logger.warning("Could not invalidate ranked feed cache for %s", user_id)
