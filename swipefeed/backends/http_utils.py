"""JSON-over-HTTP helpers with retry on transient failures."""
import asyncio
import logging
import random
from typing import Callable

import aiohttp

logger = logging.getLogger(__name__)

OK_STATUSES = (200, 201, 204)


def _backoff(attempt: int) -> float:
    return (2 ** attempt) + random.uniform(0, 1)


async def _request_json(
    request: Callable,
    url: str,
    *,
    retries: int = 3,
    **kwargs,
) -> dict | list | None:
    """Issue a request via ``request`` (a bound session method) and parse JSON.

    Retries on 429 (rate limit), 5xx (server error), timeouts, and
    connection errors with exponential backoff + jitter.

    Returns None on non-retryable errors (400, 403, 404, etc.) or when
    every attempt failed. A 204 response yields an empty dict.
    """
    last_error = None
    for attempt in range(retries):
        try:
            async with request(url, **kwargs) as resp:
                if resp.status == 429 or resp.status >= 500:
                    wait = _backoff(attempt)
                    logger.warning(
                        "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                        resp.status, url, wait, attempt + 1, retries,
                    )
                    await asyncio.sleep(wait)
                    continue
                if resp.status not in OK_STATUSES:
                    logger.debug("HTTP %d from %s", resp.status, url)
                    return None
                if resp.status == 204:
                    return {}
                return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            last_error = e
            if attempt < retries - 1:
                wait = _backoff(attempt)
                logger.warning(
                    "Request to %s failed: %s, retrying in %.1fs (attempt %d/%d)",
                    url, e, wait, attempt + 1, retries,
                )
                await asyncio.sleep(wait)

    if last_error:
        logger.error("All %d retries failed for %s: %s", retries, url, last_error)
    return None


async def http_get_json(
    session: aiohttp.ClientSession, url: str, *, retries: int = 3, **kwargs
) -> dict | list | None:
    """GET request returning parsed JSON with retry on transient failures."""
    return await _request_json(session.get, url, retries=retries, **kwargs)


async def http_post_json(
    session: aiohttp.ClientSession, url: str, *, retries: int = 3, **kwargs
) -> dict | list | None:
    """POST request returning parsed JSON with retry on transient failures."""
    return await _request_json(session.post, url, retries=retries, **kwargs)


async def http_delete_json(
    session: aiohttp.ClientSession, url: str, *, retries: int = 3, **kwargs
) -> dict | list | None:
    """DELETE request with the same retry behavior."""
    return await _request_json(session.delete, url, retries=retries, **kwargs)
