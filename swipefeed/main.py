"""Command-line entry point: show a user's ranked job feed.

Usage:
    swipefeed USER_ID [--profile PATH] [--api] [--limit N] [--log-level LEVEL]

Reads the local database unless --api is given, in which case the REST
API at SWIPEFEED_API_BASE_URL is used.
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional

from config.settings import settings
from swipefeed.backends import HttpSwipeBackend, SqlSwipeBackend, SwipeBackend
from swipefeed.engine.session import SwipeSession
from swipefeed.logging_config import setup_logging
from swipefeed.models import CandidateProfile
from swipefeed.persistence.database import init_db

logger = logging.getLogger(__name__)


def build_backend(use_api: bool) -> SwipeBackend:
    if use_api:
        logger.info("API: %s", settings.api_base_url)
        return HttpSwipeBackend()
    logger.info("Database: %s", settings.database_url)
    init_db()
    return SqlSwipeBackend()


async def show_feed(
    user_id: str,
    profile: CandidateProfile,
    backend: SwipeBackend,
    limit: int,
) -> int:
    """Log the first ``limit`` cards of the feed. Returns the number shown."""
    session = await SwipeSession.create(user_id, profile, backend)
    try:
        status = session.swipe_status
        if status.is_unlimited:
            logger.info("Swipes: unlimited")
        else:
            logger.info("Swipes: %d of %d left today", status.remaining_swipes, status.daily_limit)

        entries = session.feed.entries[:limit]
        for rank, entry in enumerate(entries, start=1):
            logger.info(
                "%2d. [%5.1f] %s (%s)",
                rank, entry.score, entry.job.title, entry.job.location or "anywhere",
            )
            for reason in entry.reasons:
                logger.info("      - %s", reason)

        if not entries:
            logger.info("No jobs match your preferences right now.")
        return len(entries)
    finally:
        await session.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Show a user's ranked job feed")
    parser.add_argument("user_id", help="User whose feed to show")
    parser.add_argument(
        "--profile",
        default=str(settings.profile_path),
        help="Candidate profile YAML (default: config/profile.yaml)",
    )
    parser.add_argument("--api", action="store_true", help="Use the REST API instead of the database")
    parser.add_argument("--limit", type=int, default=settings.feed_page_size, help="Cards to show")
    parser.add_argument("--log-level", default=None, help="Override SWIPEFEED_LOG_LEVEL")
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level)

    try:
        profile = CandidateProfile.from_yaml(args.profile)
        backend = build_backend(args.api)
        asyncio.run(show_feed(args.user_id, profile, backend, args.limit))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        return 1
    except Exception as e:
        logger.error("Error: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
