"""Pytest fixtures for swipefeed tests."""
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from swipefeed.backends.base import SwipeBackend
from swipefeed.engine.feed import FetchCoordinator
from swipefeed.exceptions import BackendError
from swipefeed.matching.match_scorer import MatchScorer
from swipefeed.matching.scorer import JobRanker
from swipefeed.models import (
    CandidateProfile,
    Coordinates,
    JobPosting,
    SalaryExpectation,
    SubmitResult,
    SwipeAction,
    SwipeLimitStatus,
)
from swipefeed.persistence.models import Base

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Fresh in-memory database shared across threads for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def test_db(session_factory):
    """Create a session on the in-memory database."""
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================


@pytest.fixture
def sample_profile():
    """A housekeeper in Quezon City."""
    return CandidateProfile(
        skills={"cooking", "cleaning"},
        location="Quezon City",
        coordinates=Coordinates(lat=14.676, lng=121.0437),
        desired_jobs=["Housekeeper"],
        desired_job_types=["full-time"],
        desired_locations=["Quezon City"],
        preferred_radius_km=15,
        salary=SalaryExpectation(min_amount=12000, max_amount=18000),
        experience_years=3,
        availability={"monday", "tuesday", "wednesday"},
        languages=["Filipino", "English"],
        ratings=[4.5, 5],
    )


def make_job(job_id: str, **overrides) -> JobPosting:
    """Build a posting with sensible defaults."""
    data = dict(
        id=job_id,
        title="Housekeeper",
        location="Quezon City",
        salary_min=13000,
        salary_max=16000,
        required_skills={"cooking", "cleaning"},
        required_years_experience=2,
        job_type="full-time",
        work_schedule={"monday", "tuesday"},
        preferred_languages=["Filipino"],
        posted_at=NOW - timedelta(days=1),
    )
    data.update(overrides)
    return JobPosting(**data)


@pytest.fixture
def sample_jobs():
    """Twelve postings in descending score order for the sample profile."""
    return [make_job(f"job-{i:02d}", posted_at=NOW - timedelta(days=i)) for i in range(12)]


@pytest.fixture
def ranker():
    return JobRanker(MatchScorer())


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def coordinator():
    return FetchCoordinator()


@pytest.fixture(autouse=True)
def reset_shared_coordinator():
    """Keep the process-wide fetch guard from leaking between tests."""
    FetchCoordinator._shared = None
    yield
    FetchCoordinator._shared = None


@pytest.fixture
def notices():
    """Collects notices; pass ``notices.append`` as the notifier."""
    return []


# =============================================================================
# FAKE BACKEND
# =============================================================================


class FakeBackend(SwipeBackend):
    """In-memory backend that records every call.

    Failure knobs:
        fail_jobs: job ids whose submission raises BackendError
        reject: job id -> SubmitResult returned instead of success
        fetch_error / rewind_error / invalidate_error: raised when set
        fetch_gate / submit_gate: asyncio.Event the call waits on
    """

    name = "fake"

    def __init__(self, jobs=None, status: Optional[SwipeLimitStatus] = None):
        self.jobs = list(jobs or [])
        self.status = status or SwipeLimitStatus.build(10, 10)
        self.fetch_calls: list[tuple[str, int, int]] = []
        self.submitted: list[tuple[str, SwipeAction]] = []
        self.rewound: list[str] = []
        self.invalidated: list[str] = []
        self.fail_jobs: set[str] = set()
        self.reject: dict[str, SubmitResult] = {}
        self.fetch_error: Optional[Exception] = None
        self.rewind_error: Optional[Exception] = None
        self.invalidate_error: Optional[Exception] = None
        self.fetch_gate: Optional[asyncio.Event] = None
        self.submit_gate: Optional[asyncio.Event] = None
        self._next_interaction = 0

    async def fetch_matched_jobs(self, user_id, limit, offset):
        self.fetch_calls.append((user_id, limit, offset))
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.jobs[offset:offset + limit])

    async def get_swipe_limit_status(self, user_id):
        return self.status

    async def submit_swipe_action(self, user_id, job_id, action):
        self.submitted.append((job_id, SwipeAction(action)))
        if self.submit_gate is not None:
            await self.submit_gate.wait()
        if job_id in self.fail_jobs:
            raise BackendError("submit_swipe_action", "connection reset")
        if job_id in self.reject:
            return self.reject[job_id]

        if not self.status.is_unlimited:
            self.status = SwipeLimitStatus.build(
                self.status.remaining_swipes - 1, self.status.daily_limit
            )
        self._next_interaction += 1
        return SubmitResult(
            success=True,
            swipe_status=self.status,
            interaction_id=f"int-{self._next_interaction}",
        )

    async def rewind_interaction(self, interaction_id):
        if self.rewind_error is not None:
            raise self.rewind_error
        self.rewound.append(interaction_id)

    async def invalidate_ranked_feed_cache(self, user_id):
        if self.invalidate_error is not None:
            raise self.invalidate_error
        self.invalidated.append(user_id)


@pytest.fixture
def fake_backend(sample_jobs):
    return FakeBackend(jobs=sample_jobs)


# =============================================================================
# HTTP HELPERS
# =============================================================================


class AsyncContext:
    """Async context manager wrapping a mock response (or raising on enter)."""

    def __init__(self, resp=None, error: Optional[BaseException] = None):
        self.resp = resp
        self.error = error

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self.resp

    async def __aexit__(self, *args):
        pass
