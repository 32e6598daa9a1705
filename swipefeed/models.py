"""Core data structures shared by the scorer, the feed and the swipe queue."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from dateutil import parser as dateutil_parser

from config.settings import settings

# Remaining-swipes value at or above which a user is never rate limited.
UNLIMITED_SWIPES = settings.unlimited_swipe_sentinel


def utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO string, epoch milliseconds or datetime into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return ensure_aware(dateutil_parser.isoparse(str(value)))


def _normalize_set(values) -> frozenset[str]:
    if not values:
        return frozenset()
    return frozenset(str(v).strip().lower() for v in values if str(v).strip())


def _normalize_tuple(values) -> tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    return tuple(str(v).strip() for v in values if str(v).strip())


class SwipeAction(str, Enum):
    """A user's decision on one card."""

    LIKE = "like"
    SKIP = "skip"
    SUPERLIKE = "superlike"


class JobStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    @classmethod
    def from_value(cls, value: Any) -> Optional["Coordinates"]:
        """Build from a mapping with lat/lng (or y/x) keys; None if unusable."""
        if value is None:
            return None
        if isinstance(value, Coordinates):
            return value
        if isinstance(value, dict):
            lat = value.get("lat", value.get("y"))
            lng = value.get("lng", value.get("x"))
            if lat is None or lng is None:
                return None
            return cls(lat=float(lat), lng=float(lng))
        return None


@dataclass(frozen=True)
class SalaryExpectation:
    """What a candidate expects to be paid, per ``salary_type`` period."""

    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    salary_type: str = "monthly"


@dataclass(frozen=True)
class CandidateProfile:
    """Immutable snapshot of a worker profile, supplied per scoring call."""

    skills: frozenset[str] = frozenset()
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    desired_jobs: tuple[str, ...] = ()
    desired_job_types: tuple[str, ...] = ()
    desired_locations: tuple[str, ...] = ()
    preferred_radius_km: float = 10.0
    salary: Optional[SalaryExpectation] = None
    experience_years: Optional[float] = None
    availability: frozenset[str] = frozenset()
    languages: tuple[str, ...] = ()
    ratings: tuple[float, ...] = ()

    def __post_init__(self):
        # Accept plain lists/sets from callers but store immutable, normalized values
        object.__setattr__(self, "skills", _normalize_set(self.skills))
        object.__setattr__(self, "availability", _normalize_set(self.availability))
        object.__setattr__(self, "desired_jobs", _normalize_tuple(self.desired_jobs))
        object.__setattr__(self, "desired_job_types", _normalize_tuple(self.desired_job_types))
        object.__setattr__(self, "desired_locations", _normalize_tuple(self.desired_locations))
        object.__setattr__(self, "languages", _normalize_tuple(self.languages))
        object.__setattr__(self, "ratings", tuple(self.ratings or ()))

    @classmethod
    def from_dict(cls, data: dict) -> "CandidateProfile":
        """Build a profile from a loosely-typed mapping (YAML or API payload)."""
        salary_data = data.get("salary") or {}
        salary = None
        if salary_data:
            salary = SalaryExpectation(
                min_amount=salary_data.get("min"),
                max_amount=salary_data.get("max"),
                salary_type=salary_data.get("type", "monthly"),
            )
        return cls(
            skills=data.get("skills") or (),
            location=data.get("location"),
            coordinates=Coordinates.from_value(data.get("coordinates")),
            desired_jobs=data.get("desired_jobs") or (),
            desired_job_types=data.get("desired_job_types") or (),
            desired_locations=data.get("desired_locations") or (),
            preferred_radius_km=float(data.get("preferred_radius_km", 10.0)),
            salary=salary,
            experience_years=data.get("experience_years"),
            availability=data.get("availability") or (),
            languages=data.get("languages") or (),
            ratings=tuple(data.get("ratings") or ()),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CandidateProfile":
        """Load a profile from a YAML file with a top-level ``profile`` key (or flat)."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data.get("profile", data))


@dataclass
class JobPosting:
    """A job posting as returned by the matching collaborator."""

    id: str
    title: str = ""
    description: str = ""
    location: str = ""
    coordinates: Optional[Coordinates] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_type: str = "monthly"
    required_skills: frozenset[str] = frozenset()
    required_years_experience: Optional[float] = None
    job_type: Optional[str] = None
    work_schedule: frozenset[str] = frozenset()
    preferred_languages: tuple[str, ...] = ()
    is_boosted: bool = False
    boost_expires_at: Optional[datetime] = None
    posted_at: Optional[datetime] = None
    status: JobStatus = JobStatus.ACTIVE

    def __post_init__(self):
        """Normalize fields after initialization."""
        self.id = str(self.id)
        self.title = self.title or ""
        self.description = self.description or ""
        self.location = self.location or ""
        self.required_skills = _normalize_set(self.required_skills)
        self.work_schedule = _normalize_set(self.work_schedule)
        self.preferred_languages = _normalize_tuple(self.preferred_languages)
        if not isinstance(self.status, JobStatus):
            self.status = JobStatus(str(self.status).lower())
        if self.posted_at is not None:
            self.posted_at = ensure_aware(self.posted_at)
        if self.boost_expires_at is not None:
            self.boost_expires_at = ensure_aware(self.boost_expires_at)

    @property
    def is_active(self) -> bool:
        return self.status == JobStatus.ACTIVE

    def boost_active(self, now: Optional[datetime] = None) -> bool:
        """True while a paid boost has not yet expired."""
        if not self.is_boosted or self.boost_expires_at is None:
            return False
        return self.boost_expires_at > (now or utcnow())

    @classmethod
    def from_dict(cls, data: dict) -> "JobPosting":
        """Build a posting from an API/database payload."""
        return cls(
            id=data.get("id") or data.get("_id"),
            title=data.get("title") or data.get("job_title") or "",
            description=data.get("description") or data.get("job_description") or "",
            location=data.get("location") or "",
            coordinates=Coordinates.from_value(
                data.get("coordinates") or data.get("location_coordinates")
            ),
            salary_min=data.get("salary_min"),
            salary_max=data.get("salary_max"),
            salary_type=data.get("salary_type") or "monthly",
            required_skills=data.get("required_skills") or (),
            required_years_experience=data.get("required_years_of_experience"),
            job_type=data.get("job_type"),
            work_schedule=data.get("work_schedule") or (),
            preferred_languages=data.get("preferred_languages") or (),
            is_boosted=bool(data.get("is_boosted", False)),
            boost_expires_at=parse_timestamp(data.get("boost_expires_at")),
            posted_at=parse_timestamp(data.get("posted_at") or data.get("created_at")),
            status=data.get("status") or JobStatus.ACTIVE,
        )


@dataclass(frozen=True)
class SwipeLimitStatus:
    """Remaining daily swipe quota as seen by the client."""

    remaining_swipes: int
    daily_limit: int
    can_swipe: bool

    @property
    def is_unlimited(self) -> bool:
        return self.remaining_swipes >= UNLIMITED_SWIPES

    @classmethod
    def build(cls, remaining_swipes: int, daily_limit: int) -> "SwipeLimitStatus":
        """Derive ``can_swipe`` from the counts."""
        if remaining_swipes >= UNLIMITED_SWIPES:
            return cls(UNLIMITED_SWIPES, UNLIMITED_SWIPES, True)
        remaining = max(0, remaining_swipes)
        return cls(remaining, daily_limit, remaining > 0)

    @classmethod
    def from_dict(cls, data: dict) -> "SwipeLimitStatus":
        return cls.build(
            int(data.get("remaining_swipes", data.get("remainingSwipes", 0))),
            int(data.get("daily_limit", data.get("dailyLimit", 0))),
        )


@dataclass(frozen=True)
class SwipeQueueItem:
    job_id: str
    action: SwipeAction
    job: JobPosting


@dataclass(frozen=True)
class RewindEntry:
    job: JobPosting
    interaction_id: str


@dataclass
class SubmitResult:
    """Outcome of persisting a single swipe."""

    success: bool
    swipe_status: Optional[SwipeLimitStatus] = None
    interaction_id: Optional[str] = None
    error: Optional[str] = None
    extra: dict = field(default_factory=dict)
