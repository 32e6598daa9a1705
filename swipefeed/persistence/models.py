"""SQLAlchemy models for swipefeed."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from swipefeed.models import Coordinates, JobPosting, UNLIMITED_SWIPES


def utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class User(Base):
    """Worker account holding the daily swipe credits."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_uuid)
    email = Column(String, unique=True, nullable=True)

    # Swipe credits: refilled to daily_swipe_limit once per day.
    # swipe_credits >= UNLIMITED_SWIPES means an unlimited plan.
    swipe_credits = Column(Integer, default=10, nullable=False)
    daily_swipe_limit = Column(Integer, default=10, nullable=False)
    credits_reset_on = Column(Date, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    interactions = relationship(
        "JobInteraction", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_unlimited(self) -> bool:
        return (self.swipe_credits or 0) >= UNLIMITED_SWIPES

    def __repr__(self) -> str:
        return f"<User {self.id} credits={self.swipe_credits}>"


class JobPost(Base):
    """Job posting created by an employer."""

    __tablename__ = "job_posts"

    id = Column(String, primary_key=True, default=generate_uuid)
    title = Column(String, nullable=False)
    description = Column(Text)
    job_type = Column(String)
    location = Column(String)
    latitude = Column(Float)
    longitude = Column(Float)
    salary_min = Column(Float)
    salary_max = Column(Float)
    salary_type = Column(String, default="monthly")
    required_skills = Column(JSON, default=list)
    required_years_experience = Column(Float)
    work_schedule = Column(JSON, default=list)  # ["monday", "tuesday", ...]
    preferred_languages = Column(JSON, default=list)

    # Boost
    is_boosted = Column(Boolean, default=False)
    boost_expires_at = Column(DateTime)

    # Status: active, paused, closed
    status = Column(String, default="active", index=True)
    created_at = Column(DateTime, default=utcnow)

    interactions = relationship("JobInteraction", back_populates="job_post")

    def to_posting(self) -> JobPosting:
        """Convert to the engine's JobPosting."""
        coordinates = None
        if self.latitude is not None and self.longitude is not None:
            coordinates = Coordinates(lat=self.latitude, lng=self.longitude)
        return JobPosting(
            id=self.id,
            title=self.title,
            description=self.description or "",
            location=self.location or "",
            coordinates=coordinates,
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            salary_type=self.salary_type or "monthly",
            required_skills=self.required_skills or (),
            required_years_experience=self.required_years_experience,
            job_type=self.job_type,
            work_schedule=self.work_schedule or (),
            preferred_languages=self.preferred_languages or (),
            is_boosted=bool(self.is_boosted),
            boost_expires_at=self.boost_expires_at,
            posted_at=self.created_at,
            status=self.status or "active",
        )

    def __repr__(self) -> str:
        return f"<JobPost {self.title} ({self.status})>"


class JobInteraction(Base):
    """A persisted swipe decision."""

    __tablename__ = "job_interactions"
    __table_args__ = (
        Index("ix_job_interactions_user_job", "user_id", "job_post_id"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    job_post_id = Column(String, ForeignKey("job_posts.id"), nullable=False)

    # swipe_right, swipe_left, superlike
    action = Column(String, nullable=False)

    is_rewound = Column(Boolean, default=False, nullable=False)
    rewound_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="interactions")
    job_post = relationship("JobPost", back_populates="interactions")

    def __repr__(self) -> str:
        return f"<JobInteraction {self.user_id} {self.action} {self.job_post_id}>"
