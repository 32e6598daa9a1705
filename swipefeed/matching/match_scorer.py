"""Multi-factor match scoring between a candidate profile and a job posting."""
import logging
import math
from dataclasses import asdict, dataclass, fields
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import yaml

from swipefeed.models import CandidateProfile, JobPosting, ensure_aware, utcnow

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# Words too common in place names to count as a city match on their own.
GENERIC_PLACE_WORDS = {"city", "town", "province", "metro", "region", "district"}

# Multipliers that convert a salary amount of the given period to a monthly amount.
MONTHLY_FACTORS = {
    "hourly": 8 * 22,
    "daily": 22,
    "weekly": 52 / 12,
    "biweekly": 26 / 12,
    "monthly": 1,
    "yearly": 1 / 12,
    "annual": 1 / 12,
}


@dataclass(frozen=True)
class ScoringWeights:
    """Relative weight of each breakdown component in the total score.

    Skills and job-title similarity dominate; rating and recency are small
    bonuses. The defaults sum to 1.0 so a perfect candidate scores 100.
    """

    job_title: float = 0.28
    skills: float = 0.25
    job_type: float = 0.10
    location: float = 0.10
    salary: float = 0.08
    experience: float = 0.07
    availability: float = 0.05
    rating: float = 0.03
    recency: float = 0.02
    language: float = 0.02

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringWeights":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown scoring weights: %s", sorted(unknown))
        return cls(**{k: float(v) for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ScoringWeights":
        """Load weight overrides from the ``scoring`` section of a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data.get("scoring") or {})


@dataclass(frozen=True)
class MatchBreakdown:
    """Per-component scores, each independently bounded to [0, 100]."""

    job_title_match: float = 0.0
    job_type_match: float = 0.0
    location_match: float = 0.0
    salary_match: float = 0.0
    skills_match: float = 0.0
    experience_match: float = 0.0
    availability_match: float = 0.0
    rating_bonus: float = 0.0
    recency_bonus: float = 0.0
    language_match: float = 0.0

    def weighted_total(self, weights: ScoringWeights) -> float:
        """Weighted sum of the components, clamped to [0, 100]."""
        total = sum(
            getattr(self, component) * getattr(weights, weight)
            for component, weight, _ in COMPONENTS
        )
        return round(min(100.0, max(0.0, total)), 2)

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


# (breakdown field, weight field, reason shown when the component is material)
COMPONENTS = (
    ("job_title_match", "job_title", "Matches a job you are looking for"),
    ("skills_match", "skills", "Strong skills match"),
    ("job_type_match", "job_type", "Preferred job type"),
    ("location_match", "location", "Close to your preferred location"),
    ("salary_match", "salary", "Within preferred salary range"),
    ("experience_match", "experience", "Meets the experience requirement"),
    ("availability_match", "availability", "Fits your availability"),
    ("language_match", "language", "Speaks the preferred languages"),
    ("rating_bonus", "rating", "Highly rated by past employers"),
    ("recency_bonus", "recency", "Recently posted"),
)


@dataclass(frozen=True)
class MatchResult:
    """Score of one posting for one profile, with its explanation."""

    job_id: str
    score: float  # 0-100
    reasons: tuple[str, ...]
    breakdown: MatchBreakdown


def _normalize(value: Optional[str]) -> str:
    return " ".join((value or "").lower().replace("-", " ").replace("_", " ").split())


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def to_monthly(amount: float, salary_type: Optional[str]) -> float:
    """Convert a salary amount to its monthly equivalent."""
    factor = MONTHLY_FACTORS[_normalize(salary_type or "monthly").replace(" ", "")]
    return float(amount) * factor


class MatchScorer:
    """Score job postings against a candidate profile.

    Pure and deterministic for a given ``now``: no I/O, no randomness.
    Missing or malformed data on either side makes the affected component
    contribute 0 instead of raising.
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        reason_threshold: float = 70.0,
        recency_window_days: int = 30,
    ):
        """
        Initialize match scorer.

        Args:
            weights: Component weights (defaults to ScoringWeights())
            reason_threshold: Component score needed to list its reason
            recency_window_days: Age at which the recency bonus reaches 0
        """
        self.weights = weights or ScoringWeights()
        self.reason_threshold = reason_threshold
        self.recency_window_days = recency_window_days

    def score(
        self,
        profile: CandidateProfile,
        job: JobPosting,
        now: Optional[datetime] = None,
    ) -> MatchResult:
        """
        Score a single posting.

        Args:
            profile: Candidate profile snapshot
            job: Job posting to score
            now: Reference time for the recency bonus (defaults to current UTC time)

        Returns:
            MatchResult with total score, breakdown and reasons
        """
        now = ensure_aware(now) if now else utcnow()
        safe = self._safe

        breakdown = MatchBreakdown(
            job_title_match=safe("job_title_match", self._score_job_title, profile, job),
            job_type_match=safe("job_type_match", self._score_job_type, profile, job),
            location_match=safe("location_match", self._score_location, profile, job),
            salary_match=safe("salary_match", self._score_salary, profile, job),
            skills_match=safe("skills_match", self._score_skills, profile, job),
            experience_match=safe("experience_match", self._score_experience, profile, job),
            availability_match=safe("availability_match", self._score_availability, profile, job),
            rating_bonus=safe("rating_bonus", self._score_rating, profile, job),
            recency_bonus=safe("recency_bonus", lambda p, j: self._score_recency(j, now), profile, job),
            language_match=safe("language_match", self._score_languages, profile, job),
        )

        reasons = tuple(
            reason
            for component, _, reason in COMPONENTS
            if getattr(breakdown, component) >= self.reason_threshold
        )

        return MatchResult(
            job_id=job.id,
            score=breakdown.weighted_total(self.weights),
            reasons=reasons,
            breakdown=breakdown,
        )

    def _safe(
        self,
        name: str,
        func: Callable[[CandidateProfile, JobPosting], float],
        profile: CandidateProfile,
        job: JobPosting,
    ) -> float:
        """Run one component, degrading malformed input to a zero contribution."""
        try:
            value = float(func(profile, job))
        except (TypeError, ValueError, KeyError, AttributeError, ZeroDivisionError) as e:
            logger.debug("Scoring %s for job %s degraded to 0: %s", name, getattr(job, "id", "?"), e)
            return 0.0
        if math.isnan(value):
            return 0.0
        return min(100.0, max(0.0, value))

    def _score_job_title(self, profile: CandidateProfile, job: JobPosting) -> float:
        """Exact or containment match = 100, otherwise partial word overlap."""
        title = _normalize(job.title)
        desired = [d for d in (_normalize(j) for j in profile.desired_jobs) if d]
        if not title or not desired:
            return 0.0

        for wanted in desired:
            if wanted == title or wanted in title or title in wanted:
                return 100.0

        title_words = set(title.split())
        best_overlap = 0.0
        for wanted in desired:
            wanted_words = set(wanted.split())
            best_overlap = max(best_overlap, len(title_words & wanted_words) / len(wanted_words))

        # Partial credit never reaches a full match
        return round(best_overlap * 80, 2)

    def _score_job_type(self, profile: CandidateProfile, job: JobPosting) -> float:
        job_type = _normalize(job.job_type)
        if not job_type or not profile.desired_job_types:
            return 0.0
        desired = {_normalize(t) for t in profile.desired_job_types}
        return 100.0 if job_type in desired else 0.0

    def _score_location(self, profile: CandidateProfile, job: JobPosting) -> float:
        """Text match on place names first, then distance within the preferred radius."""
        job_location = job.location.lower().strip()
        desired = [
            d.lower().strip()
            for d in (*profile.desired_locations, profile.location or "")
            if d and d.strip()
        ]

        if job_location and desired:
            for wanted in desired:
                if wanted in job_location:
                    return 100.0

            # City name tokens, e.g. "quezon city" matches "Quezon, NCR"
            for wanted in desired:
                tokens = [
                    t for t in wanted.replace(",", " ").split()
                    if len(t) > 2 and t not in GENERIC_PLACE_WORDS
                ]
                if any(t in job_location for t in tokens):
                    return 90.0

            # Region / province level: a comma-separated part of the job location
            job_parts = [p.strip() for p in job_location.split(",") if p.strip()]
            for wanted in desired:
                if any(part in wanted for part in job_parts):
                    return 80.0

        if profile.coordinates and job.coordinates and profile.preferred_radius_km > 0:
            distance = haversine_km(
                profile.coordinates.lat,
                profile.coordinates.lng,
                job.coordinates.lat,
                job.coordinates.lng,
            )
            if distance <= profile.preferred_radius_km:
                return float(round(max(60.0, 100 - (distance / profile.preferred_radius_km) * 40)))

        return 0.0

    def _score_salary(self, profile: CandidateProfile, job: JobPosting) -> float:
        """Compare monthly-normalized pay ranges."""
        expectation = profile.salary
        if expectation is None or not (expectation.min_amount or expectation.max_amount):
            return 0.0
        if not (job.salary_min or job.salary_max):
            return 0.0

        job_low = to_monthly(job.salary_min or job.salary_max, job.salary_type)
        job_high = to_monthly(job.salary_max or job.salary_min, job.salary_type)
        user_low = to_monthly(expectation.min_amount or 0, expectation.salary_type)
        user_high = (
            to_monthly(expectation.max_amount, expectation.salary_type)
            if expectation.max_amount
            else math.inf
        )

        if job_low >= user_low and job_high <= user_high:
            return 100.0
        if job_low <= user_high and job_high >= user_low:
            return 80.0
        if job_low > user_high:
            return 70.0 if job_low <= user_high * 1.2 else 50.0
        return 40.0

    def _score_skills(self, profile: CandidateProfile, job: JobPosting) -> float:
        """Share of the required skills the candidate has."""
        if not job.required_skills or not profile.skills:
            return 0.0
        overlap = job.required_skills & profile.skills
        return len(overlap) / len(job.required_skills) * 100

    def _score_experience(self, profile: CandidateProfile, job: JobPosting) -> float:
        required = job.required_years_experience
        years = profile.experience_years
        if required is None or years is None:
            return 0.0
        required, years = float(required), float(years)
        if required <= 0 or years >= required:
            return 100.0
        return max(0.0, years) / required * 100

    def _score_availability(self, profile: CandidateProfile, job: JobPosting) -> float:
        """Share of the job's schedule slots the candidate is available for."""
        if not job.work_schedule or not profile.availability:
            return 0.0
        return len(job.work_schedule & profile.availability) / len(job.work_schedule) * 100

    def _score_languages(self, profile: CandidateProfile, job: JobPosting) -> float:
        if not job.preferred_languages or not profile.languages:
            return 0.0
        required = {lang.lower() for lang in job.preferred_languages}
        spoken = {lang.lower() for lang in profile.languages}
        matches = required & spoken
        if matches == required:
            return 100.0
        if matches:
            return float(round(60 + len(matches) / len(required) * 20))
        return 0.0

    def _score_rating(self, profile: CandidateProfile, job: JobPosting) -> float:
        """Average past rating on a 5-point scale."""
        if not profile.ratings:
            return 0.0
        ratings = [min(5.0, max(0.0, float(r))) for r in profile.ratings]
        return sum(ratings) / len(ratings) / 5 * 100

    def _score_recency(self, job: JobPosting, now: datetime) -> float:
        """Linear decay from 100 at posting time to 0 after the recency window."""
        if job.posted_at is None or self.recency_window_days <= 0:
            return 0.0
        age_days = (now - ensure_aware(job.posted_at)).total_seconds() / 86400
        if age_days <= 0:
            return 100.0
        return max(0.0, 100 * (1 - age_days / self.recency_window_days))
