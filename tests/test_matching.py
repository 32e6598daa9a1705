"""Tests for matching and scoring modules."""
from datetime import timedelta
from pathlib import Path

import pytest
import yaml

from conftest import NOW, make_job
from swipefeed.matching.match_scorer import (
    MatchBreakdown,
    MatchScorer,
    ScoringWeights,
    haversine_km,
    to_monthly,
)
from swipefeed.matching.scorer import JobRanker, rank
from swipefeed.models import CandidateProfile, Coordinates, JobStatus, SalaryExpectation


@pytest.fixture
def scorer():
    return MatchScorer()


class TestMatchScorer:
    """Tests for MatchScorer."""

    def test_perfect_match_scores_high(self, scorer, sample_profile):
        """A posting matching every preference gets every component."""
        result = scorer.score(sample_profile, make_job("j1"), NOW)

        b = result.breakdown
        assert b.job_title_match == 100
        assert b.job_type_match == 100
        assert b.location_match == 100
        assert b.salary_match == 100
        assert b.skills_match == 100
        assert b.experience_match == 100
        assert b.availability_match == 100
        assert b.language_match == 100
        assert b.rating_bonus == pytest.approx(95)
        assert result.score == pytest.approx(99.78, abs=0.01)

    def test_partial_skill_overlap(self, scorer, sample_profile):
        """Half the required skills: partial credit and a lower total."""
        partial = scorer.score(
            sample_profile, make_job("j1", required_skills={"cooking", "driving"}), NOW
        )
        full = scorer.score(
            sample_profile, make_job("j2", required_skills={"cooking", "cleaning"}), NOW
        )

        assert 0 < partial.breakdown.skills_match < full.breakdown.skills_match
        assert partial.breakdown.skills_match == pytest.approx(50)
        assert partial.score < full.score

    def test_deterministic(self, scorer, sample_profile):
        """Identical inputs give identical results."""
        job = make_job("j1")
        assert scorer.score(sample_profile, job, NOW) == scorer.score(sample_profile, job, NOW)

    def test_score_clamped_with_oversized_weights(self, sample_profile):
        """Weights summing above 1 still cap the total at 100."""
        scorer = MatchScorer(weights=ScoringWeights(job_title=5.0))
        result = scorer.score(sample_profile, make_job("j1"), NOW)
        assert result.score == 100

    def test_empty_profile_scores_zero(self, scorer):
        """No preferences means no components contribute."""
        job = make_job("j1", posted_at=None)
        result = scorer.score(CandidateProfile(), job, NOW)
        assert result.score == 0
        assert result.reasons == ()

    def test_missing_salary_is_not_a_penalty(self, scorer, sample_profile):
        """Absent salary contributes 0 to salary_match and nothing else."""
        result = scorer.score(
            sample_profile, make_job("j1", salary_min=None, salary_max=None), NOW
        )
        assert result.breakdown.salary_match == 0
        assert result.breakdown.skills_match == 100

    def test_malformed_salary_type_degrades_to_zero(self, scorer, sample_profile):
        """Unknown pay period is swallowed, not raised."""
        result = scorer.score(sample_profile, make_job("j1", salary_type="per-gig"), NOW)
        assert result.breakdown.salary_match == 0
        assert 0 <= result.score <= 100

    def test_reasons_follow_threshold(self, scorer, sample_profile):
        """Only material components produce reasons."""
        strong = scorer.score(sample_profile, make_job("j1"), NOW)
        weak = scorer.score(
            sample_profile, make_job("j2", required_skills={"cooking", "driving"}), NOW
        )

        assert "Strong skills match" in strong.reasons
        assert "Within preferred salary range" in strong.reasons
        assert "Strong skills match" not in weak.reasons

    def test_result_carries_job_id(self, scorer, sample_profile):
        assert scorer.score(sample_profile, make_job("abc"), NOW).job_id == "abc"


class TestJobTitleScoring:
    """Job title similarity."""

    def test_containment_is_full_match(self, scorer):
        profile = CandidateProfile(desired_jobs=["Nanny"])
        result = scorer.score(profile, make_job("j1", title="Live-in Nanny"), NOW)
        assert result.breakdown.job_title_match == 100

    def test_word_overlap_partial_credit(self, scorer):
        profile = CandidateProfile(desired_jobs=["Family Driver"])
        result = scorer.score(profile, make_job("j1", title="Company Driver"), NOW)
        assert result.breakdown.job_title_match == pytest.approx(40)

    def test_no_overlap(self, scorer):
        profile = CandidateProfile(desired_jobs=["Gardener"])
        result = scorer.score(profile, make_job("j1", title="Cook"), NOW)
        assert result.breakdown.job_title_match == 0


class TestLocationScoring:
    """Location text matching and distance fallback."""

    def test_substring_match(self, scorer):
        profile = CandidateProfile(desired_locations=["Makati"])
        result = scorer.score(profile, make_job("j1", location="Makati, Metro Manila"), NOW)
        assert result.breakdown.location_match == 100

    def test_city_token_match(self, scorer):
        """'Quezon City' matches 'Quezon, NCR' on the city name."""
        profile = CandidateProfile(desired_locations=["Quezon City"])
        result = scorer.score(profile, make_job("j1", location="Quezon, NCR"), NOW)
        assert result.breakdown.location_match == 90

    def test_generic_words_do_not_match(self, scorer):
        """'City' alone is not a place match."""
        profile = CandidateProfile(desired_locations=["Quezon City"])
        result = scorer.score(profile, make_job("j1", location="Cebu City"), NOW)
        assert result.breakdown.location_match == 0

    def test_region_part_match(self, scorer):
        """A short comma-separated part of the job location inside the preference."""
        profile = CandidateProfile(desired_locations=["QC area"])
        result = scorer.score(profile, make_job("j1", location="QC"), NOW)
        assert result.breakdown.location_match == 80

    def test_distance_within_radius(self, scorer):
        profile = CandidateProfile(
            coordinates=Coordinates(lat=14.676, lng=121.0437), preferred_radius_km=10
        )
        job = make_job(
            "j1", location="Somewhere", coordinates=Coordinates(lat=14.6507, lng=121.0494)
        )
        score = scorer.score(profile, job, NOW).breakdown.location_match
        assert 60 <= score < 100

    def test_distance_outside_radius(self, scorer):
        profile = CandidateProfile(
            coordinates=Coordinates(lat=14.676, lng=121.0437), preferred_radius_km=10
        )
        job = make_job("j1", location="Cebu", coordinates=Coordinates(lat=10.3157, lng=123.8854))
        assert scorer.score(profile, job, NOW).breakdown.location_match == 0

    def test_haversine_known_distance(self):
        """Manila to Cebu is roughly 570 km."""
        distance = haversine_km(14.5995, 120.9842, 10.3157, 123.8854)
        assert 550 < distance < 590


class TestSalaryScoring:
    """Monthly-normalized salary comparison."""

    @pytest.fixture
    def profile(self):
        return CandidateProfile(salary=SalaryExpectation(min_amount=12000, max_amount=18000))

    @pytest.mark.parametrize(
        "low,high,expected",
        [
            (13000, 16000, 100),  # inside
            (10000, 14000, 80),  # overlapping
            (20000, 21000, 70),  # above, within 20%
            (30000, 35000, 50),  # far above
            (5000, 8000, 40),  # below
        ],
    )
    def test_range_rules(self, scorer, profile, low, high, expected):
        job = make_job("j1", salary_min=low, salary_max=high)
        assert scorer.score(profile, job, NOW).breakdown.salary_match == expected

    def test_hourly_normalized(self, scorer, profile):
        """100/hour is 17,600/month, inside the expected range."""
        job = make_job("j1", salary_min=100, salary_max=100, salary_type="hourly")
        assert scorer.score(profile, job, NOW).breakdown.salary_match == 100

    def test_to_monthly(self):
        assert to_monthly(120000, "yearly") == pytest.approx(10000)
        assert to_monthly(500, "daily") == pytest.approx(11000)


class TestOtherComponents:
    """Experience, languages, rating and recency."""

    def test_experience_ratio(self, scorer):
        profile = CandidateProfile(experience_years=1)
        job = make_job("j1", required_years_experience=2)
        assert scorer.score(profile, job, NOW).breakdown.experience_match == pytest.approx(50)

    def test_partial_languages(self, scorer):
        profile = CandidateProfile(languages=["Filipino", "English"])
        job = make_job("j1", preferred_languages=["Filipino", "Cebuano"])
        assert scorer.score(profile, job, NOW).breakdown.language_match == 70

    def test_no_language_overlap(self, scorer):
        profile = CandidateProfile(languages=["English"])
        job = make_job("j1", preferred_languages=["Cebuano"])
        assert scorer.score(profile, job, NOW).breakdown.language_match == 0

    def test_recency_decays(self, scorer):
        profile = CandidateProfile()
        fresh = scorer.score(profile, make_job("j1", posted_at=NOW), NOW)
        week_old = scorer.score(profile, make_job("j2", posted_at=NOW - timedelta(days=7)), NOW)
        stale = scorer.score(profile, make_job("j3", posted_at=NOW - timedelta(days=60)), NOW)

        assert fresh.breakdown.recency_bonus == 100
        assert 0 < week_old.breakdown.recency_bonus < 100
        assert stale.breakdown.recency_bonus == 0

    def test_ratings_clamped(self, scorer):
        profile = CandidateProfile(ratings=[7, 5])
        assert scorer.score(profile, make_job("j1"), NOW).breakdown.rating_bonus == 100


class TestScoringWeights:
    """Weight table loading."""

    def test_defaults_sum_to_one(self):
        weights = ScoringWeights()
        total = sum(getattr(weights, name) for name in weights.__dataclass_fields__)
        assert total == pytest.approx(1.0)

    def test_from_yaml_reads_scoring_section(self, tmp_path):
        path = tmp_path / "profile.yaml"
        path.write_text(yaml.dump({"scoring": {"skills": 0.5, "bogus": 1.0}}))

        weights = ScoringWeights.from_yaml(path)
        assert weights.skills == 0.5
        assert weights.job_title == ScoringWeights().job_title

    def test_bundled_profile_matches_defaults(self):
        path = Path(__file__).parent.parent / "config" / "profile.yaml"
        assert ScoringWeights.from_yaml(path) == ScoringWeights()

    def test_weighted_total(self):
        breakdown = MatchBreakdown(skills_match=100, job_title_match=50)
        assert breakdown.weighted_total(ScoringWeights()) == pytest.approx(39.0)


class TestJobRanker:
    """Tests for JobRanker."""

    def test_ranked_by_score(self, ranker, sample_profile):
        jobs = [
            make_job("weak", required_skills={"driving"}),
            make_job("strong"),
        ]
        ranked = ranker.score_jobs(sample_profile, jobs, NOW)
        assert [s.job_id for s in ranked] == ["strong", "weak"]

    def test_inactive_postings_dropped(self, ranker, sample_profile):
        jobs = [make_job("open"), make_job("closed", status=JobStatus.CLOSED)]
        ranked = ranker.score_jobs(sample_profile, jobs, NOW)
        assert [s.job_id for s in ranked] == ["open"]

    def test_min_score_filter(self, sample_profile):
        ranker = JobRanker(min_score=50)
        jobs = [make_job("good"), make_job("bad", title="Welder", required_skills={"welding"},
                                             job_type="contract", location="Davao",
                                             salary_min=None, salary_max=None,
                                             work_schedule=set(), preferred_languages=[],
                                             required_years_experience=None, posted_at=None)]
        ranked = ranker.score_jobs(sample_profile, jobs, NOW)
        assert [s.job_id for s in ranked] == ["good"]

    def test_ties_broken_by_recency_then_id(self, sample_profile):
        """Equal scores: newer posting first, then identifier."""
        ranker = JobRanker(MatchScorer(weights=ScoringWeights(recency=0)))
        jobs = [
            make_job("b", posted_at=NOW - timedelta(days=2)),
            make_job("c", posted_at=NOW - timedelta(days=1)),
            make_job("a", posted_at=NOW - timedelta(days=2)),
        ]
        ranked = ranker.score_jobs(sample_profile, jobs, NOW)
        assert [s.job_id for s in ranked] == ["c", "a", "b"]

    def test_rank_is_stable_across_calls(self, ranker, sample_profile, sample_jobs):
        first = ranker.score_jobs(sample_profile, sample_jobs, NOW)
        second = rank(reversed(first))
        assert [s.job_id for s in first] == [s.job_id for s in second]
