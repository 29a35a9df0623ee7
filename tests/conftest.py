"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _reset_singletons(monkeypatch):
    """Give every test fresh singletons and no MATCHING_ overrides."""
    import os

    from src.config.settings import reset_settings
    from src.matching.config import reset_matching_config
    from src.matching.skills import reset_skill_normalizer
    from src.utils.logging import reset_logging

    for var in list(os.environ):
        if var.upper().startswith("MATCHING_"):
            monkeypatch.delenv(var, raising=False)

    reset_logging()
    reset_settings()
    reset_matching_config()
    reset_skill_normalizer()
    yield
    reset_logging()
    reset_settings()
    reset_matching_config()
    reset_skill_normalizer()


@pytest.fixture
def fixed_now() -> datetime:
    """Frozen 'now' used by engine clocks in tests."""
    return FIXED_NOW


@pytest.fixture
def matching_config():
    """Matching config with defaults, ignoring any local .env file."""
    from src.matching.config import MatchingConfig

    return MatchingConfig(_env_file=None)


@pytest.fixture
def engine(matching_config, fixed_now):
    """Matching engine with a frozen clock and no job embeddings."""
    from src.matching.engine import MatchingEngine

    return MatchingEngine(matching_config, clock=lambda: fixed_now)


@pytest.fixture
def backend_job():
    """Senior backend role used across engine and batch tests."""
    from src.matching.models import Job

    return Job(
        id="job-1",
        title="Senior Backend Engineer",
        company="Acme",
        description="Backend services for a fintech startup",
        skills=["Python", "PostgreSQL"],
        location="Berlin",
        employment_type="full-time",
        experience_level="senior",
        salary={"min": 80000, "max": 100000, "currency": "EUR"},
    )


@pytest.fixture
def backend_candidate():
    """Candidate with six years of current backend experience."""
    from src.matching.models import CandidateProfile

    return CandidateProfile.model_validate(
        {
            "userId": "user-1",
            "summary": "Backend engineer focused on payments infrastructure",
            "skills": [
                {"name": "Python", "proficiency": "expert"},
                {"name": "postgres", "proficiency": "advanced"},
            ],
            "experience": [
                {
                    "company": "Other Corp",
                    "position": "Backend Engineer",
                    "startDate": "2018-06",
                    "isCurrent": True,
                    "description": "Built fintech payment backend",
                }
            ],
            "preferences": {
                "locations": ["Berlin"],
                "employmentTypes": ["full-time"],
                "salaryRange": {"min": 90000, "max": 120000},
            },
        }
    )


@pytest.fixture
def make_match(fixed_now):
    """Factory for JobCandidateMatch objects with a given overall score."""
    from src.matching.models import (
        ExperienceMatch,
        JobCandidateMatch,
        MatchFactors,
        MatchScore,
        OtherFactors,
        SkillsAlignment,
    )

    def _make(job_id: str = "job-1", user_id: str = "user-1", overall: int = 70):
        return JobCandidateMatch(
            job_id=job_id,
            user_id=user_id,
            score=MatchScore(
                overall=overall,
                semantic=0,
                skills=overall,
                experience=overall,
                other=overall,
                confidence=0.7,
            ),
            factors=MatchFactors(
                semantic_similarity=0.0,
                skills_alignment=SkillsAlignment(
                    matched_skills=["python"],
                    missing_skills=[],
                    skills_match_ratio=1.0,
                    proficiency_score=0.6,
                ),
                experience_match=ExperienceMatch(
                    level_alignment=0.5, domain_relevance=0.0, recency_boost=1.0
                ),
                other_factors=OtherFactors(
                    location_match=1.0,
                    employment_type_match=1.0,
                    salary_alignment=0.5,
                    company_fit=0.5,
                ),
            ),
            calculated_at=fixed_now,
            reasoning=["Good match - worth considering"],
        )

    return _make
