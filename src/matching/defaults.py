"""Default values for absent inputs.

Every neutral or fallback factor value the engine uses when a job or
candidate leaves a field empty is defined here, so the policy for each
optional field lives in one place.
"""

from __future__ import annotations

from src.matching.models import (
    CandidatePreferences,
    CandidateProfile,
    ExperienceLevel,
    Job,
    Proficiency,
    SalaryRange,
)

# Semantic similarity when either embedding is missing or unavailable.
NO_EMBEDDING_SIMILARITY = 0.0

# Skills ratio when the job lists no skills.
NO_JOB_SKILLS_RATIO = 1.0
# Proficiency score when no skill matched.
NO_MATCHED_SKILLS_PROFICIENCY = 0.0
# Proficiency assumed for a candidate skill without a stated level.
DEFAULT_PROFICIENCY: Proficiency = "intermediate"

PROFICIENCY_WEIGHTS: dict[str, float] = {
    "expert": 1.0,
    "advanced": 0.8,
    "intermediate": 0.6,
    "beginner": 0.4,
}

# Level alignment when the job declares no experience level.
NO_JOB_LEVEL_ALIGNMENT = 0.5
# Domain relevance when the job text yields no industry keywords.
NO_JOB_KEYWORDS_RELEVANCE = 0.0
# Recency boost for a candidate with no experience entries.
NO_EXPERIENCE_RECENCY = 0.0

# Location score when the job has no location.
NO_JOB_LOCATION_MATCH = 1.0
# Location score when nothing in the preferences matches.
UNMATCHED_LOCATION_MATCH = 0.5

# Employment type score when the job states no type.
NO_JOB_EMPLOYMENT_TYPE_MATCH = 1.0
# Employment type score when the candidate states no preference.
NO_EMPLOYMENT_PREFERENCE_MATCH = 0.7

# Salary score when either side has no range.
NO_SALARY_INFO_ALIGNMENT = 0.5

# Company fit has no signal yet; always neutral.
NEUTRAL_COMPANY_FIT = 0.5

_EMPTY_PREFERENCES = CandidatePreferences()


def candidate_preferences(candidate: CandidateProfile) -> CandidatePreferences:
    """Return the candidate's preferences, or an all-absent instance."""
    return candidate.preferences or _EMPTY_PREFERENCES


def candidate_embedding(candidate: CandidateProfile) -> list[float] | None:
    """Return the candidate embedding, treating an empty vector as absent."""
    if not candidate.embedding:
        return None
    return candidate.embedding


def skill_proficiency(proficiency: Proficiency | None) -> float:
    return PROFICIENCY_WEIGHTS[proficiency or DEFAULT_PROFICIENCY]


def job_level(job: Job) -> ExperienceLevel | None:
    return job.experience_level


def job_salary(job: Job) -> SalaryRange | None:
    """Return the job salary range, treating a range with no bounds as absent."""
    salary = job.salary
    if salary is None or (salary.min is None and salary.max is None):
        return None
    return salary


def preferred_salary(preferences: CandidatePreferences) -> SalaryRange | None:
    salary = preferences.salary_range
    if salary is None or (salary.min is None and salary.max is None):
        return None
    return salary


def salary_bounds(salary: SalaryRange) -> tuple[float, float]:
    """Return (min, max) with open bounds widened to 0 and infinity."""
    low = salary.min if salary.min is not None else 0.0
    high = salary.max if salary.max is not None else float("inf")
    return low, high
