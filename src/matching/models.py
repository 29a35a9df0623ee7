"""Data models for job-candidate matching."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

ExperienceLevel = Literal["entry", "mid", "senior", "lead", "executive"]
EmploymentType = Literal["full-time", "part-time", "contract", "temporary", "internship"]
Proficiency = Literal["beginner", "intermediate", "advanced", "expert"]
JobStatus = Literal["active", "inactive", "archived"]

# Ordinal order used for level alignment.
EXPERIENCE_LEVELS: tuple[str, ...] = ("entry", "mid", "senior", "lead", "executive")

_PARTIAL_DATE_RE = re.compile(r"^(\d{4})(?:-(\d{1,2}))?$")


def _parse_partial_date(value: Any) -> Any:
    """Accept 'YYYY' and 'YYYY-MM' in addition to full ISO dates."""
    if isinstance(value, str):
        match = _PARTIAL_DATE_RE.match(value.strip())
        if match:
            year = int(match.group(1))
            month = int(match.group(2) or 1)
            return date(year, month, 1)
    return value


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys.

    Accepts both camelCase and snake_case keys when validating.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dictionary with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: dict) -> Any:
        """Deserialize from a dictionary."""
        return cls.model_validate(data)


class SalaryRange(CamelModel):
    """Salary range; either bound may be open."""

    model_config = ConfigDict(frozen=True)

    min: float | None = Field(default=None, ge=0, description="Lower bound")
    max: float | None = Field(default=None, ge=0, description="Upper bound")
    currency: str | None = Field(default=None, description="Currency code")


class Job(CamelModel):
    """Job posting as supplied by the job-sync subsystem. Read-only."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Job identifier")
    title: str = Field(..., description="Job title")
    company: str = Field(default="", description="Hiring company")
    description: str = Field(default="", description="Job description text")
    requirements: str | None = Field(default=None, description="Requirements text")
    skills: list[str] = Field(default_factory=list, description="Free-text skills")
    location: str | None = Field(default=None, description="Job location")
    employment_type: EmploymentType | None = Field(
        default=None, description="Employment type"
    )
    experience_level: ExperienceLevel | None = Field(
        default=None, description="Declared seniority"
    )
    salary: SalaryRange | None = Field(default=None, description="Salary range")
    status: JobStatus = Field(default="active", description="Listing status")


class CandidateSkill(CamelModel):
    """A skill on a candidate profile."""

    name: str = Field(..., description="Skill name as extracted")
    category: str | None = Field(default=None, description="Skill category")
    proficiency: Proficiency | None = Field(default=None, description="Skill level")
    years_of_experience: float | None = Field(
        default=None, ge=0, description="Years using this skill"
    )

    @field_validator("proficiency", mode="before")
    @classmethod
    def lowercase_proficiency(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower() or None
        return v


class ExperienceEntry(CamelModel):
    """Work experience entry for a candidate."""

    company: str = Field(..., description="Company name")
    position: str = Field(..., description="Job title")
    start_date: date = Field(..., description="Start date")
    end_date: date | None = Field(default=None, description="End date")
    is_current: bool = Field(default=False, description="Currently in this role")
    description: str | None = Field(default=None, description="Role description")
    skills: list[str] = Field(default_factory=list, description="Skills used")
    location: str | None = Field(default=None, description="Role location")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_partial_dates(cls, v: Any) -> Any:
        return _parse_partial_date(v)


class EducationEntry(CamelModel):
    """Education entry for a candidate."""

    institution: str = Field(..., description="Institution name")
    degree: str | None = Field(default=None, description="Degree")
    field_of_study: str | None = Field(default=None, description="Field of study")
    start_date: date | None = Field(default=None, description="Start date")
    end_date: date | None = Field(default=None, description="End date")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_partial_dates(cls, v: Any) -> Any:
        return _parse_partial_date(v)


class CandidatePreferences(CamelModel):
    """Optional job-search preferences."""

    locations: list[str] | None = Field(default=None, description="Preferred locations")
    employment_types: list[str] | None = Field(
        default=None, description="Acceptable employment types"
    )
    salary_range: SalaryRange | None = Field(
        default=None, description="Expected salary range"
    )
    remote_work: bool | None = Field(default=None, description="Open to remote work")


class CandidateProfile(CamelModel):
    """Candidate profile built by the extraction subsystem. Never mutated here."""

    user_id: str = Field(..., description="Owning user id")
    summary: str | None = Field(default=None, description="Professional summary")
    skills: list[CandidateSkill] = Field(default_factory=list)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    preferences: CandidatePreferences | None = Field(default=None)
    embedding: list[float] | None = Field(
        default=None, description="Resume embedding vector"
    )

    @field_validator("skills", mode="before")
    @classmethod
    def coerce_plain_skill_names(cls, v: Any) -> Any:
        """Allow skills to be given as bare names."""
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    @model_validator(mode="before")
    @classmethod
    def accept_vector_key(cls, data: Any) -> Any:
        """Accept `vector` as an alias for `embedding`."""
        if isinstance(data, dict) and "vector" in data and "embedding" not in data:
            data = dict(data)
            data["embedding"] = data.pop("vector")
        return data


class SkillsAlignment(CamelModel):
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    skills_match_ratio: float = Field(..., ge=0.0, le=1.0)
    proficiency_score: float = Field(..., ge=0.0, le=1.0)


class ExperienceMatch(CamelModel):
    level_alignment: float = Field(..., ge=0.0, le=1.0)
    domain_relevance: float = Field(..., ge=0.0, le=1.0)
    recency_boost: float = Field(..., ge=0.0, le=1.0)


class OtherFactors(CamelModel):
    location_match: float = Field(..., ge=0.0, le=1.0)
    employment_type_match: float = Field(..., ge=0.0, le=1.0)
    salary_alignment: float = Field(..., ge=0.0, le=1.0)
    company_fit: float = Field(..., ge=0.0, le=1.0)


class MatchFactors(CamelModel):
    """Raw factor values behind a match score."""

    semantic_similarity: float = Field(..., ge=0.0, le=1.0)
    skills_alignment: SkillsAlignment
    experience_match: ExperienceMatch
    other_factors: OtherFactors


class MatchScore(CamelModel):
    """Weighted 0-100 scores plus a 0-1 confidence."""

    overall: int = Field(..., ge=0, le=100)
    semantic: int = Field(..., ge=0, le=100)
    skills: int = Field(..., ge=0, le=100)
    experience: int = Field(..., ge=0, le=100)
    other: int = Field(..., ge=0, le=100)
    confidence: float = Field(..., ge=0.0, le=1.0)


class JobCandidateMatch(CamelModel):
    """The cacheable unit: one scored job/candidate pair."""

    job_id: str
    user_id: str
    score: MatchScore
    factors: MatchFactors
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reasoning: list[str] = Field(default_factory=list)


class MatchWeights(CamelModel):
    """Component weights. Must sum to 1.0."""

    model_config = ConfigDict(frozen=True)

    semantic: float = Field(default=0.40, ge=0.0)
    skills: float = Field(default=0.35, ge=0.0)
    experience: float = Field(default=0.15, ge=0.0)
    other: float = Field(default=0.10, ge=0.0)

    @model_validator(mode="after")
    def validate_sum_to_one(self) -> MatchWeights:
        """Ensure weights sum to 1.0 (within tolerance)."""
        total = self.semantic + self.skills + self.experience + self.other
        if abs(total - 1.0) > 1e-6:
            raise ValueError(
                f"Match weights must sum to 1.0. Got {total:.6f} "
                "(use MatchWeights.normalized() to rescale)."
            )
        return self

    @classmethod
    def normalized(
        cls,
        *,
        semantic: float,
        skills: float,
        experience: float,
        other: float,
    ) -> MatchWeights:
        """Build weights from arbitrary non-negative values, rescaled to sum to 1."""
        values = (semantic, skills, experience, other)
        if any(value < 0 for value in values):
            raise ValueError("Match weights must be non-negative")
        total = sum(values)
        if total <= 0:
            raise ValueError("At least one match weight must be positive")
        semantic, skills, experience = (v / total for v in values[:3])
        # Assign the remainder so the rescaled weights sum to exactly 1.0.
        return cls(
            semantic=semantic,
            skills=skills,
            experience=experience,
            other=max(0.0, 1.0 - semantic - skills - experience),
        )


class MatchingOptions(CamelModel):
    """Per-call options."""

    weights: MatchWeights | None = Field(default=None, description="Weight override")
    min_score: int | None = Field(
        default=None, ge=0, le=100, description="Drop batch results below this score"
    )
    include_inactive: bool = Field(
        default=False, description="Score inactive or archived jobs in batches"
    )


@dataclass(frozen=True)
class SkillMapping:
    """Canonical skill with its known variations."""

    canonical: str
    variations: list[str]
    category: str


@dataclass(frozen=True)
class NormalizedSkill:
    """Result of normalizing one free-text skill."""

    original: str
    normalized: str
    category: str | None
    confidence: float


@dataclass
class MatchingStats:
    """Running engine statistics. Averages are exponential moving averages."""

    total_calculations: int = 0
    average_processing_time_ms: float = 0.0
    average_match_score: float = 0.0
    top_match_score: float = 0.0
    last_calculated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class MatchError:
    """Error payload carried by a failed MatchResult."""

    code: str
    message: str


class MatchCalculationError(Exception):
    """Raised by MatchResult.unwrap() on a failed result."""

    def __init__(self, error: MatchError) -> None:
        super().__init__(f"{error.code}: {error.message}")
        self.error = error


@dataclass(frozen=True)
class MatchResult:
    """Outcome of a match calculation: a match or an error, never both."""

    success: bool
    match: JobCandidateMatch | None = None
    error: MatchError | None = None

    def __post_init__(self) -> None:
        if self.success and (self.match is None or self.error is not None):
            raise ValueError("A successful MatchResult requires a match and no error")
        if not self.success and (self.error is None or self.match is not None):
            raise ValueError("A failed MatchResult requires an error and no match")

    @classmethod
    def ok(cls, match: JobCandidateMatch) -> MatchResult:
        return cls(success=True, match=match)

    @classmethod
    def err(cls, code: str, message: str) -> MatchResult:
        return cls(success=False, error=MatchError(code=code, message=message))

    def unwrap(self) -> JobCandidateMatch:
        """Return the match or raise MatchCalculationError."""
        if self.error is not None:
            raise MatchCalculationError(self.error)
        if self.match is None:
            raise ValueError("MatchResult has neither a match nor an error")
        return self.match
