"""Job-candidate matching engine.

Combines four weighted factor groups into a 0-100 score:

- semantic similarity between resume and job embeddings
- skills alignment (canonicalized skill overlap and proficiency)
- experience match (inferred level, domain relevance, recency)
- other factors (location, employment type, salary, company fit)
"""

from __future__ import annotations

import math
import re
import time
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from src.matching import defaults
from src.matching.config import MatchingConfig, get_matching_config
from src.matching.embeddings import JobEmbeddingSource, UnavailableJobEmbeddings
from src.matching.models import (
    EXPERIENCE_LEVELS,
    CandidateProfile,
    ExperienceLevel,
    ExperienceMatch,
    Job,
    JobCandidateMatch,
    MatchFactors,
    MatchingOptions,
    MatchingStats,
    MatchResult,
    MatchScore,
    MatchWeights,
    OtherFactors,
    SkillsAlignment,
)
from src.matching.skills import SkillNormalizer, get_skill_normalizer
from src.matching.vector import cosine_similarity
from src.utils.logging import get_logger, log_if_slow

logger = get_logger("matching.engine")

INDUSTRY_KEYWORDS: tuple[str, ...] = (
    "fintech",
    "healthcare",
    "edtech",
    "e-commerce",
    "saas",
    "blockchain",
    "ai",
    "machine learning",
    "data science",
    "cybersecurity",
    "cloud",
    "mobile",
    "web",
    "backend",
    "frontend",
    "fullstack",
    "devops",
    "startup",
    "enterprise",
    "consulting",
    "agency",
    "product",
)

_KEYWORD_PATTERNS = {
    keyword: re.compile(rf"(?<![\w-]){re.escape(keyword)}(?![\w-])")
    for keyword in INDUSTRY_KEYWORDS
}

# Upper bound (exclusive) on total years for each inferred level.
_LEVEL_YEAR_THRESHOLDS: tuple[tuple[float, ExperienceLevel], ...] = (
    (2, "entry"),
    (5, "mid"),
    (8, "senior"),
    (12, "lead"),
)

_LEVEL_DIFFERENCE_ALIGNMENT = {0: 1.0, 1: 0.7, 2: 0.4}
_FAR_LEVEL_ALIGNMENT = 0.2

_DAYS_PER_MONTH = 30

_MAX_LISTED_SKILLS = 3


class MatchingEngine:
    """Computes job-candidate match scores with reasoning and running stats."""

    def __init__(
        self,
        config: MatchingConfig | None = None,
        *,
        embedding_source: JobEmbeddingSource | None = None,
        skill_normalizer: SkillNormalizer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config or get_matching_config()
        self.embedding_source: JobEmbeddingSource = (
            embedding_source or UnavailableJobEmbeddings()
        )
        self.skill_normalizer = skill_normalizer or get_skill_normalizer()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._stats = MatchingStats(last_calculated_at=self._clock())

    @property
    def default_weights(self) -> MatchWeights:
        return MatchWeights(
            semantic=self.config.weight_semantic,
            skills=self.config.weight_skills,
            experience=self.config.weight_experience,
            other=self.config.weight_other,
        )

    async def calculate_match(
        self,
        job: Job | dict,
        candidate: CandidateProfile | dict,
        options: MatchingOptions | dict | None = None,
    ) -> MatchResult:
        """Score a job against a candidate.

        Never raises: invalid inputs and unexpected failures are returned
        as an error result.
        """
        start = time.perf_counter()

        try:
            job = _coerce(Job, job)
            candidate = _coerce(CandidateProfile, candidate)
            options = _coerce(MatchingOptions, options) if options is not None else None
        except ValidationError as e:
            logger.warning("Rejected match request with invalid input: %s", e)
            return MatchResult.err("invalid_input", f"Invalid match input: {e}")

        logger.info(
            "Calculating job-candidate match job_id=%s user_id=%s",
            job.id,
            candidate.user_id,
        )

        try:
            weights = (
                options.weights
                if options is not None and options.weights is not None
                else self.default_weights
            )
            factors = await self.calculate_factors(job, candidate)
            raw_overall, score = self.calculate_score(factors, weights)
            match = JobCandidateMatch(
                job_id=job.id,
                user_id=candidate.user_id,
                score=score,
                factors=factors,
                calculated_at=self._clock(),
                reasoning=generate_reasoning(factors, score),
            )
        except Exception as e:
            logger.error(
                "Match calculation failed job_id=%s user_id=%s: %s",
                job.id,
                candidate.user_id,
                e,
            )
            return MatchResult.err("calculation_error", f"Match calculation failed: {e}")

        elapsed_ms = (time.perf_counter() - start) * 1000
        self._update_stats(elapsed_ms, raw_overall)

        log_if_slow(
            logger,
            "Match calculation",
            elapsed_ms,
            self.config.performance_target_ms,
            job_id=job.id,
            user_id=candidate.user_id,
        )

        logger.info(
            "Match calculation completed job_id=%s user_id=%s overall=%d elapsed_ms=%.1f",
            job.id,
            candidate.user_id,
            score.overall,
            elapsed_ms,
        )
        return MatchResult.ok(match)

    async def calculate_factors(
        self, job: Job, candidate: CandidateProfile
    ) -> MatchFactors:
        """Compute every raw factor for a job/candidate pair."""
        semantic_similarity = await self.score_semantic(job, candidate)
        today = self._clock().date()
        return MatchFactors(
            semantic_similarity=semantic_similarity,
            skills_alignment=self.score_skills(job, candidate),
            experience_match=self.score_experience(job, candidate, today=today),
            other_factors=self.score_other(job, candidate),
        )

    def calculate_score(
        self, factors: MatchFactors, weights: MatchWeights
    ) -> tuple[float, MatchScore]:
        """Weight component scores into a MatchScore.

        Returns the unrounded overall score alongside the rounded MatchScore.
        """
        semantic = factors.semantic_similarity * 100
        skills = _skills_component(factors.skills_alignment)
        experience = _experience_component(factors.experience_match)
        other = _other_component(factors.other_factors)

        overall = (
            semantic * weights.semantic
            + skills * weights.skills
            + experience * weights.experience
            + other * weights.other
        )

        return overall, MatchScore(
            overall=_round_score(overall),
            semantic=_round_score(semantic),
            skills=_round_score(skills),
            experience=_round_score(experience),
            other=_round_score(other),
            confidence=calculate_confidence(factors),
        )

    async def score_semantic(self, job: Job, candidate: CandidateProfile) -> float:
        """Cosine similarity between candidate and job embeddings, clamped to [0, 1]."""
        candidate_vector = defaults.candidate_embedding(candidate)
        if candidate_vector is None or not self.embedding_source.available:
            return defaults.NO_EMBEDDING_SIMILARITY

        try:
            job_vector = await self.embedding_source.get_embedding(job)
        except Exception as e:
            logger.warning("Job embedding lookup failed job_id=%s: %s", job.id, e)
            return defaults.NO_EMBEDDING_SIMILARITY

        if not job_vector:
            logger.debug("No embedding available for job_id=%s", job.id)
            return defaults.NO_EMBEDDING_SIMILARITY

        similarity = cosine_similarity(candidate_vector, job_vector)
        return max(0.0, min(1.0, similarity))

    def score_skills(self, job: Job, candidate: CandidateProfile) -> SkillsAlignment:
        """Compare canonicalized job skills against the candidate's."""
        job_skills: list[str] = []
        for normalized in self.skill_normalizer.normalize_skills(job.skills):
            name = normalized.normalized.lower()
            if name and name not in job_skills:
                job_skills.append(name)

        candidate_proficiency: dict[str, float] = {}
        for skill in candidate.skills:
            name = self.skill_normalizer.normalize_skill(skill.name).normalized.lower()
            if not name:
                continue
            weight = defaults.skill_proficiency(skill.proficiency)
            candidate_proficiency[name] = max(weight, candidate_proficiency.get(name, 0.0))

        matched = [skill for skill in job_skills if skill in candidate_proficiency]
        missing = [skill for skill in job_skills if skill not in candidate_proficiency]

        if job_skills:
            ratio = len(matched) / len(job_skills)
        else:
            ratio = defaults.NO_JOB_SKILLS_RATIO

        if matched:
            proficiency = sum(candidate_proficiency[s] for s in matched) / len(matched)
        else:
            proficiency = defaults.NO_MATCHED_SKILLS_PROFICIENCY

        return SkillsAlignment(
            matched_skills=matched,
            missing_skills=missing,
            skills_match_ratio=ratio,
            proficiency_score=proficiency,
        )

    def score_experience(
        self, job: Job, candidate: CandidateProfile, *, today: date | None = None
    ) -> ExperienceMatch:
        today = today or self._clock().date()
        return ExperienceMatch(
            level_alignment=level_alignment(
                defaults.job_level(job), infer_experience_level(candidate, today=today)
            ),
            domain_relevance=domain_relevance(job, candidate),
            recency_boost=recency_boost(candidate, today=today),
        )

    def score_other(self, job: Job, candidate: CandidateProfile) -> OtherFactors:
        return OtherFactors(
            location_match=location_match(job, candidate),
            employment_type_match=employment_type_match(job, candidate),
            salary_alignment=salary_alignment(job, candidate),
            company_fit=defaults.NEUTRAL_COMPANY_FIT,
        )

    def get_stats(self) -> MatchingStats:
        """Return a snapshot of the running statistics."""
        return replace(self._stats)

    def reset_stats(self) -> None:
        self._stats = MatchingStats(last_calculated_at=self._clock())

    def _update_stats(self, elapsed_ms: float, overall: float) -> None:
        stats = self._stats
        alpha = self.config.stats_smoothing

        if stats.total_calculations == 0:
            stats.average_processing_time_ms = elapsed_ms
            stats.average_match_score = overall
        else:
            stats.average_processing_time_ms = (
                stats.average_processing_time_ms * (1 - alpha) + elapsed_ms * alpha
            )
            stats.average_match_score = (
                stats.average_match_score * (1 - alpha) + overall * alpha
            )

        stats.total_calculations += 1
        stats.top_match_score = max(stats.top_match_score, overall)
        stats.last_calculated_at = self._clock()


def total_experience_years(candidate: CandidateProfile, *, today: date) -> float:
    """Sum role durations in whole calendar months, as years.

    Open or current roles run until today. A role from 2019-01 to 2024-01
    counts as exactly five years.
    """
    total_months = 0
    for entry in candidate.experience:
        end = _entry_end(entry.end_date, entry.is_current, today)
        total_months += _whole_months_between(entry.start_date, end)
    return total_months / 12


def infer_experience_level(
    candidate: CandidateProfile, *, today: date
) -> ExperienceLevel:
    years = total_experience_years(candidate, today=today)
    for threshold, level in _LEVEL_YEAR_THRESHOLDS:
        if years < threshold:
            return level
    return "executive"


def level_alignment(
    job_level: ExperienceLevel | None, candidate_level: ExperienceLevel
) -> float:
    if job_level is None:
        return defaults.NO_JOB_LEVEL_ALIGNMENT
    difference = abs(
        EXPERIENCE_LEVELS.index(job_level) - EXPERIENCE_LEVELS.index(candidate_level)
    )
    return _LEVEL_DIFFERENCE_ALIGNMENT.get(difference, _FAR_LEVEL_ALIGNMENT)


def extract_industry_keywords(text: str) -> list[str]:
    lower = text.lower()
    return [kw for kw, pattern in _KEYWORD_PATTERNS.items() if pattern.search(lower)]


def domain_relevance(job: Job, candidate: CandidateProfile) -> float:
    """1.0 for a former employer, else the share of job industry keywords shared."""
    job_company = job.company.strip().lower()
    if job_company and any(
        entry.company.strip().lower() == job_company for entry in candidate.experience
    ):
        return 1.0

    job_keywords = extract_industry_keywords(f"{job.title} {job.description}")
    if not job_keywords:
        return defaults.NO_JOB_KEYWORDS_RELEVANCE

    candidate_keywords: set[str] = set()
    for entry in candidate.experience:
        candidate_keywords.update(
            extract_industry_keywords(f"{entry.position} {entry.description or ''}")
        )

    shared = [kw for kw in job_keywords if kw in candidate_keywords]
    return min(1.0, len(shared) / len(job_keywords))


def recency_boost(candidate: CandidateProfile, *, today: date) -> float:
    """Reward recent experience: 1.0 under 6 months, decaying to 0.5 by 24 months."""
    if not candidate.experience:
        return defaults.NO_EXPERIENCE_RECENCY

    latest_end = max(
        _entry_end(entry.end_date, entry.is_current, today)
        for entry in candidate.experience
    )
    months_since_end = (today - latest_end).days / _DAYS_PER_MONTH

    if months_since_end < 6:
        return 1.0
    if months_since_end < 24:
        return 0.8 - (months_since_end / 24) * 0.3
    return 0.5


def location_match(job: Job, candidate: CandidateProfile) -> float:
    job_location = (job.location or "").strip().lower()
    if not job_location:
        return defaults.NO_JOB_LOCATION_MATCH

    preferences = defaults.candidate_preferences(candidate)
    for location in preferences.locations or []:
        preferred = location.strip().lower()
        if preferred and (preferred in job_location or job_location in preferred):
            return 1.0

    if preferences.remote_work and "remote" in job_location:
        return 1.0

    return defaults.UNMATCHED_LOCATION_MATCH


def employment_type_match(job: Job, candidate: CandidateProfile) -> float:
    if job.employment_type is None:
        return defaults.NO_JOB_EMPLOYMENT_TYPE_MATCH

    accepted = defaults.candidate_preferences(candidate).employment_types
    if not accepted:
        return defaults.NO_EMPLOYMENT_PREFERENCE_MATCH

    if job.employment_type in {value.strip().lower() for value in accepted}:
        return 1.0
    return 0.3


def salary_alignment(job: Job, candidate: CandidateProfile) -> float:
    """Overlap of the two salary ranges relative to the narrower one."""
    job_salary = defaults.job_salary(job)
    wanted = defaults.preferred_salary(defaults.candidate_preferences(candidate))
    if job_salary is None or wanted is None:
        return defaults.NO_SALARY_INFO_ALIGNMENT

    job_min, job_max = defaults.salary_bounds(job_salary)
    wanted_min, wanted_max = defaults.salary_bounds(wanted)

    overlap_min = max(job_min, wanted_min)
    overlap_max = min(job_max, wanted_max)
    if overlap_min > overlap_max:
        return 0.1

    narrower = min(job_max - job_min, wanted_max - wanted_min)
    if narrower <= 0 or math.isinf(narrower):
        return 1.0
    return min(1.0, (overlap_max - overlap_min) / narrower)


def calculate_confidence(factors: MatchFactors) -> float:
    confidence = 0.5
    if factors.semantic_similarity > 0:
        confidence += 0.2
    if factors.skills_alignment.matched_skills:
        confidence += 0.2
    if factors.experience_match.level_alignment > 0.5:
        confidence += 0.1
    return min(1.0, round(confidence, 2))


def generate_reasoning(factors: MatchFactors, score: MatchScore) -> list[str]:
    """Human-readable explanation lines, most important first."""
    reasoning: list[str] = []

    if score.overall >= 80:
        reasoning.append("Excellent match - highly recommended")
    elif score.overall >= 60:
        reasoning.append("Good match - worth considering")
    elif score.overall >= 40:
        reasoning.append("Moderate match - some alignment")
    else:
        reasoning.append("Poor match - significant gaps")

    skills = factors.skills_alignment
    if skills.matched_skills:
        reasoning.append(
            f"Matches {len(skills.matched_skills)} required skills: "
            f"{_summarize(skills.matched_skills)}"
        )
    if skills.missing_skills:
        reasoning.append(f"Missing skills: {_summarize(skills.missing_skills)}")

    experience = factors.experience_match
    if experience.level_alignment > 0.7:
        reasoning.append("Experience level is well-aligned")
    elif experience.level_alignment < 0.3:
        reasoning.append("Experience level mismatch")

    if experience.domain_relevance > 0.6:
        reasoning.append("Relevant industry experience")

    location = factors.other_factors.location_match
    if location > 0.8:
        reasoning.append("Location is a great fit")
    elif location < 0.3:
        reasoning.append("Location may be a challenge")

    return reasoning


def format_match(match: JobCandidateMatch) -> str:
    """Format a match for CLI output."""
    score = match.score
    skills = match.factors.skills_alignment
    lines: list[str] = []
    lines.append(f"Job {match.job_id} for {match.user_id}")
    lines.append(f"Overall: {score.overall}/100 (confidence={score.confidence:.2f})")
    lines.append(
        "Scores: "
        f"semantic={score.semantic} "
        f"skills={score.skills} "
        f"experience={score.experience} "
        f"other={score.other}"
    )
    if skills.matched_skills:
        lines.append(f"Matched skills: {', '.join(skills.matched_skills)}")
    if skills.missing_skills:
        lines.append(f"Missing skills: {', '.join(skills.missing_skills)}")
    lines.extend(f"- {line}" for line in match.reasoning)
    return "\n".join(lines)


def _skills_component(alignment: SkillsAlignment) -> float:
    return alignment.skills_match_ratio * 70 + alignment.proficiency_score * 30


def _experience_component(experience: ExperienceMatch) -> float:
    return (
        experience.level_alignment * 50
        + experience.domain_relevance * 30
        + experience.recency_boost * 20
    )


def _other_component(other: OtherFactors) -> float:
    return (
        other.location_match * 30
        + other.employment_type_match * 25
        + other.salary_alignment * 25
        + other.company_fit * 20
    )


def _round_score(value: float) -> int:
    """Round half up and clamp to [0, 100]."""
    return max(0, min(100, math.floor(value + 0.5)))


def _summarize(items: list[str]) -> str:
    listed = ", ".join(items[:_MAX_LISTED_SKILLS])
    return f"{listed}..." if len(items) > _MAX_LISTED_SKILLS else listed


def _entry_end(end_date: date | None, is_current: bool, today: date) -> date:
    if is_current or end_date is None:
        return today
    return end_date


def _whole_months_between(start: date, end: date) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def _coerce(model: type[BaseModel], value: Any) -> Any:
    if isinstance(value, model):
        return value
    return model.model_validate(value)
