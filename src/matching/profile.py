"""Loading and checking candidate profiles and job records."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from src.matching.models import CandidateProfile, Job

# Completeness weights (points out of 100, before bonuses).
_COMPLETENESS_WEIGHTS = {
    "summary": 15,
    "skills": 30,
    "experience": 35,
    "education": 20,
}
_TARGET_SKILLS = 5
_TARGET_EXPERIENCE = 3
_DETAILED_DESCRIPTION_LENGTH = 50


class ProfileService:
    """Service for loading candidate profiles and job records from YAML/JSON."""

    def load_candidate(self, path: Path | str) -> CandidateProfile:
        """Load and validate a candidate profile."""
        data = self._load_document(Path(path))
        if not isinstance(data, dict):
            raise ValueError(f"Candidate profile must be a mapping/dict: {path}")
        return CandidateProfile.model_validate(data)

    def load_job(self, path: Path | str) -> Job:
        """Load and validate a single job record."""
        data = self._load_document(Path(path))
        if not isinstance(data, dict):
            raise ValueError(f"Job must be a mapping/dict: {path}")
        return Job.model_validate(data)

    def load_jobs(self, path: Path | str) -> list[Job]:
        """Load a list of jobs, given as a list or as a mapping with a `jobs` key."""
        data = self._load_document(Path(path))
        if isinstance(data, dict):
            data = data.get("jobs", [data])
        if not isinstance(data, list):
            raise ValueError(f"Jobs file must contain a list of jobs: {path}")
        return [Job.model_validate(item) for item in data]

    def is_ready_for_matching(self, candidate: CandidateProfile) -> bool:
        """A candidate needs at least skills or experience to be matched."""
        return bool(candidate.skills) or bool(candidate.experience)

    def completeness(self, candidate: CandidateProfile) -> int:
        """Score 0-100 for how complete a profile is for matching."""
        weights = _COMPLETENESS_WEIGHTS
        score = 0.0

        if candidate.summary and len(candidate.summary) > 20:
            score += weights["summary"]
        elif candidate.summary:
            score += weights["summary"] * 0.5

        skill_count = len(candidate.skills)
        score += weights["skills"] * min(1.0, skill_count / _TARGET_SKILLS)
        if skill_count:
            with_level = sum(1 for skill in candidate.skills if skill.proficiency)
            if with_level >= skill_count * 0.7:
                score += 5

        experience_count = len(candidate.experience)
        score += weights["experience"] * min(1.0, experience_count / _TARGET_EXPERIENCE)
        if experience_count:
            detailed = sum(
                1
                for entry in candidate.experience
                if entry.description
                and len(entry.description) > _DETAILED_DESCRIPTION_LENGTH
            )
            if detailed >= experience_count * 0.5:
                score += 5

        if candidate.education:
            score += weights["education"]

        return min(100, int(score + 0.5))

    def validate_profile(self, candidate: CandidateProfile) -> list[str]:
        """Return warnings for profiles that will score poorly."""
        warnings: list[str] = []

        if not candidate.skills:
            warnings.append("Skills list is empty")
        if not candidate.experience:
            warnings.append("No experience entries")
        if not candidate.embedding:
            warnings.append("Missing embedding; semantic similarity will be 0")
        if candidate.preferences is None:
            warnings.append("No preferences; location/type/salary use neutral scores")

        return warnings

    def _load_document(self, path: Path) -> Any:
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        suffix = path.suffix.lower()
        if suffix in {".yaml", ".yml"}:
            return self._load_yaml(path)
        if suffix == ".json":
            return self._load_json(path)
        return self._load_unknown(path)

    def _load_yaml(self, path: Path) -> Any:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML document: {path}") from e
        return {} if data is None else data

    def _load_json(self, path: Path) -> Any:
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON document: {path}") from e

    def _load_unknown(self, path: Path) -> Any:
        """Auto-detect the format when the file extension is unknown."""
        raw = path.read_text(encoding="utf-8")
        raw_stripped = raw.lstrip()

        # Try JSON first if it looks like JSON, otherwise fall back to YAML.
        if raw_stripped.startswith("{") or raw_stripped.startswith("["):
            try:
                return json.loads(raw)
            except json.JSONDecodeError:
                pass

        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid document format: {path}") from e
        return {} if data is None else data
