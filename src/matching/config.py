"""Configuration settings for the matching engine and score cache."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchingConfig(BaseSettings):
    """Matching configuration settings.

    All settings have sensible defaults and can be overridden via
    environment variables with `MATCHING_` prefix or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="MATCHING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Scoring weights (must sum to 1.0)
    weight_semantic: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.40,
        description="Weight for embedding similarity",
    )
    weight_skills: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.35,
        description="Weight for skills alignment",
    )
    weight_experience: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.15,
        description="Weight for experience match",
    )
    weight_other: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.10,
        description="Weight for location, employment type, salary and company fit",
    )

    # Engine settings
    performance_target_ms: Annotated[float, Field(gt=0)] = Field(
        default=500.0,
        description="Calculations slower than this are logged as warnings",
    )
    stats_smoothing: Annotated[float, Field(gt=0.0, le=1.0)] = Field(
        default=0.1,
        description="Smoothing factor for running averages in engine stats",
    )

    # Cache settings
    cache_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Match score cache backend",
    )
    cache_ttl_seconds: Annotated[float, Field(gt=0)] = Field(
        default=24 * 60 * 60,
        description="Time-to-live for cached match scores",
    )
    cache_db_path: Path = Field(
        default=Path("./data/match_cache.db"),
        description="SQLite database path for the sqlite cache backend",
    )

    # Batch settings
    batch_max_jobs: Annotated[int, Field(gt=0)] = Field(
        default=50,
        description="Maximum number of job ids accepted per batch request",
    )

    @model_validator(mode="after")
    def validate_weights_sum_to_one(self) -> MatchingConfig:
        """Ensure scoring weights sum to 1.0 (within tolerance)."""
        weight_sum = (
            self.weight_semantic
            + self.weight_skills
            + self.weight_experience
            + self.weight_other
        )
        if abs(weight_sum - 1.0) > 1e-6:
            raise ValueError(
                "Matching weights must sum to 1.0. "
                f"Got {weight_sum:.6f} "
                f"(semantic={self.weight_semantic}, skills={self.weight_skills}, "
                f"experience={self.weight_experience}, other={self.weight_other})."
            )
        return self


# Singleton instance for easy import
_matching_config: MatchingConfig | None = None


def get_matching_config() -> MatchingConfig:
    """Get the matching configuration singleton."""
    global _matching_config
    if _matching_config is None:
        _matching_config = MatchingConfig()
    return _matching_config


def reset_matching_config() -> None:
    """Reset the matching configuration singleton (useful for testing)."""
    global _matching_config
    _matching_config = None
