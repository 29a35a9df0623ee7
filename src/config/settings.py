"""Application-wide settings for Job Match.

Matching and cache tuning lives in ``src.matching.config`` under the
``MATCHING_`` prefix; this module holds what the CLI itself needs.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """CLI settings read from the environment (no prefix) or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    output_dir: Path = Field(
        default=Path("./artifacts"),
        description="Root directory for match and batch reports",
    )
    job_embeddings_path: Path | None = Field(
        default=None,
        description=(
            "JSON file of precomputed job embeddings keyed by job id. "
            "Semantic similarity is 0 for every job when this is unset."
        ),
    )
    log_level: LogLevel = Field(
        default="INFO",
        description="Level for the job_match logger",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def resolve_log_level(self, override: str | None = None) -> str:
        """Return ``override`` (e.g. from ``--log-level``) or the configured level."""
        return (override or self.log_level).upper()


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the shared Settings instance, loading it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the shared instance so the next call reloads the environment."""
    global _settings
    _settings = None
