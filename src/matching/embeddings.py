"""Job embedding sources.

Job embeddings are produced outside this package. The engine asks an
injected source for a job's vector; a source that cannot supply one
disables semantic similarity instead of comparing against a stand-in.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from src.matching.models import Job


@runtime_checkable
class JobEmbeddingSource(Protocol):
    """Capability that supplies a job's embedding vector."""

    @property
    def available(self) -> bool:
        """False when this source can never produce embeddings."""
        ...

    async def get_embedding(self, job: Job) -> list[float] | None:
        """Return the job's embedding, or None when it has none."""
        ...


class UnavailableJobEmbeddings:
    """Source used when no job-embedding pipeline is configured."""

    @property
    def available(self) -> bool:
        return False

    async def get_embedding(self, job: Job) -> list[float] | None:
        return None


class StaticJobEmbeddings:
    """Precomputed embeddings keyed by job id."""

    def __init__(self, embeddings: Mapping[str, Sequence[float]]) -> None:
        self._embeddings = {
            job_id: [float(x) for x in vector] for job_id, vector in embeddings.items()
        }

    @property
    def available(self) -> bool:
        return True

    async def get_embedding(self, job: Job) -> list[float] | None:
        return self._embeddings.get(job.id)

    @classmethod
    def from_json_file(cls, path: Path | str) -> StaticJobEmbeddings:
        """Load a `{job_id: [floats]}` JSON document."""
        embeddings_path = Path(path)
        if not embeddings_path.exists():
            raise FileNotFoundError(f"Job embeddings not found: {embeddings_path}")
        try:
            data = json.loads(embeddings_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid job embeddings JSON: {embeddings_path}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Job embeddings must be a mapping: {embeddings_path}")
        return cls(data)


class CallableJobEmbeddings:
    """Adapts an async callable (e.g. an embedding-service client) to a source."""

    def __init__(
        self, fetch: Callable[[str], Awaitable[Sequence[float] | None]]
    ) -> None:
        self._fetch = fetch

    @property
    def available(self) -> bool:
        return True

    async def get_embedding(self, job: Job) -> list[float] | None:
        vector = await self._fetch(build_job_embedding_text(job))
        if vector is None:
            return None
        return [float(x) for x in vector]


def build_job_embedding_text(job: Job) -> str:
    """Build the text an embedding service should embed for a job."""
    sections: list[str] = [f"Title: {job.title}"]
    if job.company:
        sections.append(f"Company: {job.company}")
    if job.description:
        sections.append(f"Description: {job.description}")
    if job.requirements:
        sections.append(f"Requirements: {job.requirements}")
    if job.skills:
        sections.append(f"Skills: {', '.join(job.skills)}")
    if job.location:
        sections.append(f"Location: {job.location}")
    return "\n\n".join(sections)
