"""Batch scoring: serve cached matches and compute only the misses."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from src.matching.cache import MatchCache
from src.matching.config import MatchingConfig, get_matching_config
from src.matching.engine import MatchingEngine
from src.matching.models import CandidateProfile, Job, JobCandidateMatch, MatchingOptions
from src.utils.logging import get_logger

logger = get_logger("matching.batch")


@runtime_checkable
class JobSource(Protocol):
    """Read-only lookup of job records by id."""

    async def get_job(self, job_id: str) -> Job | None: ...


class InMemoryJobSource:
    """Job lookup over an in-memory collection."""

    def __init__(self, jobs: Iterable[Job] | Mapping[str, Job]) -> None:
        if isinstance(jobs, Mapping):
            self._jobs = dict(jobs)
        else:
            self._jobs = {job.id: job for job in jobs}

    async def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)


@dataclass
class BatchMatchItem:
    """One scored job in a batch response."""

    job_id: str
    match: JobCandidateMatch
    cached: bool

    def to_dict(self) -> dict[str, Any]:
        payload = self.match.to_dict()
        return {
            "jobId": self.job_id,
            "score": payload["score"],
            "factors": payload["factors"],
            "reasoning": payload["reasoning"],
            "calculatedAt": payload["calculatedAt"],
            "cached": self.cached,
        }


@dataclass
class BatchStats:
    total: int
    cached: int
    calculated: int
    failed: int
    processing_time_ms: float

    def __post_init__(self) -> None:
        for name in ("total", "cached", "calculated", "failed"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.processing_time_ms < 0:
            raise ValueError("processing_time_ms must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "cached": self.cached,
            "calculated": self.calculated,
            "failed": self.failed,
            "processingTime": round(self.processing_time_ms),
        }


@dataclass
class BatchMatchResult:
    """Merged batch response in request order."""

    matches: list[BatchMatchItem]
    stats: BatchStats
    failed_job_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "matches": [item.to_dict() for item in self.matches],
            "stats": self.stats.to_dict(),
            "failedJobIds": list(self.failed_job_ids),
        }


@dataclass
class BackfillResult:
    """Counts from warming the cache for a set of jobs."""

    cached: int
    calculated: int
    failed: int

    def to_dict(self) -> dict[str, Any]:
        return {"cached": self.cached, "calculated": self.calculated, "failed": self.failed}


class BatchMatchService:
    """Fans out match calculations over many jobs, cache first."""

    def __init__(
        self,
        *,
        engine: MatchingEngine,
        cache: MatchCache,
        job_source: JobSource,
        config: MatchingConfig | None = None,
    ) -> None:
        self.engine = engine
        self.cache = cache
        self.job_source = job_source
        self.config = config or get_matching_config()

    async def score_jobs(
        self,
        candidate: CandidateProfile,
        job_ids: list[str],
        options: MatchingOptions | None = None,
    ) -> BatchMatchResult:
        """Score `job_ids` for a candidate.

        Cached matches are returned as-is; misses are computed concurrently
        and written back to the cache. Jobs that cannot be scored are
        logged and left out of the result. A job id requested twice is
        scored once but reported once per request, so the stats always
        add up to ``len(job_ids)``.

        Raises:
            ValueError: If `job_ids` is empty or exceeds the batch limit.
        """
        self._validate_job_ids(job_ids)
        start = time.perf_counter()
        user_id = candidate.user_id

        logger.info(
            "Batch match calculation requested user_id=%s jobs=%d", user_id, len(job_ids)
        )

        cached = await self.cache.get_many(user_id, job_ids)
        to_calculate = [job_id for job_id, match in cached.items() if match is None]

        logger.debug(
            "Batch cache lookup user_id=%s cached=%d to_calculate=%d",
            user_id,
            len(cached) - len(to_calculate),
            len(to_calculate),
        )

        results = await asyncio.gather(
            *(self._calculate_one(candidate, job_id, options) for job_id in to_calculate)
        )
        new_matches = {
            job_id: match for job_id, match in zip(to_calculate, results) if match
        }
        if new_matches:
            await self.cache.set_many(user_id, list(new_matches.values()))

        items: list[BatchMatchItem] = []
        failed: list[str] = []
        cached_count = 0
        for job_id in job_ids:
            cached_match = cached.get(job_id)
            if cached_match is not None:
                cached_count += 1
                items.append(BatchMatchItem(job_id=job_id, match=cached_match, cached=True))
            elif job_id in new_matches:
                items.append(
                    BatchMatchItem(job_id=job_id, match=new_matches[job_id], cached=False)
                )
            else:
                failed.append(job_id)

        calculated_count = len(job_ids) - cached_count - len(failed)

        if options is not None and options.min_score is not None:
            items = [i for i in items if i.match.score.overall >= options.min_score]

        elapsed_ms = (time.perf_counter() - start) * 1000
        stats = BatchStats(
            total=len(job_ids),
            cached=cached_count,
            calculated=calculated_count,
            failed=len(failed),
            processing_time_ms=elapsed_ms,
        )

        logger.info(
            "Batch match calculation completed user_id=%s total=%d cached=%d "
            "calculated=%d failed=%d elapsed_ms=%.1f",
            user_id,
            stats.total,
            stats.cached,
            stats.calculated,
            stats.failed,
            elapsed_ms,
        )
        return BatchMatchResult(matches=items, stats=stats, failed_job_ids=failed)

    async def backfill(
        self,
        candidate: CandidateProfile,
        job_ids: list[str],
        options: MatchingOptions | None = None,
    ) -> BackfillResult:
        """Compute and cache scores for jobs that have no cached entry."""
        cached = 0
        calculated = 0
        failed = 0
        user_id = candidate.user_id

        for job_id in dict.fromkeys(job_ids):
            if await self.cache.get(user_id, job_id) is not None:
                cached += 1
                continue

            match = await self._calculate_one(candidate, job_id, options)
            if match is None:
                failed += 1
                continue

            await self.cache.set(user_id, job_id, match)
            calculated += 1

        logger.info(
            "Backfill completed user_id=%s cached=%d calculated=%d failed=%d",
            user_id,
            cached,
            calculated,
            failed,
        )
        return BackfillResult(cached=cached, calculated=calculated, failed=failed)

    async def _calculate_one(
        self,
        candidate: CandidateProfile,
        job_id: str,
        options: MatchingOptions | None,
    ) -> JobCandidateMatch | None:
        """Score one job; failures are logged and returned as None."""
        try:
            job = await self.job_source.get_job(job_id)
            if job is None:
                logger.warning("Job not found job_id=%s", job_id)
                return None

            include_inactive = options is not None and options.include_inactive
            if job.status != "active" and not include_inactive:
                logger.warning("Job not active job_id=%s status=%s", job_id, job.status)
                return None

            result = await self.engine.calculate_match(job, candidate, options)
            if result.error is not None:
                logger.warning(
                    "Match calculation failed user_id=%s job_id=%s: %s",
                    candidate.user_id,
                    job_id,
                    result.error.message,
                )
                return None

            # Key by the requested id even if the record uses another identifier.
            return result.unwrap().model_copy(update={"job_id": job_id})
        except Exception as e:
            logger.error(
                "Error calculating match user_id=%s job_id=%s: %s",
                candidate.user_id,
                job_id,
                e,
            )
            return None

    def _validate_job_ids(self, job_ids: list[str]) -> None:
        if not job_ids:
            raise ValueError("job_ids is required and cannot be empty")
        if len(job_ids) > self.config.batch_max_jobs:
            raise ValueError(
                f"Maximum {self.config.batch_max_jobs} jobs per request "
                f"(got {len(job_ids)})"
            )
