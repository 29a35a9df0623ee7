"""Match score caches.

Caches are keyed by (user_id, job_id) and hold whole JobCandidateMatch
objects with a fixed time-to-live. A read past expiry counts as a miss and
removes the entry. Writes to the same key are last-write-wins.

Two implementations share the MatchCache protocol:

- InMemoryMatchCache: process-local dict, for development, tests and
  single-process deployments.
- SqliteMatchCache: aiosqlite-backed, shared by every process that points
  at the same database file.
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

import aiosqlite
from pydantic import ValidationError

from src.matching.config import MatchingConfig, get_matching_config
from src.matching.models import JobCandidateMatch
from src.utils.logging import get_logger

logger = get_logger("matching.cache")


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache statistics."""

    size: int
    hits: int
    misses: int
    hit_rate: float
    expired: int

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "hitRate": round(self.hit_rate, 2),
            "expired": self.expired,
        }


@dataclass(frozen=True)
class CacheEntry:
    """A cached match with its expiry (epoch seconds)."""

    match: JobCandidateMatch
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@runtime_checkable
class MatchCache(Protocol):
    """Capability interface for match score caches."""

    async def get(self, user_id: str, job_id: str) -> JobCandidateMatch | None: ...

    async def get_many(
        self, user_id: str, job_ids: Iterable[str]
    ) -> dict[str, JobCandidateMatch | None]: ...

    async def set(
        self,
        user_id: str,
        job_id: str,
        match: JobCandidateMatch,
        ttl_seconds: float | None = None,
    ) -> None: ...

    async def set_many(
        self,
        user_id: str,
        matches: Iterable[JobCandidateMatch],
        ttl_seconds: float | None = None,
    ) -> None: ...

    async def invalidate(self, user_id: str, job_id: str) -> bool: ...

    async def invalidate_user(self, user_id: str) -> int: ...

    async def invalidate_job(self, job_id: str) -> int: ...

    async def clear(self) -> None: ...

    async def cleanup(self) -> int: ...

    async def get_stats(self) -> CacheStats: ...


def _hit_rate(hits: int, misses: int) -> float:
    total = hits + misses
    return hits / total if total else 0.0


def _resolve_ttl(ttl_seconds: float | None, default: float) -> float:
    if ttl_seconds is None:
        return default
    if ttl_seconds < 0:
        raise ValueError(f"ttl_seconds must be >= 0 (got {ttl_seconds})")
    return ttl_seconds


class InMemoryMatchCache:
    """Process-local TTL cache. Unbounded apart from TTL eviction."""

    def __init__(
        self,
        config: MatchingConfig | None = None,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or get_matching_config()
        self.default_ttl = _resolve_ttl(ttl_seconds, self.config.cache_ttl_seconds)
        self._clock = clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, user_id: str, job_id: str) -> JobCandidateMatch | None:
        key = (user_id, job_id)
        entry = self._entries.get(key)

        if entry is None:
            self._misses += 1
            return None

        now = self._clock()
        if entry.is_expired(now):
            self._entries.pop(key, None)
            self._misses += 1
            logger.debug("Cache entry expired user_id=%s job_id=%s", user_id, job_id)
            return None

        self._hits += 1
        logger.debug(
            "Cache hit user_id=%s job_id=%s age_s=%.1f",
            user_id,
            job_id,
            now - entry.created_at,
        )
        return entry.match

    async def get_many(
        self, user_id: str, job_ids: Iterable[str]
    ) -> dict[str, JobCandidateMatch | None]:
        return {job_id: await self.get(user_id, job_id) for job_id in job_ids}

    async def set(
        self,
        user_id: str,
        job_id: str,
        match: JobCandidateMatch,
        ttl_seconds: float | None = None,
    ) -> None:
        ttl = _resolve_ttl(ttl_seconds, self.default_ttl)
        now = self._clock()
        self._entries[(user_id, job_id)] = CacheEntry(
            match=match, created_at=now, expires_at=now + ttl
        )
        logger.debug(
            "Cached match score user_id=%s job_id=%s overall=%d ttl_s=%.0f",
            user_id,
            job_id,
            match.score.overall,
            ttl,
        )

    async def set_many(
        self,
        user_id: str,
        matches: Iterable[JobCandidateMatch],
        ttl_seconds: float | None = None,
    ) -> None:
        for match in matches:
            await self.set(user_id, match.job_id, match, ttl_seconds)

    async def invalidate(self, user_id: str, job_id: str) -> bool:
        deleted = self._entries.pop((user_id, job_id), None) is not None
        if deleted:
            logger.debug("Invalidated cache entry user_id=%s job_id=%s", user_id, job_id)
        return deleted

    async def invalidate_user(self, user_id: str) -> int:
        keys = [key for key in self._entries if key[0] == user_id]
        for key in keys:
            del self._entries[key]
        logger.info("Invalidated user cache user_id=%s entries=%d", user_id, len(keys))
        return len(keys)

    async def invalidate_job(self, job_id: str) -> int:
        keys = [key for key in self._entries if key[1] == job_id]
        for key in keys:
            del self._entries[key]
        logger.info("Invalidated job cache job_id=%s entries=%d", job_id, len(keys))
        return len(keys)

    async def clear(self) -> None:
        size = len(self._entries)
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        logger.info("Cleared match score cache entries=%d", size)

    async def cleanup(self) -> int:
        """Remove expired entries; returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Cleaned up expired cache entries=%d", len(expired))
        return len(expired)

    async def get_stats(self) -> CacheStats:
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))
        return CacheStats(
            size=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            hit_rate=_hit_rate(self._hits, self._misses),
            expired=expired,
        )


CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS match_cache (
    user_id TEXT NOT NULL,
    job_id TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at REAL NOT NULL,
    expires_at REAL NOT NULL,
    PRIMARY KEY (user_id, job_id)
)
"""

CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_match_cache_job ON match_cache(job_id);
CREATE INDEX IF NOT EXISTS idx_match_cache_expires ON match_cache(expires_at);
"""


class SqliteMatchCache:
    """SQLite-backed match cache shared across processes on one host.

    Hit and miss counters are kept per process.
    """

    def __init__(
        self,
        db_path: Path | str | None = None,
        config: MatchingConfig | None = None,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or get_matching_config()
        self.db_path = Path(db_path) if db_path is not None else self.config.cache_db_path
        self.default_ttl = _resolve_ttl(ttl_seconds, self.config.cache_ttl_seconds)
        self._clock = clock
        self._connection: aiosqlite.Connection | None = None
        self._initialized = False
        self._hits = 0
        self._misses = 0

    @asynccontextmanager
    async def _get_connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Yield the shared connection, creating the schema on first use."""
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        if not self._initialized:
            await self._connection.execute(CREATE_TABLE_SQL)
            await self._connection.executescript(CREATE_INDEX_SQL)
            await self._connection.commit()
            self._initialized = True
        yield self._connection

    async def initialize(self) -> None:
        """Create the cache table if needed."""
        async with self._get_connection():
            pass

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._initialized = False

    async def get(self, user_id: str, job_id: str) -> JobCandidateMatch | None:
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT payload, expires_at FROM match_cache "
                "WHERE user_id = ? AND job_id = ?",
                (user_id, job_id),
            )
            row = await cursor.fetchone()

            if row is None:
                self._misses += 1
                return None

            if self._clock() > row["expires_at"]:
                await conn.execute(
                    "DELETE FROM match_cache WHERE user_id = ? AND job_id = ?",
                    (user_id, job_id),
                )
                await conn.commit()
                self._misses += 1
                logger.debug("Cache entry expired user_id=%s job_id=%s", user_id, job_id)
                return None

        try:
            match = JobCandidateMatch.model_validate_json(row["payload"])
        except ValidationError as e:
            logger.warning(
                "Discarding unreadable cache entry user_id=%s job_id=%s: %s",
                user_id,
                job_id,
                e,
            )
            await self.invalidate(user_id, job_id)
            self._misses += 1
            return None

        self._hits += 1
        logger.debug("Cache hit user_id=%s job_id=%s", user_id, job_id)
        return match

    async def get_many(
        self, user_id: str, job_ids: Iterable[str]
    ) -> dict[str, JobCandidateMatch | None]:
        return {job_id: await self.get(user_id, job_id) for job_id in job_ids}

    async def set(
        self,
        user_id: str,
        job_id: str,
        match: JobCandidateMatch,
        ttl_seconds: float | None = None,
    ) -> None:
        await self._write(user_id, [(job_id, match)], ttl_seconds)

    async def set_many(
        self,
        user_id: str,
        matches: Iterable[JobCandidateMatch],
        ttl_seconds: float | None = None,
    ) -> None:
        await self._write(
            user_id, [(match.job_id, match) for match in matches], ttl_seconds
        )

    async def _write(
        self,
        user_id: str,
        items: list[tuple[str, JobCandidateMatch]],
        ttl_seconds: float | None,
    ) -> None:
        ttl = _resolve_ttl(ttl_seconds, self.default_ttl)
        now = self._clock()
        rows = [
            (user_id, job_id, match.model_dump_json(), now, now + ttl)
            for job_id, match in items
        ]
        if not rows:
            return

        async with self._get_connection() as conn:
            await conn.executemany(
                """
                INSERT OR REPLACE INTO match_cache (
                    user_id, job_id, payload, created_at, expires_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                rows,
            )
            await conn.commit()
        logger.debug("Cached match scores user_id=%s count=%d", user_id, len(rows))

    async def invalidate(self, user_id: str, job_id: str) -> bool:
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM match_cache WHERE user_id = ? AND job_id = ?",
                (user_id, job_id),
            )
            await conn.commit()
        return cursor.rowcount > 0

    async def invalidate_user(self, user_id: str) -> int:
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM match_cache WHERE user_id = ?", (user_id,)
            )
            await conn.commit()
        logger.info(
            "Invalidated user cache user_id=%s entries=%d", user_id, cursor.rowcount
        )
        return cursor.rowcount

    async def invalidate_job(self, job_id: str) -> int:
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM match_cache WHERE job_id = ?", (job_id,)
            )
            await conn.commit()
        logger.info("Invalidated job cache job_id=%s entries=%d", job_id, cursor.rowcount)
        return cursor.rowcount

    async def clear(self) -> None:
        async with self._get_connection() as conn:
            cursor = await conn.execute("DELETE FROM match_cache")
            await conn.commit()
        self._hits = 0
        self._misses = 0
        logger.info("Cleared match score cache entries=%d", cursor.rowcount)

    async def cleanup(self) -> int:
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                "DELETE FROM match_cache WHERE expires_at < ?", (self._clock(),)
            )
            await conn.commit()
        if cursor.rowcount:
            logger.info("Cleaned up expired cache entries=%d", cursor.rowcount)
        return cursor.rowcount

    async def get_stats(self) -> CacheStats:
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT COUNT(*) AS size,
                       COALESCE(SUM(CASE WHEN expires_at < ? THEN 1 ELSE 0 END), 0)
                           AS expired
                FROM match_cache
                """,
                (self._clock(),),
            )
            row = await cursor.fetchone()

        return CacheStats(
            size=int(row["size"]),
            hits=self._hits,
            misses=self._misses,
            hit_rate=_hit_rate(self._hits, self._misses),
            expired=int(row["expired"]),
        )


def create_match_cache(config: MatchingConfig | None = None) -> MatchCache:
    """Build the cache backend selected by `config.cache_backend`."""
    config = config or get_matching_config()
    if config.cache_backend == "sqlite":
        return SqliteMatchCache(config=config)
    return InMemoryMatchCache(config=config)
