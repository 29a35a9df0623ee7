"""Tests for the match score caches."""

from __future__ import annotations

import aiosqlite
import pytest


class FakeClock:
    """Settable epoch-seconds clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_cache(matching_config, clock):
    from src.matching.cache import InMemoryMatchCache

    return InMemoryMatchCache(matching_config, ttl_seconds=60, clock=clock)


@pytest.fixture
async def sqlite_cache(matching_config, clock, tmp_path):
    from src.matching.cache import SqliteMatchCache

    cache = SqliteMatchCache(
        tmp_path / "cache.db", matching_config, ttl_seconds=60, clock=clock
    )
    await cache.initialize()
    yield cache
    await cache.close()


@pytest.fixture(params=["memory", "sqlite"])
def cache(request, memory_cache, sqlite_cache):
    """Run shared behavior tests against both backends."""
    if request.param == "memory":
        return memory_cache
    return sqlite_cache


class TestCacheBehavior:
    """Behavior every MatchCache backend must share."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache, make_match):
        from src.matching.cache import MatchCache

        assert isinstance(cache, MatchCache)
        assert await cache.get("user-1", "job-1") is None

        await cache.set("user-1", "job-1", make_match())

        cached = await cache.get("user-1", "job-1")
        assert cached == make_match()

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, cache, clock, make_match):
        await cache.set("user-1", "job-1", make_match())

        clock.advance(60)
        assert await cache.get("user-1", "job-1") is not None

        clock.advance(0.001)
        assert await cache.get("user-1", "job-1") is None

        stats = await cache.get_stats()
        assert stats.size == 0

    @pytest.mark.asyncio
    async def test_per_call_ttl_overrides_default(self, cache, clock, make_match):
        await cache.set("user-1", "job-1", make_match(), ttl_seconds=5)

        clock.advance(6)

        assert await cache.get("user-1", "job-1") is None

    @pytest.mark.asyncio
    async def test_zero_ttl_is_honoured(self, cache, clock, make_match):
        await cache.set("user-1", "job-1", make_match(), ttl_seconds=0)

        clock.advance(0.001)

        assert await cache.get("user-1", "job-1") is None

    @pytest.mark.asyncio
    async def test_negative_ttl_is_rejected(self, cache, make_match):
        with pytest.raises(ValueError):
            await cache.set("user-1", "job-1", make_match(), ttl_seconds=-1)

    @pytest.mark.asyncio
    async def test_last_write_wins(self, cache, make_match):
        await cache.set("user-1", "job-1", make_match(overall=40))
        await cache.set("user-1", "job-1", make_match(overall=90))

        cached = await cache.get("user-1", "job-1")

        assert cached.score.overall == 90

    @pytest.mark.asyncio
    async def test_get_many_and_set_many(self, cache, make_match):
        await cache.set_many(
            "user-1", [make_match("job-1"), make_match("job-2", overall=20)]
        )

        result = await cache.get_many("user-1", ["job-2", "job-3", "job-1"])

        assert list(result) == ["job-2", "job-3", "job-1"]
        assert result["job-2"].score.overall == 20
        assert result["job-3"] is None
        assert result["job-1"].job_id == "job-1"

    @pytest.mark.asyncio
    async def test_keys_are_scoped_by_user(self, cache, make_match):
        await cache.set("user-1", "job-1", make_match())

        assert await cache.get("user-2", "job-1") is None

    @pytest.mark.asyncio
    async def test_invalidate(self, cache, make_match):
        await cache.set("user-1", "job-1", make_match())

        assert await cache.invalidate("user-1", "job-1") is True
        assert await cache.invalidate("user-1", "job-1") is False
        assert await cache.get("user-1", "job-1") is None

    @pytest.mark.asyncio
    async def test_invalidate_user_and_job(self, cache, make_match):
        await cache.set("user-1", "job-1", make_match("job-1", "user-1"))
        await cache.set("user-1", "job-2", make_match("job-2", "user-1"))
        await cache.set("user-2", "job-1", make_match("job-1", "user-2"))

        assert await cache.invalidate_user("user-1") == 2
        assert await cache.get("user-2", "job-1") is not None

        assert await cache.invalidate_job("job-1") == 1
        assert (await cache.get_stats()).size == 0

    @pytest.mark.asyncio
    async def test_cleanup_removes_only_expired(self, cache, clock, make_match):
        await cache.set("user-1", "job-1", make_match(), ttl_seconds=10)
        await cache.set("user-1", "job-2", make_match("job-2"), ttl_seconds=100)

        clock.advance(50)
        assert (await cache.get_stats()).expired == 1

        assert await cache.cleanup() == 1
        stats = await cache.get_stats()
        assert stats.size == 1
        assert stats.expired == 0

    @pytest.mark.asyncio
    async def test_stats_hit_rate(self, cache, make_match):
        await cache.set("user-1", "job-1", make_match())
        await cache.get("user-1", "job-1")
        await cache.get("user-1", "job-1")
        await cache.get("user-1", "missing")

        stats = await cache.get_stats()

        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)
        assert stats.to_dict()["hitRate"] == 0.67

    @pytest.mark.asyncio
    async def test_clear_resets_entries_and_counters(self, cache, make_match):
        await cache.set("user-1", "job-1", make_match())
        await cache.get("user-1", "job-1")

        await cache.clear()

        stats = await cache.get_stats()
        assert (stats.size, stats.hits, stats.misses, stats.hit_rate) == (0, 0, 0, 0.0)


class TestInMemoryMatchCache:
    @pytest.mark.asyncio
    async def test_expired_read_removes_entry(self, memory_cache, clock, make_match):
        await memory_cache.set("user-1", "job-1", make_match())
        assert len(memory_cache) == 1

        clock.advance(61)
        await memory_cache.get("user-1", "job-1")

        assert len(memory_cache) == 0

    def test_default_ttl_comes_from_config(self, matching_config):
        from src.matching.cache import InMemoryMatchCache

        assert InMemoryMatchCache(matching_config).default_ttl == 86400

    def test_explicit_zero_default_ttl_is_kept(self, matching_config, tmp_path):
        from src.matching.cache import InMemoryMatchCache, SqliteMatchCache

        sqlite_cache = SqliteMatchCache(tmp_path / "c.db", matching_config, ttl_seconds=0)

        assert InMemoryMatchCache(matching_config, ttl_seconds=0).default_ttl == 0
        assert sqlite_cache.default_ttl == 0


class TestSqliteMatchCache:
    @pytest.mark.asyncio
    async def test_entries_are_shared_across_instances(
        self, matching_config, clock, tmp_path, make_match
    ):
        """Two caches on one database file see each other's writes."""
        from src.matching.cache import SqliteMatchCache

        db_path = tmp_path / "shared.db"
        writer = SqliteMatchCache(db_path, matching_config, clock=clock)
        reader = SqliteMatchCache(db_path, matching_config, clock=clock)
        try:
            await writer.set("user-1", "job-1", make_match(overall=81))

            cached = await reader.get("user-1", "job-1")

            assert cached is not None
            assert cached.score.overall == 81
        finally:
            await writer.close()
            await reader.close()

    @pytest.mark.asyncio
    async def test_unreadable_payload_is_discarded(self, sqlite_cache, clock):
        async with aiosqlite.connect(sqlite_cache.db_path) as conn:
            await conn.execute(
                "INSERT INTO match_cache VALUES (?, ?, ?, ?, ?)",
                ("user-1", "job-1", "{not json", clock(), clock() + 60),
            )
            await conn.commit()

        assert await sqlite_cache.get("user-1", "job-1") is None
        assert (await sqlite_cache.get_stats()).size == 0

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, matching_config, tmp_path):
        from src.matching.cache import SqliteMatchCache

        db_path = tmp_path / "nested" / "dir" / "cache.db"
        cache = SqliteMatchCache(db_path, matching_config)
        try:
            await cache.initialize()
            assert db_path.exists()
        finally:
            await cache.close()


class TestCreateMatchCache:
    def test_memory_backend_by_default(self, matching_config):
        from src.matching.cache import InMemoryMatchCache, create_match_cache

        assert isinstance(create_match_cache(matching_config), InMemoryMatchCache)

    def test_sqlite_backend(self, tmp_path):
        from src.matching.cache import SqliteMatchCache, create_match_cache
        from src.matching.config import MatchingConfig

        config = MatchingConfig(
            _env_file=None, cache_backend="sqlite", cache_db_path=tmp_path / "c.db"
        )

        cache = create_match_cache(config)

        assert isinstance(cache, SqliteMatchCache)
        assert cache.db_path == tmp_path / "c.db"
