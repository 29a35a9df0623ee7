"""Integration tests for matching with a shared SQLite score cache."""

import pytest

from src.matching.batch import BatchMatchService, InMemoryJobSource
from src.matching.cache import SqliteMatchCache
from src.matching.embeddings import StaticJobEmbeddings
from src.matching.engine import MatchingEngine
from src.matching.models import Job, MatchingOptions


class TestBatchWithSqliteCache:
    """Score, cache, invalidate and re-score across service instances."""

    @pytest.fixture
    def jobs(self, backend_job):
        return [
            backend_job,
            Job(id="job-2", title="Python Developer", skills=["Python", "Docker"]),
            Job(id="job-3", title="Frontend Engineer", skills=["React", "TypeScript"]),
        ]

    @pytest.fixture
    def build_service(self, matching_config, fixed_now, jobs, tmp_path):
        caches: list[SqliteMatchCache] = []

        def _build() -> BatchMatchService:
            cache = SqliteMatchCache(tmp_path / "match_cache.db", matching_config)
            caches.append(cache)
            engine = MatchingEngine(
                matching_config,
                embedding_source=StaticJobEmbeddings(
                    {"job-1": [1.0, 0.0], "job-2": [0.6, 0.8], "job-3": [0.0, 1.0]}
                ),
                clock=lambda: fixed_now,
            )
            return BatchMatchService(
                engine=engine,
                cache=cache,
                job_source=InMemoryJobSource(jobs),
                config=matching_config,
            )

        yield _build

    @pytest.fixture
    async def services(self, build_service):
        first, second = build_service(), build_service()
        yield first, second
        await first.cache.close()
        await second.cache.close()

    @pytest.mark.asyncio
    async def test_scores_are_shared_between_instances(
        self, services, backend_candidate
    ):
        """A second process reuses scores the first one computed."""
        first, second = services
        candidate = backend_candidate.model_copy(update={"embedding": [1.0, 0.0]})
        job_ids = ["job-1", "job-2", "job-3"]

        computed = await first.score_jobs(candidate, job_ids)
        reused = await second.score_jobs(candidate, job_ids)

        assert computed.stats.calculated == 3
        assert reused.stats.cached == 3
        assert [i.match for i in reused.matches] == [i.match for i in computed.matches]

        scores = {item.job_id: item.match.score for item in computed.matches}
        assert scores["job-1"].semantic == 100
        assert scores["job-2"].semantic == 60
        assert scores["job-3"].semantic == 0
        assert scores["job-1"].overall > scores["job-2"].overall > scores["job-3"].overall

    @pytest.mark.asyncio
    async def test_invalidating_a_user_forces_recalculation(
        self, services, backend_candidate
    ):
        first, second = services

        await first.score_jobs(backend_candidate, ["job-1", "job-2"])
        assert await second.cache.invalidate_user("user-1") == 2

        result = await first.score_jobs(backend_candidate, ["job-1", "job-2"])

        assert result.stats.calculated == 2
        assert result.stats.cached == 0

    @pytest.mark.asyncio
    async def test_backfill_then_filtered_batch(self, services, backend_candidate):
        first, second = services

        backfill = await first.backfill(backend_candidate, ["job-1", "job-2", "job-3"])
        result = await second.score_jobs(
            backend_candidate,
            ["job-1", "job-2", "job-3"],
            MatchingOptions(min_score=50),
        )

        assert backfill.calculated == 3
        assert result.stats.cached == 3
        assert [item.job_id for item in result.matches] == ["job-1"]
        stats = await second.cache.get_stats()
        assert stats.size == 3
        assert stats.hits == 3
