"""
Tests for the candidate pool.

Tests cover:
- Secure-first stable ordering and de-duplication
- Fetch cooldown and the primary/fallback/cache fallthrough
- Failed-set tracking and exhaustion in next_candidate
- Persisted node preference in initial_candidate
"""

import os

import pytest

from relink.candidates import CandidatePool, CandidateStore, PoolConfig
from relink.logging import Logger

from tests.unit.mocks import (
    MockDirectoryClient,
    MockHealthProbe,
    make_candidate,
    make_record,
)


class TestOrdering:
    """Tests for eligibility filtering and ordering."""

    @pytest.mark.asyncio
    async def test_secure_candidates_sort_first_and_keep_order(self, pool_factory):
        pool = pool_factory(
            primary=[
                make_record("a.example", secure=False),
                make_record("b.example", secure=True),
                make_record("c.example", secure=False),
                make_record("d.example", secure=True),
            ]
        )

        candidates = await pool.fetch()

        assert [candidate.host for candidate in candidates] == [
            "b.example",
            "d.example",
            "a.example",
            "c.example",
        ]

    @pytest.mark.asyncio
    async def test_ineligible_and_duplicate_records_are_dropped(self, pool_factory):
        pool = pool_factory(
            primary=[
                make_record("a.example"),
                make_record("a.example"),
                make_record("b.example", version="v3"),
                make_record("c.example", password=None),
            ]
        )

        candidates = await pool.fetch()

        assert [candidate.key for candidate in candidates] == ["a.example:2333"]


class TestFetch:
    """Tests for fetch cooldown and source fallthrough."""

    @pytest.mark.asyncio
    async def test_cooldown_skips_remote_fetch(self, pool_factory, three_records):
        pool = pool_factory(primary=three_records)

        await pool.fetch()
        await pool.fetch()

        assert pool._directory.primary_calls == 1
        assert pool.size == 3

    @pytest.mark.asyncio
    async def test_force_bypasses_cooldown(self, pool_factory, three_records):
        pool = pool_factory(primary=three_records)

        await pool.fetch()
        await pool.fetch(force=True)

        assert pool._directory.primary_calls == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_still_starts_cooldown(self, pool_factory):
        pool = pool_factory(primary=RuntimeError("down"))

        await pool.fetch()
        await pool.fetch()

        assert pool._directory.primary_calls == 1

    @pytest.mark.asyncio
    async def test_fallback_used_when_primary_fails(self, pool_factory):
        pool = pool_factory(
            primary=RuntimeError("down"),
            fallback=[make_record("fallback.example")],
        )

        candidates = await pool.fetch()

        assert [candidate.host for candidate in candidates] == ["fallback.example"]
        assert pool._directory.fallback_calls == 1

    @pytest.mark.asyncio
    async def test_cache_used_when_all_sources_fail(
        self,
        pool_factory,
        pool_config: PoolConfig,
    ):
        CandidateStore(pool_config.data_directory).save_nodes(
            [make_candidate("cached.example")]
        )
        pool = pool_factory(primary=RuntimeError("down"))

        candidates = await pool.fetch()

        assert [candidate.host for candidate in candidates] == ["cached.example"]

    @pytest.mark.asyncio
    async def test_successful_fetch_writes_cache(
        self,
        pool_factory,
        pool_config: PoolConfig,
        three_records,
    ):
        pool = pool_factory(primary=three_records)

        await pool.fetch()

        cached = CandidateStore(pool_config.data_directory).load_nodes(3600)
        assert len(cached) == 3

    @pytest.mark.asyncio
    async def test_all_sources_empty_gives_empty_pool(self, pool_factory):
        pool = pool_factory(primary=[])

        assert await pool.fetch() == []
        assert pool.size == 0

    @pytest.mark.asyncio
    async def test_fetch_survives_unusable_log_directory(
        self,
        pool_config: PoolConfig,
        mock_probe: MockHealthProbe,
        three_records: list[dict],
        temp_data_directory: str,
    ):
        blocker = os.path.join(temp_data_directory, "not-a-directory")
        with open(blocker, "w"):
            pass

        logger = Logger()
        logger.configure(
            name="relink",
            path=os.path.join(blocker, "logs", "relink.json"),
        )
        pool = CandidatePool(
            pool_config,
            directory=MockDirectoryClient(primary=three_records),
            probe=mock_probe,
            store=CandidateStore(pool_config.data_directory),
            logger=logger,
        )

        try:
            candidates = await pool.fetch()

        finally:
            await logger.close()

        assert [candidate.host for candidate in candidates] == [
            "alpha.example",
            "bravo.example",
            "charlie.example",
        ]


class TestNextCandidate:
    """Tests for failover through the pool."""

    @pytest.mark.asyncio
    async def test_advances_and_marks_current_failed(self, pool_factory, three_records):
        pool = pool_factory(primary=three_records)
        await pool.fetch()

        first = await pool.next_candidate()
        second = await pool.next_candidate()

        assert first.host == "alpha.example"
        assert second.host == "bravo.example"
        assert pool.failed_keys == {"alpha.example:2333"}

    @pytest.mark.asyncio
    async def test_skips_dead_candidates(self, pool_factory, three_records, mock_probe):
        mock_probe.dead.add("alpha.example:2333")
        pool = pool_factory(primary=three_records)
        await pool.fetch()

        candidate = await pool.next_candidate()

        assert candidate.host == "bravo.example"
        assert "alpha.example:2333" in pool.failed_keys

    @pytest.mark.asyncio
    async def test_wraps_around_after_refresh(self, pool_factory, three_records):
        pool = pool_factory(primary=three_records)
        await pool.fetch()

        for _ in range(3):
            await pool.next_candidate()

        candidate = await pool.next_candidate()

        assert candidate.host == "alpha.example"
        assert pool._directory.primary_calls == 2

    @pytest.mark.asyncio
    async def test_empty_pool_returns_none(self, pool_factory):
        pool = pool_factory(primary=[])

        assert await pool.next_candidate() is None

    @pytest.mark.asyncio
    async def test_all_dead_returns_none(self, pool_factory, three_records, mock_probe):
        mock_probe.dead.update(
            {"alpha.example:2333", "bravo.example:2333", "charlie.example:2333"}
        )
        pool = pool_factory(primary=three_records)
        await pool.fetch()

        assert await pool.next_candidate() is None

    @pytest.mark.asyncio
    async def test_all_dead_retries_first_when_configured(
        self,
        pool_factory,
        pool_config: PoolConfig,
        three_records,
        mock_probe,
    ):
        mock_probe.dead.update(
            {"alpha.example:2333", "bravo.example:2333", "charlie.example:2333"}
        )
        pool_config.retry_first_when_exhausted = True
        pool = pool_factory(primary=three_records, config=pool_config)
        await pool.fetch()

        candidate = await pool.next_candidate()

        assert candidate.host == "alpha.example"


class TestWorkingNode:
    """Tests for persistence of the working node."""

    @pytest.mark.asyncio
    async def test_mark_working_persists_and_clears_failed(
        self,
        pool_factory,
        pool_config: PoolConfig,
        three_records,
    ):
        pool = pool_factory(primary=three_records)
        await pool.fetch()
        await pool.next_candidate()
        bravo = await pool.next_candidate()

        await pool.mark_working(make_candidate("alpha.example"))

        assert "alpha.example:2333" not in pool.failed_keys
        assert pool.current.host == "alpha.example"
        assert CandidateStore(pool_config.data_directory).load_node().host == "alpha.example"
        assert bravo.host == "bravo.example"

    @pytest.mark.asyncio
    async def test_persisted_node_preferred_after_restart(
        self,
        pool_factory,
        pool_config: PoolConfig,
        three_records,
    ):
        first_run = pool_factory(primary=three_records)
        await first_run.fetch()
        await first_run.next_candidate()
        working = await first_run.next_candidate()
        await first_run.mark_working(working)

        restarted = pool_factory(primary=three_records)
        candidate = await restarted.initial_candidate()

        assert candidate == working
        assert restarted._directory.primary_calls == 0

    @pytest.mark.asyncio
    async def test_initial_candidate_fetches_without_persisted_node(
        self,
        pool_factory,
        three_records,
    ):
        pool = pool_factory(primary=three_records)

        candidate = await pool.initial_candidate()

        assert candidate.host == "alpha.example"
        assert pool.current == candidate

    @pytest.mark.asyncio
    async def test_stats_and_invalidate(self, pool_factory, three_records):
        pool = pool_factory(primary=three_records)
        await pool.fetch()
        await pool.next_candidate()
        await pool.next_candidate()

        stats = pool.stats()
        assert stats.total == 3
        assert stats.failed_count == 1
        assert stats.current.host == "bravo.example"
        assert stats.last_fetch_time > 0

        pool.invalidate()
        await pool.fetch()

        assert pool.failed_keys == frozenset()
        assert pool._directory.primary_calls == 2
