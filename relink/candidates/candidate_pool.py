"""
Candidate pool for node discovery and failover.

Combines the remote directory, the on-disk cache and the health probe
into the ordered list of nodes the connection layer walks through.

Ordering:
- Only eligible candidates (required protocol version, complete host,
  port and credential) are kept, de-duplicated by ``host:port``.
- Secure candidates sort ahead of plain ones; otherwise the directory
  order is preserved.

Failure tracking:
- ``next_candidate()`` marks the current node failed and scans for the
  first candidate that is neither failed nor dead on a health probe.
- When a scan comes up empty the failed set is cleared, the directory is
  re-fetched and the scan runs once more.

Usage:
    pool = CandidatePool(PoolConfig(data_directory="/var/lib/relink"))

    candidate = await pool.initial_candidate()
    ...
    await pool.mark_working(candidate)

    # On failure
    candidate = await pool.next_candidate()
"""

import asyncio
import time

from relink.health import NodeHealthProbe
from relink.logging import Logger
from relink.logging.relink_logging_models import (
    DirectoryError,
    DirectoryInfo,
    DirectoryWarning,
    NodeDebug,
    NodeError,
    NodeInfo,
    NodeWarning,
)

from .candidate_store import CandidateStore
from .directory_client import DirectoryClient, DirectoryFetchError
from .models import Candidate, CandidateStats, PoolConfig


class CandidatePool:
    """
    Ordered, cached pool of candidate nodes.

    Thread Safety:
        This class is NOT thread-safe. It is meant to be driven by a single
        failover controller on one event loop.
    """

    def __init__(
        self,
        config: PoolConfig | None = None,
        directory: DirectoryClient | None = None,
        probe: NodeHealthProbe | None = None,
        store: CandidateStore | None = None,
        logger: Logger | None = None,
    ) -> None:
        if config is None:
            config = PoolConfig()

        self._config = config
        self._directory = directory or DirectoryClient(
            config.directory_url,
            fallback_directory_url=config.fallback_directory_url,
            timeout=config.directory_timeout,
            user_agent=config.user_agent,
        )
        self._probe = probe or NodeHealthProbe(
            timeout_seconds=config.health_probe_timeout,
        )
        self._store = store or CandidateStore(
            config.data_directory,
            node_filename=config.node_filename,
            nodes_filename=config.nodes_filename,
        )
        self._logger = logger or Logger()

        self._candidates: list[Candidate] = []
        self._failed: set[str] = set()
        self._current: Candidate | None = None

        self._last_fetch_monotonic: float | None = None
        self._last_fetch_time: float = 0.0

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def candidates(self) -> list[Candidate]:
        return list(self._candidates)

    @property
    def current(self) -> Candidate | None:
        return self._current

    @property
    def failed_keys(self) -> frozenset[str]:
        return frozenset(self._failed)

    @property
    def size(self) -> int:
        return len(self._candidates)

    def stats(self) -> CandidateStats:
        return CandidateStats(
            total=len(self._candidates),
            failed_count=len(self._failed),
            current=self._current,
            last_fetch_time=self._last_fetch_time,
        )

    def invalidate(self) -> None:
        """Forget the fetch cooldown and the failed set."""
        self._last_fetch_monotonic = None
        self._failed.clear()

    def _in_cooldown(self) -> bool:
        if self._last_fetch_monotonic is None:
            return False

        elapsed = time.monotonic() - self._last_fetch_monotonic
        return elapsed < self._config.fetch_cooldown_seconds

    async def fetch(self, force: bool = False) -> list[Candidate]:
        """
        Refresh the pool from the directory.

        Within the fetch cooldown the in-memory list (or the disk cache when
        memory is empty) is returned untouched. Never raises.
        """
        if not force and self._in_cooldown():
            if not self._candidates:
                self._candidates = await self._load_cached()

            return list(self._candidates)

        self._last_fetch_monotonic = time.monotonic()
        self._last_fetch_time = time.time()

        candidates = await self._fetch_source(
            "primary",
            self._directory.fetch_primary,
        )

        if not candidates and self._directory.has_fallback:
            candidates = await self._fetch_source(
                "fallback",
                self._directory.fetch_fallback,
            )

        if not candidates:
            cached = await self._load_cached()

            if cached:
                await self._logger.log(
                    DirectoryInfo(
                        message=f"Using {len(cached)} cached nodes",
                        source="cache",
                        node_count=len(cached),
                    ),
                    name="relink",
                )

                self._candidates = cached

            elif self._candidates:
                await self._logger.log(
                    DirectoryWarning(
                        message=f"Directory unavailable, keeping {len(self._candidates)} known nodes",
                        source="memory",
                        node_count=len(self._candidates),
                    ),
                    name="relink",
                )

            else:
                await self._logger.log(
                    DirectoryError(
                        message="No nodes available from any directory source or cache",
                        source="cache",
                    ),
                    name="relink",
                )

            return list(self._candidates)

        self._candidates = candidates

        loop = asyncio.get_running_loop()
        saved = await loop.run_in_executor(
            None,
            self._store.save_nodes,
            candidates,
        )

        if not saved:
            await self._logger.log(
                DirectoryWarning(
                    message=f"Could not write directory cache to {self._store.nodes_path}",
                    source="cache",
                    node_count=len(candidates),
                ),
                name="relink",
            )

        await self._logger.log(
            DirectoryInfo(
                message=f"{len(candidates)} {self._config.required_version} nodes available",
                source="directory",
                node_count=len(candidates),
            ),
            name="relink",
        )

        return list(candidates)

    async def _fetch_source(self, source: str, fetch) -> list[Candidate]:
        try:
            records = await fetch()

        except DirectoryFetchError as error:
            await self._logger.log(
                DirectoryWarning(
                    message=str(error),
                    source=source,
                ),
                name="relink",
            )

            return []

        candidates = self._select_eligible(records)

        await self._logger.log(
            DirectoryInfo(
                message=f"Fetched {len(records)} nodes from {source} directory ({len(candidates)} eligible)",
                source=source,
                node_count=len(candidates),
            ),
            name="relink",
        )

        return candidates

    def _select_eligible(self, records: list) -> list[Candidate]:
        eligible: list[Candidate] = []
        seen: set[str] = set()

        for record in records:
            candidate = Candidate.from_directory(
                record,
                required_version=self._config.required_version,
            )

            if candidate is None or candidate.key in seen:
                continue

            seen.add(candidate.key)
            eligible.append(candidate)

        # sorted() is stable, so directory order survives within each group.
        return sorted(eligible, key=lambda candidate: not candidate.secure)

    async def _load_cached(self) -> list[Candidate]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            self._store.load_nodes,
            self._config.cache_ttl_seconds,
        )

    async def next_candidate(self) -> Candidate | None:
        """
        Mark the current candidate failed and move to the next usable one.

        Returns None when the pool is empty after a forced refresh, or when
        every candidate failed its health probe (unless
        ``retry_first_when_exhausted`` is set).
        """
        if self._current:
            self._failed.add(self._current.key)

            await self._logger.log(
                NodeWarning(
                    message=f"Node marked failed: {self._current.key}",
                    node_key=self._current.key,
                ),
                name="relink",
            )

        candidate = await self._scan()

        if candidate is None:
            await self._logger.log(
                NodeInfo(
                    message="Refreshing node list",
                    node_key=self._current.key if self._current else None,
                ),
                name="relink",
            )

            self._failed.clear()
            await self.fetch(force=True)

            if not self._candidates:
                await self._logger.log(
                    NodeError(
                        message="No nodes available after refresh",
                    ),
                    name="relink",
                )

                return None

            candidate = await self._scan()

        if candidate is None and self._config.retry_first_when_exhausted:
            self._failed.clear()
            candidate = self._candidates[0]

            await self._logger.log(
                NodeWarning(
                    message=f"All nodes failed health probes, retrying first node: {candidate.key}",
                    node_key=candidate.key,
                ),
                name="relink",
            )

        if candidate is None:
            await self._logger.log(
                NodeError(
                    message=f"All {len(self._candidates)} nodes failed health probes",
                ),
                name="relink",
            )

            return None

        self._current = candidate

        await self._logger.log(
            NodeInfo(
                message=f"Trying node: {candidate.key} (secure: {candidate.secure})",
                node_key=candidate.key,
            ),
            name="relink",
        )

        return candidate

    async def _scan(self) -> Candidate | None:
        for candidate in list(self._candidates):
            if candidate.key in self._failed:
                continue

            response = await self._probe.probe(candidate)

            if not response.alive:
                self._failed.add(candidate.key)

                await self._logger.log(
                    NodeDebug(
                        message=f"Skipping unhealthy node: {candidate.key} ({response.message})",
                        node_key=candidate.key,
                        classification=response.result.value,
                    ),
                    name="relink",
                )

                continue

            return candidate

        return None

    async def mark_working(self, candidate: Candidate | None = None) -> None:
        """Make ``candidate`` (default: the current one) current and persist it."""
        if candidate is None:
            candidate = self._current

        if candidate is None:
            return

        self._failed.discard(candidate.key)
        self._current = candidate

        loop = asyncio.get_running_loop()
        saved = await loop.run_in_executor(
            None,
            self._store.save_node,
            candidate,
        )

        if not saved:
            await self._logger.log(
                NodeWarning(
                    message=f"Could not persist working node to {self._store.node_path}",
                    node_key=candidate.key,
                ),
                name="relink",
            )

        await self._logger.log(
            NodeInfo(
                message=f"Node connected: {candidate.key}",
                node_key=candidate.key,
            ),
            name="relink",
        )

    async def load_persisted(self) -> Candidate | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            self._store.load_node,
        )

    async def initial_candidate(self) -> Candidate | None:
        """
        Prefer the last known good node; otherwise fetch and pick the first
        usable candidate.
        """
        persisted = await self.load_persisted()

        if persisted:
            self._current = persisted

            await self._logger.log(
                NodeInfo(
                    message=f"Using persisted node: {persisted.key}",
                    node_key=persisted.key,
                ),
                name="relink",
            )

            return persisted

        await self.fetch()
        return await self.next_candidate()

    async def close(self) -> None:
        await self._directory.close()
        await self._probe.close()
