"""
Connection supervisor for the single logical node slot.

Owns every interaction with the node client library: tearing down the
previous connection, creating the new one, and waiting for its first
connect/error/disconnect signal within a bounded time.

Attempts never raise to the caller. Each attempt returns a
``ConnectResult`` and the caller decides what happens next.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from relink.logging import Logger
from relink.logging.relink_logging_models import (
    NodeDebug,
    NodeInfo,
    NodeWarning,
)

from .errors import (
    ConnectionClosedError,
    ConnectionFailedError,
    ConnectionTimeoutError,
    NodeCreationError,
)
from .models import (
    ConnectResult,
    DESTROY_REASON,
    DisconnectReason,
    MAIN_NODE_ID,
    NodeConfig,
)
from .node_connection import NodeConnection, NodeManager
from .node_event_subscription import NodeEventSubscription

if TYPE_CHECKING:
    from relink.candidates import CandidatePool


MAX_SCAN_ATTEMPTS = 20
DEFAULT_SCAN_ATTEMPTS = 10


class ConnectionSupervisor:
    """
    Example usage:
        supervisor = ConnectionSupervisor(manager)

        result = await supervisor.connect_once(
            NodeConfig.from_candidate(candidate),
            timeout=15.0,
        )

        if not result:
            print(result.error)
    """

    def __init__(
        self,
        manager: NodeManager | None = None,
        node_id: str = MAIN_NODE_ID,
        logger: Logger | None = None,
    ) -> None:
        self._manager = manager
        self._node_id = node_id
        self._logger = logger or Logger()

    @property
    def node_id(self) -> str:
        return self._node_id

    @property
    def manager(self) -> NodeManager | None:
        return self._manager

    def is_ready(self) -> bool:
        return self._manager is not None

    def current_connection(self) -> NodeConnection | None:
        if self._manager is None:
            return None

        return self._manager.get_connection(self._node_id)

    def is_connected(self) -> bool:
        connection = self.current_connection()
        return bool(connection and connection.connected)

    async def teardown(self, reason: str = DESTROY_REASON) -> None:
        """
        Stop and destroy the connection under the fixed id, if any.

        Keepalive timers are stopped before ``destroy`` so none can fire
        against a disposed connection.
        """
        connection = self.current_connection()
        if connection is None:
            return

        self._manager.remove_connection(self._node_id)
        await self._dispose(connection, reason)

    async def _dispose(self, connection: NodeConnection, reason: str) -> None:
        try:
            connection.stop_keepalive()
            await connection.destroy(reason=reason, force=True)

        except Exception as error:
            await self._logger.log(
                NodeDebug(
                    message=f"Ignoring error while destroying connection: {error}",
                    node_key=self._node_id,
                ),
                name="relink",
            )

    async def connect_once(
        self,
        config: NodeConfig,
        timeout: float = 15.0,
    ) -> ConnectResult:
        """
        Replace the connection under the fixed id and wait for it to connect.

        Resolves on the first connect event (success), the first error event
        or disconnect of the new connection (failure), or the timeout
        (failure). Listeners are always released before returning.
        """
        start = time.monotonic()

        if self._manager is None:
            return ConnectResult(
                success=False,
                node_key=config.key,
                error=NodeCreationError(config.key, "node manager is not ready"),
            )

        await self.teardown()

        loop = asyncio.get_running_loop()
        outcome: asyncio.Future[None] = loop.create_future()
        created: list[NodeConnection] = []

        def is_new_connection(connection: NodeConnection) -> bool:
            return not created or connection is created[0]

        def on_connect(connection: NodeConnection) -> None:
            if is_new_connection(connection) and not outcome.done():
                outcome.set_result(None)

        def on_error(connection: NodeConnection, error: Any) -> None:
            if not is_new_connection(connection) or outcome.done():
                return

            if not isinstance(error, BaseException):
                error = ConnectionFailedError(config.key, str(error))

            outcome.set_exception(error)

        def on_disconnect(connection: NodeConnection, reason: Any) -> None:
            if not created or connection is not created[0] or outcome.done():
                return

            parsed = DisconnectReason.parse(reason)
            outcome.set_exception(
                ConnectionClosedError(config.key, parsed.reason, parsed.code)
            )

        with NodeEventSubscription(
            self._manager,
            self._node_id,
            on_connect=on_connect,
            on_error=on_error,
            on_disconnect=on_disconnect,
        ):
            try:
                connection = self._manager.create_connection(config)

            except Exception as error:
                return self._failed(
                    config,
                    NodeCreationError(config.key, f"Failed to create node: {error}"),
                    start,
                )

            if connection is None:
                return self._failed(
                    config,
                    NodeCreationError(config.key, "no connection object returned"),
                    start,
                )

            created.append(connection)

            try:
                await asyncio.wait_for(
                    self._wait_for_connect(connection, outcome),
                    timeout=timeout,
                )

            except asyncio.TimeoutError:
                await self.teardown(reason="timeout")
                return self._failed(
                    config,
                    ConnectionTimeoutError(config.key, timeout),
                    start,
                )

            except Exception as error:
                await self.teardown(reason="error")
                return self._failed(config, error, start)

        return ConnectResult(
            success=True,
            node_key=config.key,
            elapsed_ms=(time.monotonic() - start) * 1000,
        )

    async def _wait_for_connect(
        self,
        connection: NodeConnection,
        outcome: asyncio.Future[None],
    ) -> None:
        if connection.connected:
            if not outcome.done():
                outcome.set_result(None)

        elif not connection.connecting:
            try:
                await connection.connect()

            except Exception:
                if outcome.done() and not outcome.cancelled():
                    outcome.exception()

                raise

            if connection.connected and not outcome.done():
                outcome.set_result(None)

        await outcome

    def _failed(
        self,
        config: NodeConfig,
        error: BaseException,
        start: float,
    ) -> ConnectResult:
        return ConnectResult(
            success=False,
            node_key=config.key,
            error=error,
            elapsed_ms=(time.monotonic() - start) * 1000,
        )

    async def fast_scan(
        self,
        pool: CandidatePool,
        max_attempts: int | None = None,
        per_attempt_timeout: float = 15.0,
    ) -> bool:
        """
        Startup scan: walk the pool until a node connects.

        The first attempt prefers the persisted node; later attempts advance
        through the pool. Returns True as soon as one node connects.
        """
        if max_attempts is None:
            max_attempts = min(pool.size, MAX_SCAN_ATTEMPTS) or DEFAULT_SCAN_ATTEMPTS

        max_attempts = min(max_attempts, MAX_SCAN_ATTEMPTS)

        for attempt in range(max_attempts):
            if attempt == 0:
                candidate = await pool.initial_candidate()

            else:
                candidate = await pool.next_candidate()

            if candidate is None:
                break

            result = await self.connect_once(
                NodeConfig.from_candidate(candidate, node_id=self._node_id),
                timeout=per_attempt_timeout,
            )

            if result.success:
                await pool.mark_working(candidate)
                return True

            await self._logger.log(
                NodeWarning(
                    message=f"Startup connection to {candidate.key} failed: {result.error}",
                    node_key=candidate.key,
                    reconnect_attempts=attempt + 1,
                ),
                name="relink",
            )

        await self._logger.log(
            NodeWarning(
                message="Could not connect to any node at startup",
            ),
            name="relink",
        )

        return False

    async def shutdown(self) -> None:
        """Stop keepalive on and destroy every connection the library knows."""
        if self._manager is None:
            return

        connections = list(self._manager.connections())

        for connection in connections:
            self._manager.remove_connection(connection.node_id)
            await self._dispose(connection, DESTROY_REASON)

        if connections:
            await self._logger.log(
                NodeInfo(
                    message=f"Destroyed {len(connections)} node connection(s)",
                ),
                name="relink",
            )
