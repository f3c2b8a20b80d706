"""
Mock implementations for relink tests.

Provides an in-memory node client library (``MockNodeManager`` /
``MockNodeConnection``) that satisfies the adapter protocols, plus stand-ins
for the directory client and health probe so the candidate pool can run
without network access.
"""

import asyncio
import errno
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable

from relink.candidates import Candidate, DirectoryFetchError
from relink.connection import NodeConfig
from relink.health import ProbeResponse, ProbeResult
from relink.logging import Entry, Logger


# Connection behaviors, keyed by "host:port" on MockNodeManager.behaviors
CONNECT = "connect"
REFUSE = "refuse"
UNAUTHORIZED = "unauthorized"
HANG = "hang"
RAISE = "raise"
CLOSE = "close"
REFUSE_THEN_RAISE = "refuse_then_raise"


def make_candidate(
    host: str,
    port: int = 2333,
    secure: bool = False,
    password: str = "youshallnotpass",
) -> Candidate:
    return Candidate(host=host, port=port, password=password, secure=secure)


def make_record(
    host: str,
    port: Any = 2333,
    secure: bool | None = None,
    version: str = "v4",
    password: str | None = "youshallnotpass",
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "host": host,
        "port": port,
        "password": password,
        "version": version,
    }

    if secure is not None:
        record["secure"] = secure

    return record


class MockNodeConnection:
    """Connection handle whose connect outcome is chosen by its manager."""

    def __init__(self, manager: "MockNodeManager", config: NodeConfig) -> None:
        self._manager = manager
        self.config = config
        self.node_id = config.node_id
        self.connected = False
        self.connecting = False
        self.destroyed = False
        self.destroy_reason: str | None = None
        self.keepalive_stopped = False
        self.connect_calls = 0

    async def connect(self) -> None:
        self.connect_calls += 1
        behavior = self._manager.behavior_for(self.config.key)

        if behavior == CONNECT:
            self.connected = True
            self._manager.emit("connect", self)

        elif behavior == REFUSE:
            self._manager.emit(
                "error",
                self,
                ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"),
            )

        elif behavior == UNAUTHORIZED:
            self._manager.emit(
                "error",
                self,
                Exception("Unexpected server response: 401"),
            )

        elif behavior == CLOSE:
            self._manager.emit(
                "disconnect",
                self,
                {"reason": "Connection closed", "code": 1006},
            )

        elif behavior == RAISE:
            raise ConnectionError("socket exploded")

        elif behavior == REFUSE_THEN_RAISE:
            self._manager.emit(
                "error",
                self,
                ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"),
            )
            raise ConnectionError("socket exploded")

    async def destroy(self, reason: str = "destroy", force: bool = False) -> None:
        was_connected = self.connected
        self.connected = False
        self.destroyed = True
        self.destroy_reason = reason

        if was_connected:
            self._manager.emit("disconnect", self, {"reason": reason})

    def stop_keepalive(self) -> None:
        self.keepalive_stopped = True


class MockNodeManager:
    """In-memory registry and event emitter for ``MockNodeConnection``."""

    def __init__(
        self,
        behaviors: dict[str, str] | None = None,
        default_behavior: str = CONNECT,
    ) -> None:
        self.behaviors = behaviors or {}
        self.default_behavior = default_behavior
        self.fail_create = False
        self.created: list[NodeConfig] = []
        self.handles: list[MockNodeConnection] = []
        self._connections: dict[str, MockNodeConnection] = {}
        self._handlers: dict[str, list[Callable[..., Any]]] = defaultdict(list)

    def behavior_for(self, key: str) -> str:
        return self.behaviors.get(key, self.default_behavior)

    def create_connection(self, config: NodeConfig) -> MockNodeConnection:
        if self.fail_create:
            raise RuntimeError("library refused to create node")

        connection = MockNodeConnection(self, config)
        self.created.append(config)
        self.handles.append(connection)
        self._connections[config.node_id] = connection

        return connection

    def get_connection(self, node_id: str) -> MockNodeConnection | None:
        return self._connections.get(node_id)

    def remove_connection(self, node_id: str) -> None:
        self._connections.pop(node_id, None)

    def connections(self) -> list[MockNodeConnection]:
        return list(self._connections.values())

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Callable[..., Any]) -> None:
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    def handler_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._handlers[event])

        return sum(len(handlers) for handlers in self._handlers.values())

    def emit(self, event: str, connection: MockNodeConnection, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            handler(connection, *args)

    def drop(self, reason: str = "Connection lost", code: int | None = None) -> None:
        """Simulate the remote end closing the current connection."""
        for connection in self.connections():
            connection.connected = False
            self.emit("disconnect", connection, {"reason": reason, "code": code})

    def connected_keys(self) -> list[str]:
        return [
            connection.config.key
            for connection in self.connections()
            if connection.connected
        ]


class MockDirectoryClient:
    """Directory client serving canned records or failures."""

    def __init__(
        self,
        primary: list[dict[str, Any]] | Exception | None = None,
        fallback: list[dict[str, Any]] | Exception | None = None,
    ) -> None:
        self.primary = primary if primary is not None else []
        self.fallback = fallback
        self.primary_calls = 0
        self.fallback_calls = 0
        self.closed = False

    @property
    def has_fallback(self) -> bool:
        return self.fallback is not None

    async def fetch_primary(self) -> list[dict[str, Any]]:
        self.primary_calls += 1
        return self._serve("primary", self.primary)

    async def fetch_fallback(self) -> list[dict[str, Any]]:
        self.fallback_calls += 1
        return self._serve("fallback", self.fallback)

    def _serve(self, source: str, value) -> list[dict[str, Any]]:
        if isinstance(value, Exception):
            raise DirectoryFetchError(source, str(value))

        if value is None:
            raise DirectoryFetchError(source, "not configured")

        return list(value)

    async def close(self) -> None:
        self.closed = True


@dataclass
class MockHealthProbe:
    """Probe reporting every candidate alive except those listed as dead."""

    dead: set[str] = field(default_factory=set)
    probed: list[str] = field(default_factory=list)
    closed: bool = False

    async def probe(self, candidate: Candidate) -> ProbeResponse:
        self.probed.append(candidate.key)

        if candidate.key in self.dead:
            return ProbeResponse(
                node_key=candidate.key,
                result=ProbeResult.ERROR,
                message="Probe error: connection refused",
            )

        return ProbeResponse(
            node_key=candidate.key,
            result=ProbeResult.SUCCESS,
            status=200,
            message="HTTP 200",
        )

    async def check(self, candidate: Candidate) -> bool:
        return (await self.probe(candidate)).alive

    async def close(self) -> None:
        self.closed = True


async def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float = 2.0,
    interval: float = 0.005,
) -> bool:
    """Poll ``condition`` until it holds or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while loop.time() < deadline:
        if condition():
            return True

        await asyncio.sleep(interval)

    return condition()


class RecordingLogger(Logger):
    """Logger that keeps entries in memory instead of writing them."""

    def __init__(self) -> None:
        super().__init__()
        self.entries: list[Entry] = []

    async def log(
        self,
        entry: Entry,
        name: str | None = None,
        template: str | None = None,
        filter: Callable[[Entry], bool] | None = None,
    ):
        self.entries.append(entry)

    def of_type(self, entry_type: type[Entry]) -> list[Entry]:
        return [entry for entry in self.entries if isinstance(entry, entry_type)]

    def messages(self) -> list[str]:
        return [entry.message or "" for entry in self.entries]


class FlakyLogger(RecordingLogger):
    """Recording logger that raises for one entry type while failures remain."""

    def __init__(self, fail_on: type[Entry]) -> None:
        super().__init__()
        self.fail_on = fail_on
        self.failures = 0

    async def log(
        self,
        entry: Entry,
        name: str | None = None,
        template: str | None = None,
        filter: Callable[[Entry], bool] | None = None,
    ):
        if isinstance(entry, self.fail_on) and self.failures > 0:
            self.failures -= 1
            raise RuntimeError("log sink unavailable")

        await super().log(entry, name=name, template=template, filter=filter)
