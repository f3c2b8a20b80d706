"""
Adapter protocols for the external node client library.

The audio node client is not part of this package. Any library can be
plugged in by wrapping it in a ``NodeManager`` whose connections satisfy
``NodeConnection``. Events are library-level: handlers receive every
connection's events and filter by ``node_id`` themselves.

Events:
- ``connect``: ``handler(connection)``
- ``error``: ``handler(connection, error)``
- ``disconnect``: ``handler(connection, reason)``
"""

from typing import Any, Callable, Iterable, Literal, Protocol, runtime_checkable

from .models import NodeConfig


NodeEventName = Literal["connect", "error", "disconnect"]

ConnectHandler = Callable[["NodeConnection"], Any]
ErrorHandler = Callable[["NodeConnection", BaseException], Any]
DisconnectHandler = Callable[["NodeConnection", Any], Any]


@runtime_checkable
class NodeConnection(Protocol):
    """A single connection handle created by the node client library."""

    @property
    def node_id(self) -> str: ...

    @property
    def connected(self) -> bool: ...

    @property
    def connecting(self) -> bool: ...

    async def connect(self) -> None: ...

    async def destroy(self, reason: str = "destroy", force: bool = False) -> None: ...

    def stop_keepalive(self) -> None:
        """
        Cancel any keepalive or ping timers owned by the connection so none
        can fire after it is destroyed.
        """
        ...


@runtime_checkable
class NodeManager(Protocol):
    """The connection registry and event source of the node client library."""

    def create_connection(self, config: NodeConfig) -> NodeConnection: ...

    def get_connection(self, node_id: str) -> NodeConnection | None: ...

    def remove_connection(self, node_id: str) -> None: ...

    def connections(self) -> Iterable[NodeConnection]: ...

    def on(self, event: NodeEventName, handler: Callable[..., Any]) -> None: ...

    def off(self, event: NodeEventName, handler: Callable[..., Any]) -> None: ...
