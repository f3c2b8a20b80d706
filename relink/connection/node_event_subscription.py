from typing import Any, Callable

from .node_connection import (
    ConnectHandler,
    DisconnectHandler,
    ErrorHandler,
    NodeConnection,
    NodeEventName,
    NodeManager,
)


class NodeEventSubscription:
    """
    Scoped registration of connect/error/disconnect handlers for one node id.

    Handlers are registered on ``__enter__`` and always removed on
    ``__exit__``, including when the body raises or is cancelled:

        with NodeEventSubscription(manager, "main-node", on_connect=...):
            await waiter
    """

    def __init__(
        self,
        manager: NodeManager,
        node_id: str,
        on_connect: ConnectHandler | None = None,
        on_error: ErrorHandler | None = None,
        on_disconnect: DisconnectHandler | None = None,
    ) -> None:
        self._manager = manager
        self._node_id = node_id
        self._handlers: dict[NodeEventName, Callable[..., Any]] = {}
        self._active = False

        if on_connect:
            self._handlers["connect"] = self._scoped(on_connect)

        if on_error:
            self._handlers["error"] = self._scoped(on_error)

        if on_disconnect:
            self._handlers["disconnect"] = self._scoped(on_disconnect)

    @property
    def active(self) -> bool:
        return self._active

    def _scoped(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        def scoped_handler(connection: NodeConnection, *args: Any) -> Any:
            if getattr(connection, "node_id", None) != self._node_id:
                return None

            return handler(connection, *args)

        return scoped_handler

    def subscribe(self) -> None:
        if self._active:
            return

        for event, handler in self._handlers.items():
            self._manager.on(event, handler)

        self._active = True

    def unsubscribe(self) -> None:
        if not self._active:
            return

        for event, handler in self._handlers.items():
            self._manager.off(event, handler)

        self._active = False

    def __enter__(self):
        self.subscribe()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()
