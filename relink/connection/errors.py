class ConnectionFailedError(Exception):
    """Raised when a node connection attempt does not succeed."""

    def __init__(self, node_key: str, message: str):
        self.node_key = node_key
        self.detail = message
        super().__init__(f"Connection to '{node_key}' failed: {message}")


class ConnectionTimeoutError(ConnectionFailedError):
    """The node did not report connect within the attempt timeout."""

    def __init__(self, node_key: str, timeout: float):
        self.timeout = timeout
        super().__init__(node_key, f"Connection timeout after {timeout}s")


class NodeCreationError(ConnectionFailedError):
    """The client library refused to create the connection."""


class ConnectionClosedError(ConnectionFailedError):
    """The new connection closed before it reported connect."""

    def __init__(self, node_key: str, reason: str, code: int | None = None):
        self.reason = reason
        self.code = code
        super().__init__(
            node_key,
            f"closed before connect: {reason}" + (f" (code {code})" if code is not None else ""),
        )
