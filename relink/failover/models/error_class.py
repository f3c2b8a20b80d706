from enum import Enum


class ErrorClass(Enum):
    """Failure classification driving retry-vs-switch decisions."""

    AUTHENTICATION = "authentication"
    """Node rejected the credential. Never retried on the same node."""

    CONNECTIVITY = "connectivity"
    """Refused, unresolvable or unreachable node."""

    TIMEOUT = "timeout"

    NO_PING = "no_ping"
    """Socket closed because keepalive pings stopped."""

    TRANSIENT = "transient"

    UNKNOWN = "unknown"
    """No error information was reported."""
