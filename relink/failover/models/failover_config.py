"""
Configuration for the failover state machine.
"""

from dataclasses import dataclass


@dataclass(slots=True)
class FailoverConfig:
    """
    Retry, backoff and monitoring settings. All durations are in seconds.
    """

    # ===== Per-node retries =====
    max_reconnect_attempts: int = 3
    """Failed attempts on one node before moving to the next."""

    base_delay: float = 1.0
    """Base of the exponential backoff between attempts on the same node."""

    max_delay: float = 5.0
    """Cap on the exponential part of the backoff."""

    jitter: float = 1.0
    """Upper bound of the uniform random jitter added to each backoff."""

    node_switch_delay: float = 2.0
    """Flat delay before the first attempt on the next node."""

    connect_timeout: float = 15.0
    """Time allowed for a single connection attempt."""

    # ===== Event-driven reconnects =====
    auth_error_delay: float = 1.0
    connectivity_error_delay: float = 5.0
    auth_disconnect_delay: float = 1.0
    no_ping_disconnect_delay: float = 5.0
    timeout_disconnect_delay: float = 3.0
    default_disconnect_delay: float = 2.0

    # ===== Monitoring =====
    health_check_interval: float = 30.0
    periodic_reset_interval: float = 3600.0
    ping_timeout: float = 1800.0
    """Periodic reset requests a reconnect when the last healthy check is older than this."""

    # ===== Cooldown and watchdogs =====
    reset_after: float = 300.0
    """Cooldown before a new cycle once every option is spent."""

    guard_timeout: float = 120.0
    """A reconnection guard held longer than this is force-released."""

    startup_warning_after: float = 300.0
    """Log a critical entry if no node has connected this long after startup."""

    def __post_init__(self) -> None:
        if self.max_reconnect_attempts < 1:
            raise ValueError("max_reconnect_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("backoff delays must be non-negative")
        if self.health_check_interval <= 0:
            raise ValueError("health_check_interval must be positive")
        if self.periodic_reset_interval <= 0:
            raise ValueError("periodic_reset_interval must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.guard_timeout <= 0:
            raise ValueError("guard_timeout must be positive")
