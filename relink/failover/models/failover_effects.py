"""
Outputs of the failover state machine, executed by the controller.
"""

from dataclasses import dataclass

from relink.candidates.models import Candidate
from relink.logging.models import Entry


@dataclass(slots=True, frozen=True)
class Emit:
    """Write a log entry."""

    entry: Entry


@dataclass(slots=True, frozen=True)
class MarkWorking:
    """Persist the pool's current candidate as the last known good node."""


@dataclass(slots=True, frozen=True)
class StartMonitoring:
    """Start the health-check and periodic-reset intervals if not running."""


@dataclass(slots=True, frozen=True)
class StopMonitoring:
    """Cancel the health-check and periodic-reset intervals."""


@dataclass(slots=True, frozen=True)
class CancelReconnect:
    """Cancel the pending retry or cooldown timer."""


@dataclass(slots=True, frozen=True)
class ScheduleRetry:
    """Arm the reconnect timer; firing releases the guard and retries."""

    delay: float


@dataclass(slots=True, frozen=True)
class ScheduleTrigger:
    """Arm the trigger timer; firing requests a reconnection."""

    delay: float


@dataclass(slots=True, frozen=True)
class ScheduleCooldown:
    """Arm the reconnect timer for the end of a cooldown window."""

    delay: float


@dataclass(slots=True, frozen=True)
class ResetCandidates:
    """Clear the pool's failed set and its fetch cooldown."""


@dataclass(slots=True, frozen=True)
class RefreshCandidates:
    """Force a fresh directory fetch."""


@dataclass(slots=True, frozen=True)
class ResolveCandidate:
    """Pick the node for the next attempt."""

    switch: bool


@dataclass(slots=True, frozen=True)
class Connect:
    """Run one bounded-time connection attempt."""

    candidate: Candidate
    timeout: float


@dataclass(slots=True, frozen=True)
class RequestReconnect:
    """Feed a reconnection request back into the state machine."""

    force: bool = False


FailoverEffect = (
    Emit
    | MarkWorking
    | StartMonitoring
    | StopMonitoring
    | CancelReconnect
    | ScheduleRetry
    | ScheduleTrigger
    | ScheduleCooldown
    | ResetCandidates
    | RefreshCandidates
    | ResolveCandidate
    | Connect
    | RequestReconnect
)
