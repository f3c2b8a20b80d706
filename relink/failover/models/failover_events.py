"""
Inputs to the failover state machine.

Every event carries ``at``, the controller clock reading when it was
raised, so transitions never read the clock themselves.
"""

from dataclasses import dataclass
from typing import Any

from relink.candidates.models import Candidate
from relink.connection.models import DisconnectReason


@dataclass(slots=True, frozen=True)
class Connected:
    at: float
    node_key: str | None = None


@dataclass(slots=True, frozen=True)
class ErrorRaised:
    at: float
    error: Any


@dataclass(slots=True, frozen=True)
class Disconnected:
    at: float
    reason: DisconnectReason


@dataclass(slots=True, frozen=True)
class HealthTick:
    at: float
    connected: bool
    ready: bool = True


@dataclass(slots=True, frozen=True)
class ResetTick:
    at: float
    connected: bool
    ready: bool = True


@dataclass(slots=True, frozen=True)
class ReconnectRequested:
    at: float
    connected: bool
    ready: bool = True
    force: bool = False
    """Proceed even if the current connection still reports connected."""


@dataclass(slots=True, frozen=True)
class RetryTimerFired:
    at: float
    connected: bool
    ready: bool = True


@dataclass(slots=True, frozen=True)
class CandidateResolved:
    at: float
    candidate: Candidate | None
    pool_size: int
    switched: bool = False
    initialized: bool = False


@dataclass(slots=True, frozen=True)
class AttemptSucceeded:
    at: float
    node_key: str


@dataclass(slots=True, frozen=True)
class AttemptFailed:
    at: float
    node_key: str | None
    error: Any


@dataclass(slots=True, frozen=True)
class CooldownElapsed:
    at: float


@dataclass(slots=True, frozen=True)
class NodeSwitchForced:
    at: float


@dataclass(slots=True, frozen=True)
class StartupCompleted:
    at: float
    connected: bool


FailoverEvent = (
    Connected
    | ErrorRaised
    | Disconnected
    | HealthTick
    | ResetTick
    | ReconnectRequested
    | RetryTimerFired
    | CandidateResolved
    | AttemptSucceeded
    | AttemptFailed
    | CooldownElapsed
    | NodeSwitchForced
    | StartupCompleted
)
