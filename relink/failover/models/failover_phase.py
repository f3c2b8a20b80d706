from enum import Enum


class FailoverPhase(Enum):
    IDLE = "idle"
    RECONNECTING = "reconnecting"
    WAITING_FOR_RESET = "waiting_for_reset"


class CooldownReason(Enum):
    EXHAUSTED = "exhausted"
    """Every node in the cycle was tried and rejected."""

    NO_CANDIDATES = "no_candidates"
    """Neither the directory nor the cache produced a usable node."""
