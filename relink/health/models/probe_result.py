from enum import Enum


class ProbeResult(Enum):
    """Result of a node health probe."""

    SUCCESS = "success"
    REJECTED = "rejected"
    """Node answered with 401/403; reachable but credentials may differ."""

    FAILURE = "failure"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def alive(self) -> bool:
        return self in (ProbeResult.SUCCESS, ProbeResult.REJECTED)
