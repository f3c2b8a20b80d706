import time
from dataclasses import dataclass, field

from .probe_result import ProbeResult


@dataclass(slots=True)
class ProbeResponse:
    """Response from a node health probe."""

    node_key: str
    result: ProbeResult
    status: int | None = None
    message: str = ""
    latency_ms: float = 0.0
    timestamp: float = field(default_factory=time.monotonic)

    @property
    def alive(self) -> bool:
        return self.result.alive
