from dataclasses import dataclass


@dataclass(slots=True)
class ConnectResult:
    """Outcome of a single bounded-time connection attempt."""

    success: bool
    node_key: str
    error: BaseException | None = None
    elapsed_ms: float = 0.0

    def __bool__(self) -> bool:
        return self.success
