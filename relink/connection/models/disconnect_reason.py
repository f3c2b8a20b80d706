from __future__ import annotations

from dataclasses import dataclass
from typing import Any


DESTROY_REASON = "destroy"


@dataclass(slots=True, frozen=True)
class DisconnectReason:
    """Normalized close information reported by the node client library."""

    reason: str = "Unknown"
    code: int | None = None

    @property
    def intentional(self) -> bool:
        """True when the connection was torn down on purpose."""
        return self.reason == DESTROY_REASON

    @classmethod
    def parse(cls, value: Any) -> DisconnectReason:
        """
        Accept whatever the library emits: an existing reason, a mapping with
        ``reason``/``code`` keys, an object with those attributes, a bare
        string, or None.
        """
        if isinstance(value, DisconnectReason):
            return value

        if value is None:
            return cls()

        if isinstance(value, str):
            return cls(reason=value or "Unknown")

        if isinstance(value, dict):
            reason = value.get("reason")
            code = value.get("code")

        else:
            reason = getattr(value, "reason", None)
            code = getattr(value, "code", None)

        if reason is None:
            reason = str(value)

        return cls(
            reason=str(reason) or "Unknown",
            code=code if isinstance(code, int) else None,
        )
