"""
Candidate node model.
"""

from __future__ import annotations

from typing import Any

import msgspec


class Candidate(msgspec.Struct, frozen=True, kw_only=True):
    """
    A backend audio node advertised by the directory.

    Candidates are immutable once parsed and are identified by their
    ``host:port`` key.
    """

    host: str
    port: int
    password: str
    secure: bool = False
    version: str = "v4"
    identifier: str | None = None

    @property
    def key(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @classmethod
    def from_directory(
        cls,
        record: dict[str, Any],
        required_version: str = "v4",
    ) -> Candidate | None:
        """
        Parse a raw directory record.

        Returns None when the record is not eligible: wrong protocol
        version, or a missing host, port or password.
        """
        if not isinstance(record, dict):
            return None

        version = record.get("version")
        host = record.get("host")
        password = record.get("password")
        raw_port = record.get("port")

        if version != required_version or not host or not password or not raw_port:
            return None

        try:
            port = int(raw_port)

        except (TypeError, ValueError):
            return None

        identifier = record.get("identifier") or record.get("unique-id")

        return cls(
            host=str(host),
            port=port,
            password=str(password),
            secure=record.get("secure") is True or port == 443,
            version=version,
            identifier=str(identifier) if identifier else None,
        )
