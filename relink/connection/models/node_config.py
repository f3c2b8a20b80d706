from __future__ import annotations

from typing import TYPE_CHECKING

import msgspec

if TYPE_CHECKING:
    from relink.candidates.models import Candidate


MAIN_NODE_ID = "main-node"


class NodeConfig(msgspec.Struct, frozen=True, kw_only=True):
    """
    Connection settings handed to the node client library.

    The library's own reconnect loop and heartbeat are switched off; the
    failover controller owns both concerns.
    """

    host: str
    port: int
    authorization: str
    secure: bool = False
    node_id: str = MAIN_NODE_ID
    retry_amount: int = 0
    retry_delay: float = 1.0
    heartbeat_interval: float = 0.0
    enable_ping_on_stats_check: bool = True
    close_on_error: bool = True

    @property
    def key(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_candidate(
        cls,
        candidate: Candidate,
        node_id: str = MAIN_NODE_ID,
    ) -> NodeConfig:
        return cls(
            host=candidate.host,
            port=candidate.port,
            authorization=candidate.password,
            secure=candidate.secure,
            node_id=node_id,
        )
