"""
Configuration for the candidate pool and its collaborators.
"""

import os
from dataclasses import dataclass, field


@dataclass(slots=True)
class PoolConfig:
    """
    Configuration for candidate discovery, caching and probing.
    """

    directory_url: str = "https://lavalink-list.ajieblogs.eu.org/All"
    """Primary directory endpoint returning a JSON list of nodes."""

    fallback_directory_url: str | None = (
        "https://raw.githubusercontent.com/DarrenOfficial/lavalink-list/master/docs/NoSSL/lavalink-without-ssl"
    )
    """Secondary endpoint queried when the primary fails or is empty."""

    directory_timeout: float = 10.0
    """Timeout in seconds for each directory request."""

    user_agent: str = "relink/0.1.0"

    data_directory: str = field(
        default_factory=lambda: os.path.join(os.getcwd(), "data")
    )
    """Directory holding the persisted node and the directory cache."""

    required_version: str = "v4"
    """Only candidates advertising this protocol version are eligible."""

    fetch_cooldown_seconds: float = 600.0
    """Minimum time between remote fetches, successful or not."""

    cache_ttl_seconds: float = 3600.0
    """Age after which the on-disk directory cache is ignored."""

    health_probe_timeout: float = 5.0

    retry_first_when_exhausted: bool = False
    """
    When every candidate fails its probe even after a refresh, return the
    first candidate anyway instead of reporting the pool as exhausted.
    """

    node_filename: str = "node.json"
    nodes_filename: str = "nodes.json"

    def __post_init__(self) -> None:
        if self.fetch_cooldown_seconds < 0:
            raise ValueError("fetch_cooldown_seconds must be non-negative")
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.health_probe_timeout <= 0:
            raise ValueError("health_probe_timeout must be positive")
