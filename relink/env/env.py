from __future__ import annotations
import os
from pydantic import BaseModel, StrictBool, StrictStr, StrictInt, StrictFloat
from typing import Callable, Dict, Literal, Union

from relink.candidates.models.pool_config import PoolConfig
from relink.failover.models.failover_config import FailoverConfig

PrimaryType = Union[str, int, float, bytes, bool]


def _to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Env(BaseModel):
    RELINK_DIRECTORY_URL: StrictStr = "https://lavalink-list.ajieblogs.eu.org/All"
    RELINK_FALLBACK_DIRECTORY_URL: StrictStr | None = (
        "https://raw.githubusercontent.com/DarrenOfficial/lavalink-list/master/docs/NoSSL/lavalink-without-ssl"
    )
    RELINK_DIRECTORY_TIMEOUT: StrictFloat = 10.0
    RELINK_USER_AGENT: StrictStr = "relink/0.1.0"
    RELINK_DATA_DIRECTORY: StrictStr = os.path.join(os.getcwd(), "data")
    RELINK_REQUIRED_VERSION: StrictStr = "v4"
    RELINK_FETCH_COOLDOWN_SECONDS: StrictFloat = 600.0
    RELINK_CACHE_TTL_SECONDS: StrictFloat = 3600.0
    RELINK_HEALTH_PROBE_TIMEOUT: StrictFloat = 5.0
    RELINK_RETRY_FIRST_WHEN_EXHAUSTED: StrictBool = False

    # Failover
    RELINK_MAX_RECONNECT_ATTEMPTS: StrictInt = 3
    RELINK_BASE_DELAY_MS: StrictInt = 1000
    RELINK_MAX_DELAY_MS: StrictInt = 5000
    RELINK_HEALTH_CHECK_INTERVAL_MS: StrictInt = 30000
    RELINK_PERIODIC_RESET_INTERVAL_MS: StrictInt = 3600000
    RELINK_PING_TIMEOUT_MS: StrictInt = 1800000
    RELINK_RESET_AFTER_MINUTES: StrictInt = 5
    RELINK_CONNECT_TIMEOUT_MS: StrictInt = 15000
    RELINK_GUARD_TIMEOUT_MS: StrictInt = 120000
    RELINK_STARTUP_WARNING_SECONDS: StrictFloat = 300.0

    # Logging
    RELINK_LOG_LEVEL: Literal["trace", "debug", "info", "warn", "error", "critical", "fatal"] = "info"
    RELINK_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"
    RELINK_LOGS_DIRECTORY: StrictStr | None = None

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "RELINK_DIRECTORY_URL": str,
            "RELINK_FALLBACK_DIRECTORY_URL": str,
            "RELINK_DIRECTORY_TIMEOUT": float,
            "RELINK_USER_AGENT": str,
            "RELINK_DATA_DIRECTORY": str,
            "RELINK_REQUIRED_VERSION": str,
            "RELINK_FETCH_COOLDOWN_SECONDS": float,
            "RELINK_CACHE_TTL_SECONDS": float,
            "RELINK_HEALTH_PROBE_TIMEOUT": float,
            "RELINK_RETRY_FIRST_WHEN_EXHAUSTED": _to_bool,
            "RELINK_MAX_RECONNECT_ATTEMPTS": int,
            "RELINK_BASE_DELAY_MS": int,
            "RELINK_MAX_DELAY_MS": int,
            "RELINK_HEALTH_CHECK_INTERVAL_MS": int,
            "RELINK_PERIODIC_RESET_INTERVAL_MS": int,
            "RELINK_PING_TIMEOUT_MS": int,
            "RELINK_RESET_AFTER_MINUTES": int,
            "RELINK_CONNECT_TIMEOUT_MS": int,
            "RELINK_GUARD_TIMEOUT_MS": int,
            "RELINK_STARTUP_WARNING_SECONDS": float,
            "RELINK_LOG_LEVEL": str,
            "RELINK_LOG_OUTPUT": str,
            "RELINK_LOGS_DIRECTORY": str,
        }

    def get_pool_config(self) -> PoolConfig:
        """Build the candidate pool configuration from environment settings."""
        return PoolConfig(
            directory_url=self.RELINK_DIRECTORY_URL,
            fallback_directory_url=self.RELINK_FALLBACK_DIRECTORY_URL,
            directory_timeout=self.RELINK_DIRECTORY_TIMEOUT,
            user_agent=self.RELINK_USER_AGENT,
            data_directory=self.RELINK_DATA_DIRECTORY,
            required_version=self.RELINK_REQUIRED_VERSION,
            fetch_cooldown_seconds=self.RELINK_FETCH_COOLDOWN_SECONDS,
            cache_ttl_seconds=self.RELINK_CACHE_TTL_SECONDS,
            health_probe_timeout=self.RELINK_HEALTH_PROBE_TIMEOUT,
            retry_first_when_exhausted=self.RELINK_RETRY_FIRST_WHEN_EXHAUSTED,
        )

    def get_failover_config(self) -> FailoverConfig:
        """Build the failover configuration, converting milliseconds to seconds."""
        return FailoverConfig(
            max_reconnect_attempts=self.RELINK_MAX_RECONNECT_ATTEMPTS,
            base_delay=self.RELINK_BASE_DELAY_MS / 1000,
            max_delay=self.RELINK_MAX_DELAY_MS / 1000,
            health_check_interval=self.RELINK_HEALTH_CHECK_INTERVAL_MS / 1000,
            periodic_reset_interval=self.RELINK_PERIODIC_RESET_INTERVAL_MS / 1000,
            ping_timeout=self.RELINK_PING_TIMEOUT_MS / 1000,
            reset_after=self.RELINK_RESET_AFTER_MINUTES * 60.0,
            connect_timeout=self.RELINK_CONNECT_TIMEOUT_MS / 1000,
            guard_timeout=self.RELINK_GUARD_TIMEOUT_MS / 1000,
            startup_warning_after=self.RELINK_STARTUP_WARNING_SECONDS,
        )
