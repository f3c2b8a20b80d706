"""
HTTP client for the remote node directory.
"""

import asyncio
from typing import Any

import aiohttp
import orjson


class DirectoryFetchError(Exception):
    """Raised when a directory source cannot produce a node list."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Directory fetch from '{source}' failed: {message}")


class DirectoryClient:
    """
    Fetches raw node records from the primary and fallback directories.

    The primary directory must answer with a JSON list. The fallback may
    answer with JSON or with plain text; non-JSON bodies are reported as a
    failure so the caller can fall through to its disk cache.
    """

    def __init__(
        self,
        directory_url: str,
        fallback_directory_url: str | None = None,
        timeout: float = 10.0,
        user_agent: str = "relink/0.1.0",
    ) -> None:
        self._directory_url = directory_url
        self._fallback_directory_url = fallback_directory_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {"User-Agent": user_agent}
        self._session: aiohttp.ClientSession | None = None

    @property
    def has_fallback(self) -> bool:
        return bool(self._fallback_directory_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers,
                timeout=self._timeout,
            )

        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

        self._session = None

    async def fetch_primary(self) -> list[dict[str, Any]]:
        return await self._fetch(self._directory_url, "primary")

    async def fetch_fallback(self) -> list[dict[str, Any]]:
        if not self._fallback_directory_url:
            raise DirectoryFetchError("fallback", "no fallback directory configured")

        return await self._fetch(self._fallback_directory_url, "fallback")

    async def _fetch(self, url: str, source: str) -> list[dict[str, Any]]:
        session = await self._get_session()

        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise DirectoryFetchError(
                        source,
                        f"returned status {response.status}",
                    )

                body = await response.read()

        except asyncio.TimeoutError:
            raise DirectoryFetchError(source, "request timed out")

        except aiohttp.ClientError as error:
            raise DirectoryFetchError(source, f"network error: {error}")

        try:
            records = orjson.loads(body)

        except orjson.JSONDecodeError:
            raise DirectoryFetchError(source, "returned non-JSON response")

        if not isinstance(records, list):
            raise DirectoryFetchError(source, "returned a non-list payload")

        return records
