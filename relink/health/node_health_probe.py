"""
Node Health Probe - cheap reachability check for candidate nodes.

Before the pool hands a candidate to the connection supervisor it issues
a short protocol-info request (``GET /version``) using the candidate's
declared scheme. The probe answers a single question: is anything
listening that speaks HTTP?

Probe semantics:
- 2xx: alive
- 401/403: alive (reachable, the credential may simply differ)
- any other status: dead
- connection failure or timeout: dead
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import aiohttp

from .models import ProbeResponse, ProbeResult

if TYPE_CHECKING:
    from relink.candidates.models import Candidate


REJECTED_STATUSES = frozenset((401, 403))


class NodeHealthProbe:
    """
    Example usage:
        probe = NodeHealthProbe(timeout_seconds=5.0)

        if await probe.check(candidate):
            ...

        response = await probe.probe(candidate)
        print(response.result, response.latency_ms)

        await probe.close()
    """

    def __init__(
        self,
        timeout_seconds: float = 5.0,
        path: str = "/version",
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._path = path
        self._session: aiohttp.ClientSession | None = None

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

        self._session = None

    def url_for(self, candidate: Candidate) -> str:
        return f"{candidate.scheme}://{candidate.host}:{candidate.port}{self._path}"

    async def check(self, candidate: Candidate) -> bool:
        response = await self.probe(candidate)
        return response.alive

    async def probe(self, candidate: Candidate) -> ProbeResponse:
        """
        Run a single probe against a candidate.

        Never raises for network-level problems; they are reported through
        the response result.
        """
        start_time = time.monotonic()
        session = await self._get_session()

        try:
            async with session.get(
                self.url_for(candidate),
                headers={"Authorization": candidate.password},
            ) as response:
                status = response.status

        except asyncio.TimeoutError:
            return ProbeResponse(
                node_key=candidate.key,
                result=ProbeResult.TIMEOUT,
                message=f"Probe timed out after {self._timeout_seconds}s",
                latency_ms=(time.monotonic() - start_time) * 1000,
            )

        except (aiohttp.ClientError, OSError) as error:
            return ProbeResponse(
                node_key=candidate.key,
                result=ProbeResult.ERROR,
                message=f"Probe error: {error}",
                latency_ms=(time.monotonic() - start_time) * 1000,
            )

        latency_ms = (time.monotonic() - start_time) * 1000

        if 200 <= status < 300:
            result = ProbeResult.SUCCESS

        elif status in REJECTED_STATUSES:
            result = ProbeResult.REJECTED

        else:
            result = ProbeResult.FAILURE

        return ProbeResponse(
            node_key=candidate.key,
            result=result,
            status=status,
            message=f"HTTP {status}",
            latency_ms=latency_ms,
        )
