"""Existence-check transport built on httpx.

Performs a HEAD probe with bounded redirect following. Transport faults are
raised as ``httpx.TransportError`` subclasses and classified by the caller.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from shipcheck.constants import (
    DEFAULT_USER_AGENT,
    MAX_KEEPALIVE_CONNECTIONS,
    MAX_POOL_CONNECTIONS,
    MAX_REDIRECTS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    """Final response of an existence check after following redirects."""
    status_code: int
    reason: str = ""
    final_url: str = ""
    redirects: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ExistenceTransport(Protocol):
    """Lightweight reachability probe used by the validation engine."""

    async def probe(self, url: str, timeout: float) -> ProbeResult:
        ...

    async def aclose(self) -> None:
        ...


class HttpxTransport:
    """HEAD-based existence checks over a shared keep-alive connection pool."""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        max_redirects: int = MAX_REDIRECTS,
        max_connections: int = MAX_POOL_CONNECTIONS,
        max_keepalive_connections: int = MAX_KEEPALIVE_CONNECTIONS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the transport.

        Args:
            user_agent: User-Agent header sent with every probe
            max_redirects: Maximum redirect hops followed per probe
            max_connections: Upper bound on open sockets in the pool
            max_keepalive_connections: Idle sockets kept for reuse
            client: Pre-built client (tests pass one with a MockTransport)
        """
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.max_redirects = max_redirects
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": self.user_agent},
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_keepalive_connections,
            ),
            follow_redirects=False,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def probe(self, url: str, timeout: float) -> ProbeResult:
        """Send a HEAD request and follow up to ``max_redirects`` redirects.

        ``timeout`` bounds the whole attempt, redirect hops included. A
        response still redirecting after the last allowed hop is returned
        as-is so the caller can report it as an HTTP error.

        Args:
            url: URL to probe
            timeout: Seconds allowed for the attempt

        Returns:
            ProbeResult for the final response

        Raises:
            httpx.TransportError: On timeout, DNS, TLS or other network faults
        """
        try:
            return await asyncio.wait_for(self._follow(url, timeout), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise httpx.TimeoutException(
                f"Probe exceeded {timeout:g}s including redirects: {url}"
            ) from e

    async def _follow(self, url: str, timeout: float) -> ProbeResult:
        response = await self._client.head(
            url, timeout=timeout, follow_redirects=False
        )
        hops = 0

        while response.next_request is not None and hops < self.max_redirects:
            hops += 1
            next_request = response.next_request
            logger.debug(f"Redirect {hops}/{self.max_redirects}: {url} -> {next_request.url}")
            response = await self._client.send(next_request, follow_redirects=False)

        return ProbeResult(
            status_code=response.status_code,
            reason=response.reason_phrase,
            final_url=str(response.url),
            redirects=hops,
        )

    async def aclose(self) -> None:
        """Close pooled connections."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
