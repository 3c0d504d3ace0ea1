"""
HTTP Transport
A minimal POST capability used by the session handshake, with an aiohttp
implementation.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol

import aiohttp

from .exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """Status, headers and raw body of one HTTP exchange."""
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    async def post(
        self, url: str, body: bytes, headers: Mapping[str, str]
    ) -> HttpResponse:
        ...

    async def close(self) -> None:
        ...


class AiohttpTransport:
    """Transport backed by a lazily created aiohttp session."""

    def __init__(self, timeout: float = 30.0, verify_ssl: bool = True):
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=None if self.verify_ssl else False)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def post(
        self, url: str, body: bytes, headers: Mapping[str, str]
    ) -> HttpResponse:
        session = await self._get_session()

        try:
            async with session.post(url, data=body, headers=dict(headers)) as response:
                payload = await response.read()
                return HttpResponse(
                    status=response.status,
                    headers=dict(response.headers),
                    body=payload,
                )
        except asyncio.TimeoutError as e:
            logger.error(f"Request to {url} timed out after {self.timeout}s")
            raise TransportError("Request timed out", details=url) from e
        except aiohttp.ClientError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise TransportError("HTTP request failed", details=str(e)) from e

    async def close(self) -> None:
        """Close the underlying session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
