"""
Session Handshake
Sends one RPC envelope, acquiring or refreshing the daemon's
X-Transmission-Session-Id token when the daemon answers 409.
"""

import asyncio
import logging
from typing import Dict, Optional

from .envelope import RequestEnvelope, ResponseEnvelope
from .exceptions import ProtocolError, SessionRefreshError, TransportError
from .logging_config import LogContext
from .transport import HttpResponse, Transport

logger = logging.getLogger(__name__)

SESSION_ID_HEADER = "X-Transmission-Session-Id"
SESSION_CONFLICT = 409


class SessionHandshake:
    """
    Owns the session token for one client.

    The token is fetched lazily: the first request goes out without one,
    the daemon replies 409 with a fresh id, and the request is sent again.
    A call makes at most two HTTP round trips.

    Concurrent calls that both hit a 409 each store the id they received.
    The overwrite is idempotent, so the only cost is a redundant refresh.
    """

    def __init__(
        self,
        transport: Transport,
        url: str,
        auth_header: Optional[str] = None,
    ):
        self.transport = transport
        self.url = url
        self._auth_header = auth_header
        self._token: Optional[str] = None
        self._token_lock = asyncio.Lock()
        self.refresh_count = 0

    @property
    def token(self) -> Optional[str]:
        """The session id currently held, or None before the first handshake."""
        return self._token

    async def replace_token(self, token: str) -> None:
        """Store a session id issued by the daemon."""
        async with self._token_lock:
            self._token = token
            self.refresh_count += 1

    def _headers(self) -> Dict[str, str]:
        headers = {
            SESSION_ID_HEADER: self._token or "",
            "Content-Type": "application/json",
        }
        if self._auth_header:
            headers["Authorization"] = self._auth_header
        return headers

    async def _post(self, body: bytes) -> HttpResponse:
        return await self.transport.post(self.url, body, self._headers())

    async def send(self, envelope: RequestEnvelope) -> ResponseEnvelope:
        """
        Send an envelope and return the parsed success response.

        Raises:
            ValidationError: the envelope cannot be encoded, before any request
            TransportError: network failure, non-2xx status, malformed body
            SessionRefreshError: the daemon answered 409 twice
            ProtocolError: the daemon reported a non-success result
        """
        body = envelope.to_body()

        with LogContext(method=envelope.method, tag=envelope.tag):
            logger.debug(f"Sending {envelope.method} (tag={envelope.tag})")
            response = await self._post(body)

            if response.status == SESSION_CONFLICT:
                await self._refresh_from(response)
                response = await self._post(body)

                if response.status == SESSION_CONFLICT:
                    logger.warning(
                        f"Daemon rejected refreshed session id for {envelope.method}"
                    )
                    raise SessionRefreshError(
                        "Session id rejected after refresh",
                        details=envelope.method,
                    )

            return self._unwrap(response)

    async def _refresh_from(self, response: HttpResponse) -> None:
        token = response.header(SESSION_ID_HEADER)
        if not token:
            raise ProtocolError(
                "Daemon answered 409 without a session id",
                details=f"missing {SESSION_ID_HEADER} header",
            )
        await self.replace_token(token)
        logger.info("Acquired new session id from daemon")

    @staticmethod
    def _unwrap(response: HttpResponse) -> ResponseEnvelope:
        if not response.ok:
            raise TransportError(
                f"HTTP {response.status}",
                details=response.body[:200].decode("utf-8", "replace") or None,
                status=response.status,
            )

        envelope = ResponseEnvelope.from_body(response.body)
        if not envelope.succeeded:
            logger.warning(f"Daemon returned error: {envelope.result}")
            raise ProtocolError(
                "Daemon returned error",
                details=envelope.result,
                result=envelope.result,
            )
        return envelope
