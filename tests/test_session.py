"""
Tests for the session-id handshake (transmission_control/session.py)
"""

import asyncio
import json
import logging

import pytest

from transmission_control.envelope import RequestEnvelope
from transmission_control.exceptions import (
    ProtocolError,
    SessionRefreshError,
    TransportError,
)
from transmission_control.session import SESSION_ID_HEADER, SessionHandshake
from transmission_control.transport import HttpResponse

URL = "http://localhost:9091/transmission/rpc"


class RacingTransport:
    """
    Answers the first POST of every tag with a 409 carrying a new session id.
    Each POST yields to the event loop so concurrent sends interleave.
    """

    def __init__(self, make_conflict, make_response):
        self.make_conflict = make_conflict
        self.make_response = make_response
        self.calls = []
        self.issued = []

    async def post(self, url, body, headers):
        await asyncio.sleep(0)
        tag = json.loads(body)["tag"]
        first = all(call["tag"] != tag for call in self.calls)
        self.calls.append({"tag": tag, "session_id": headers[SESSION_ID_HEADER]})
        if first:
            self.issued.append(f"session-{len(self.issued) + 1}")
            return self.make_conflict(self.issued[-1])
        return self.make_response()

    async def close(self):
        pass


@pytest.fixture
def handshake(transport):
    """Handshake bound to the fake transport."""
    return SessionHandshake(transport, URL)


@pytest.fixture
def envelope():
    return RequestEnvelope(method="session-get", tag=1)


class TestHeaders:
    """Tests for outgoing headers."""

    async def test_first_request_sends_empty_session_id(self, handshake, transport, envelope):
        await handshake.send(envelope)

        headers = transport.calls[0]["headers"]
        assert headers[SESSION_ID_HEADER] == ""
        assert "Authorization" not in headers
        assert transport.calls[0]["url"] == URL

    async def test_auth_header_attached(self, transport, envelope):
        handshake = SessionHandshake(transport, URL, auth_header="Basic dXNlcjpwYXNz")
        await handshake.send(envelope)

        assert transport.calls[0]["headers"]["Authorization"] == "Basic dXNlcjpwYXNz"

    async def test_held_token_is_sent(self, handshake, transport, envelope):
        await handshake.replace_token("known-id")
        await handshake.send(envelope)

        assert transport.calls[0]["headers"][SESSION_ID_HEADER] == "known-id"

    async def test_body_is_envelope(self, handshake, transport):
        await handshake.send(RequestEnvelope(method="torrent-get", arguments={"ids": [1]}, tag=7))

        assert transport.last_body == {"method": "torrent-get", "arguments": {"ids": [1]}, "tag": 7}

    async def test_body_omits_absent_arguments(self, handshake, transport, envelope):
        await handshake.send(envelope)

        assert "arguments" not in transport.last_body


class TestSessionRefresh:
    """Tests for the 409 retry."""

    async def test_refresh_then_success(
        self, handshake, transport, envelope, make_conflict, make_response
    ):
        """409 once then 2xx: two transport calls and the new token is held."""
        transport.responses = [make_conflict("fresh-id"), make_response({"version": "4.0"})]

        response = await handshake.send(envelope)

        assert response.arguments == {"version": "4.0"}
        assert len(transport.calls) == 2
        assert handshake.token == "fresh-id"
        assert transport.calls[0]["headers"][SESSION_ID_HEADER] == ""
        assert transport.calls[1]["headers"][SESSION_ID_HEADER] == "fresh-id"

    async def test_retry_resends_same_envelope(
        self, handshake, transport, make_conflict, make_response
    ):
        transport.responses = [make_conflict(), make_response()]
        envelope = RequestEnvelope(method="torrent-stop", arguments={"ids": [3]}, tag=42)

        await handshake.send(envelope)

        assert transport.bodies[0] == transport.bodies[1]

    async def test_always_409_is_bounded(self, handshake, transport, envelope, make_conflict):
        """A daemon that always answers 409 fails after exactly two calls."""
        transport.responses = [make_conflict("id-1"), make_conflict("id-2")]

        with pytest.raises(SessionRefreshError):
            await handshake.send(envelope)

        assert len(transport.calls) == 2
        assert handshake.token == "id-1"

    async def test_session_refresh_error_is_protocol_error(
        self, handshake, transport, envelope, make_conflict
    ):
        transport.responses = [make_conflict()]

        with pytest.raises(ProtocolError):
            await handshake.send(envelope)

    async def test_409_without_header(self, handshake, transport, envelope, make_conflict):
        transport.responses = [make_conflict(session_id=None)]

        with pytest.raises(ProtocolError) as excinfo:
            await handshake.send(envelope)

        assert len(transport.calls) == 1
        assert handshake.token is None
        assert "session id" in str(excinfo.value)

    async def test_header_lookup_is_case_insensitive(
        self, handshake, transport, envelope, make_response
    ):
        conflict = HttpResponse(status=409, headers={"x-transmission-session-id": "lower"})
        transport.responses = [conflict, make_response()]

        await handshake.send(envelope)

        assert handshake.token == "lower"

    async def test_token_reused_across_calls(
        self, handshake, transport, envelope, make_conflict, make_response
    ):
        transport.responses = [make_conflict("abc"), make_response()]
        await handshake.send(envelope)
        await handshake.send(envelope)

        assert len(transport.calls) == 3
        assert transport.calls[2]["headers"][SESSION_ID_HEADER] == "abc"
        assert handshake.refresh_count == 1

    async def test_concurrent_refreshes_overwrite(self, handshake, transport, make_response):
        """Racing refreshes are allowed; the last stored id wins."""
        await asyncio.gather(
            handshake.replace_token("one"),
            handshake.replace_token("two"),
        )

        assert handshake.token == "two"
        assert handshake.refresh_count == 2

    async def test_concurrent_sends_each_refresh(self, make_conflict, make_response):
        """Two calls that both hit a 409 refresh independently and both succeed."""
        transport = RacingTransport(make_conflict, make_response)
        handshake = SessionHandshake(transport, URL)

        results = await asyncio.gather(
            handshake.send(RequestEnvelope(method="session-get", tag=1)),
            handshake.send(RequestEnvelope(method="session-stats", tag=2)),
        )

        assert all(result.succeeded for result in results)
        assert len(transport.calls) == 4
        assert sorted(call["tag"] for call in transport.calls) == [1, 1, 2, 2]
        assert handshake.refresh_count == 2
        assert handshake.token == transport.issued[-1]

    async def test_token_not_logged(
        self, handshake, transport, envelope, make_conflict, make_response, caplog
    ):
        transport.responses = [make_conflict("secret-session"), make_response()]

        with caplog.at_level(logging.DEBUG, logger="transmission_control"):
            await handshake.send(envelope)

        assert "secret-session" not in caplog.text
        assert "Acquired new session id" in caplog.text


class TestResponseHandling:
    """Tests for status and body handling."""

    async def test_non_2xx_is_transport_error(self, handshake, transport, envelope):
        transport.responses = [HttpResponse(status=401, body=b"Unauthorized")]

        with pytest.raises(TransportError) as excinfo:
            await handshake.send(envelope)

        assert excinfo.value.status == 401
        assert len(transport.calls) == 1

    async def test_server_error_not_retried(self, handshake, transport, envelope):
        transport.responses = [HttpResponse(status=500, body=b"")]

        with pytest.raises(TransportError):
            await handshake.send(envelope)

        assert len(transport.calls) == 1

    async def test_malformed_json(self, handshake, transport, envelope):
        transport.responses = [HttpResponse(status=200, body=b"not json")]

        with pytest.raises(TransportError):
            await handshake.send(envelope)

    async def test_body_not_an_object(self, handshake, transport, envelope):
        transport.responses = [HttpResponse(status=200, body=b"[1, 2]")]

        with pytest.raises(TransportError):
            await handshake.send(envelope)

    async def test_body_without_result(self, handshake, transport, envelope):
        transport.responses = [HttpResponse(status=200, body=b'{"arguments": {}}')]

        with pytest.raises(TransportError):
            await handshake.send(envelope)

    async def test_daemon_error_result(self, handshake, transport, envelope, make_response):
        transport.responses = [make_response(result="invalid or corrupt torrent file")]

        with pytest.raises(ProtocolError) as excinfo:
            await handshake.send(envelope)

        assert excinfo.value.result == "invalid or corrupt torrent file"
        assert "invalid or corrupt torrent file" in str(excinfo.value)

    async def test_transport_failure_propagates(self, handshake, transport, envelope):
        transport.responses = [TransportError("HTTP request failed", details="refused")]

        with pytest.raises(TransportError) as excinfo:
            await handshake.send(envelope)

        assert excinfo.value.details == "refused"

    async def test_missing_arguments_default_to_empty(self, handshake, transport, envelope):
        transport.responses = [HttpResponse(status=200, body=b'{"result": "success"}')]

        response = await handshake.send(envelope)

        assert response.arguments == {}
