"""
Pytest configuration and shared fixtures.
"""

import json

import pytest

from transmission_control.client import TransmissionClient
from transmission_control.transport import HttpResponse


class FakeTransport:
    """
    Scripted transport that records every POST.
    Responses are consumed in order; the last one repeats once exhausted.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.closed = False

    def queue(self, *responses):
        self.responses.extend(responses)

    async def post(self, url, body, headers):
        self.calls.append({
            "url": url,
            "body": json.loads(body),
            "headers": dict(headers),
        })
        if not self.responses:
            raise AssertionError("FakeTransport has no scripted response")
        response = self.responses[0] if len(self.responses) == 1 else self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self):
        self.closed = True

    @property
    def bodies(self):
        return [call["body"] for call in self.calls]

    @property
    def last_body(self):
        return self.calls[-1]["body"]


def rpc_response(arguments=None, result="success", status=200, tag=None):
    """Build a daemon response."""
    payload = {"result": result, "arguments": arguments or {}}
    if tag is not None:
        payload["tag"] = tag
    return HttpResponse(
        status=status,
        headers={"Content-Type": "application/json"},
        body=json.dumps(payload).encode("utf-8"),
    )


def conflict_response(session_id="session-abc"):
    """Build a 409 carrying a fresh session id."""
    headers = {}
    if session_id is not None:
        headers["X-Transmission-Session-Id"] = session_id
    return HttpResponse(
        status=409,
        headers=headers,
        body=b"<h1>409: Conflict</h1>",
    )


@pytest.fixture
def transport():
    """A fake transport answering every call with an empty success."""
    return FakeTransport([rpc_response()])


@pytest.fixture
def client(transport):
    """Client bound to the fake transport."""
    return TransmissionClient(transport=transport)


@pytest.fixture
def make_response():
    """Factory for daemon responses."""
    return rpc_response


@pytest.fixture
def make_conflict():
    """Factory for 409 session conflicts."""
    return conflict_response
