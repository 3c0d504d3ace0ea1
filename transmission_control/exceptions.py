"""
Exception hierarchy for the Transmission RPC client.
Every error raised to callers is one of these classified types.
"""

from typing import Optional


class TransmissionError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


# Configuration errors
class ConfigurationError(TransmissionError):
    """Raised when client settings are invalid."""

    pass


# Transport errors
class TransportError(TransmissionError):
    """Raised when the HTTP exchange itself fails (network, non-2xx, bad body)."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message, details)
        self.status = status


# Protocol errors
class ProtocolError(TransmissionError):
    """Raised when the daemon answered but reported a failure."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        result: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.result = result


class SessionRefreshError(ProtocolError):
    """Raised when the daemon rejects the session id twice in a row."""

    pass


# Validation errors
class ValidationError(TransmissionError):
    """Raised when caller-supplied arguments are rejected before sending."""

    pass


class FieldNotSettableError(ValidationError):
    """Raised when a field is not in the whitelist for a method."""

    def __init__(self, method: str, field: str):
        super().__init__(f"Cannot set field {field!r} with {method}")
        self.method = method
        self.field = field


# Polling errors
class TorrentNotFoundError(TransmissionError):
    """Raised when a polled torrent id is not present in the daemon."""

    def __init__(self, torrent_id, message: Optional[str] = None):
        super().__init__(message or f"No torrent found for id {torrent_id}")
        self.torrent_id = torrent_id


NotFoundError = TorrentNotFoundError


class PollTimeoutError(TransmissionError):
    """Raised when waiting for a torrent state exceeds the caller's timeout."""

    def __init__(self, torrent_id, target: str, timeout: float):
        super().__init__(
            f"Torrent {torrent_id} did not reach {target} within {timeout}s"
        )
        self.torrent_id = torrent_id
        self.target = target
        self.timeout = timeout
