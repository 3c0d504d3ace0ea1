"""
Async client for the Transmission daemon's JSON-over-HTTP RPC.
"""

from .client import TransmissionClient, normalize_ids
from .config import ClientSettings, load_settings
from .exceptions import (
    ConfigurationError,
    FieldNotSettableError,
    NotFoundError,
    PollTimeoutError,
    ProtocolError,
    SessionRefreshError,
    TorrentNotFoundError,
    TransmissionError,
    TransportError,
    ValidationError,
)
from .methods import RpcMethod, is_field_settable, wire_name_for
from .poller import PollState, StatePoller
from .status import TorrentStatus
from .transport import AiohttpTransport, HttpResponse, Transport

__version__ = "1.0.0"

__all__ = [
    "TransmissionClient",
    "normalize_ids",
    "ClientSettings",
    "load_settings",
    "ConfigurationError",
    "FieldNotSettableError",
    "NotFoundError",
    "PollTimeoutError",
    "ProtocolError",
    "SessionRefreshError",
    "TorrentNotFoundError",
    "TransmissionError",
    "TransportError",
    "ValidationError",
    "RpcMethod",
    "is_field_settable",
    "wire_name_for",
    "PollState",
    "StatePoller",
    "TorrentStatus",
    "AiohttpTransport",
    "HttpResponse",
    "Transport",
]
