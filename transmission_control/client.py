"""
Transmission RPC Client
Async client for the Transmission daemon's JSON-over-HTTP RPC: torrent
enumeration and mutation, session settings, and waiting on torrent state.
"""

import base64
import itertools
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Optional, Union

import aiofiles

from .config import (
    DEFAULT_HOST,
    DEFAULT_PATH,
    DEFAULT_PORT,
    ClientSettings,
    build_auth_header,
    build_url,
)
from .envelope import RequestEnvelope
from .exceptions import ValidationError
from .methods import (
    FAST_FIELDS,
    FILE_FIELDS,
    PEER_FIELDS,
    TORRENT_FIELDS,
    RpcMethod,
    has_whitelist,
    validate_fields,
    wire_name_for,
)
from .poller import StatePoller
from .session import SessionHandshake
from .status import TorrentStatus
from .transport import AiohttpTransport, Transport

logger = logging.getLogger(__name__)

TorrentId = Union[int, str]
TorrentIds = Union[TorrentId, Iterable[TorrentId]]

RECENTLY_ACTIVE = "recently-active"


def _is_torrent_id(value) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def normalize_ids(ids: TorrentIds) -> List[TorrentId]:
    """
    Turn a single id or any iterable of ids into a list.

    Raises:
        ValidationError: an id is neither an int nor a hash string
    """
    if _is_torrent_id(ids):
        return [ids]
    if isinstance(ids, (bytes, bytearray)) or not isinstance(ids, Iterable):
        raise ValidationError("Invalid torrent id", details=type(ids).__name__)

    normalized = list(ids)
    for torrent_id in normalized:
        if not _is_torrent_id(torrent_id):
            raise ValidationError("Invalid torrent id", details=repr(torrent_id))
    return normalized


def _optional_ids(ids: Optional[TorrentIds]) -> List[TorrentId]:
    if ids is None:
        return []
    return normalize_ids(ids)


def _check_options(options, operation: str) -> Dict[str, Any]:
    if options is None:
        return {}
    if not isinstance(options, Mapping):
        raise ValidationError(
            f"Arguments mismatch for {operation!r}",
            details=f"expected a mapping, got {type(options).__name__}",
        )
    return dict(options)


class TransmissionClient:
    """
    Client for one Transmission daemon.

    Each public coroutine is an independent request; calls may be issued
    concurrently and share one session id.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        path: str = DEFAULT_PATH,
        ssl: bool = False,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        poll_interval: float = 1.0,
        transport: Optional[Transport] = None,
    ):
        self.host = host
        self.port = port
        self.path = path
        self.ssl = ssl
        self.username = username
        self.poll_interval = poll_interval

        self.url = build_url(host, port, path, ssl)
        self.transport = transport or AiohttpTransport(timeout=timeout, verify_ssl=verify_ssl)
        self._handshake = SessionHandshake(
            self.transport,
            self.url,
            auth_header=build_auth_header(username, password),
        )
        self._tags = itertools.count(1)

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, transport: Optional[Transport] = None
    ) -> "TransmissionClient":
        """Create a client from loaded settings."""
        return cls(
            host=settings.host,
            port=settings.port,
            path=settings.path,
            ssl=settings.ssl,
            username=settings.username,
            password=settings.password,
            timeout=settings.timeout,
            verify_ssl=settings.verify_ssl,
            poll_interval=settings.poll_interval,
            transport=transport,
        )

    async def __aenter__(self) -> "TransmissionClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    async def close(self):
        """Close the client connection."""
        await self.transport.close()

    @property
    def session_id(self) -> Optional[str]:
        """Session id currently held for the daemon."""
        return self._handshake.token

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _next_tag(self) -> int:
        return next(self._tags)

    def build_envelope(
        self, method: RpcMethod, arguments: Optional[Mapping] = None
    ) -> RequestEnvelope:
        """
        Validate arguments for a method and wrap them in a request envelope.

        Raises:
            ValidationError: arguments are not a mapping, or contain a field
                the method does not accept
        """
        if arguments is not None and not isinstance(arguments, Mapping):
            raise ValidationError(
                f"Arguments for {wire_name_for(method)} must be a mapping",
                details=type(arguments).__name__,
            )
        if arguments is not None and has_whitelist(method):
            validate_fields(method, arguments.keys())

        return RequestEnvelope(
            method=wire_name_for(method),
            arguments=dict(arguments) if arguments is not None else None,
            tag=self._next_tag(),
        )

    async def call(
        self, method: RpcMethod, arguments: Optional[Mapping] = None
    ) -> Dict[str, Any]:
        """
        Send one RPC request and return the response arguments.

        Raises:
            ValidationError: before any network traffic
            TransportError, ProtocolError: from the session handshake
        """
        envelope = self.build_envelope(method, arguments)
        response = await self._handshake.send(envelope)
        return response.arguments

    async def _call_with_ids(
        self, method: RpcMethod, ids: Optional[TorrentIds], required: bool = True
    ) -> Dict[str, Any]:
        torrent_ids = _optional_ids(ids)
        if not torrent_ids:
            if required:
                raise ValidationError(f"{wire_name_for(method)} requires torrent ids")
            return await self.call(method)
        return await self.call(method, {"ids": torrent_ids})

    # ------------------------------------------------------------------
    # Torrent mutation
    # ------------------------------------------------------------------

    async def set(self, ids: TorrentIds, options: Optional[Mapping] = None) -> Dict[str, Any]:
        """Set torrent properties on the given torrent(s)."""
        arguments = {"ids": normalize_ids(ids)}
        arguments.update(_check_options(options, "set"))
        return await self.call(RpcMethod.TORRENT_SET, arguments)

    async def add(self, url: str, options: Optional[Mapping] = None) -> Dict[str, Any]:
        """Alias for add_url()."""
        return await self.add_url(url, options)

    async def add_url(self, url: str, options: Optional[Mapping] = None) -> Dict[str, Any]:
        """Add a torrent from a magnet link or .torrent URL."""
        return await self.add_torrent_data_source({"filename": url}, options)

    async def add_base64(self, metainfo: str, options: Optional[Mapping] = None) -> Dict[str, Any]:
        """Add a torrent from the base64 contents of a .torrent file."""
        return await self.add_torrent_data_source({"metainfo": metainfo}, options)

    async def add_file(self, file_path: str, options: Optional[Mapping] = None) -> Dict[str, Any]:
        """
        Add a torrent from a local .torrent file.

        Raises:
            ValidationError: the file could not be read
        """
        try:
            async with aiofiles.open(file_path, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise ValidationError("Cannot read torrent file", details=str(e)) from e

        metainfo = base64.b64encode(data).decode("ascii")
        return await self.add_base64(metainfo, options)

    async def add_torrent_data_source(
        self, source: Mapping, options: Optional[Mapping] = None
    ) -> Dict[str, Any]:
        """
        Add a torrent from a source mapping ("filename" or "metainfo").

        Returns:
            The added torrent, or the existing one if it was a duplicate
        """
        arguments = dict(source)
        arguments.update(_check_options(options, "add"))

        result = await self.call(RpcMethod.TORRENT_ADD, arguments)
        torrent = result.get("torrent-duplicate") or result.get("torrent-added")
        if torrent:
            logger.info(f"Added torrent {torrent.get('name', '')} (id={torrent.get('id')})")
        return torrent

    async def remove(self, ids: TorrentIds, delete_local_data: bool = False) -> Dict[str, Any]:
        """Remove torrent(s), optionally deleting their downloaded data."""
        return await self.call(RpcMethod.TORRENT_REMOVE, {
            "ids": normalize_ids(ids),
            "delete-local-data": delete_local_data,
        })

    async def move(self, ids: TorrentIds, location: str, move: bool = False) -> Dict[str, Any]:
        """Set a new location; with move=True the data is moved there too."""
        return await self.call(RpcMethod.TORRENT_SET_LOCATION, {
            "ids": normalize_ids(ids),
            "location": location,
            "move": move,
        })

    async def rename(self, ids: TorrentIds, path: str, name: str) -> Dict[str, Any]:
        """Rename a file or folder, path being relative to the torrent root."""
        return await self.call(RpcMethod.TORRENT_RENAME_PATH, {
            "ids": normalize_ids(ids),
            "path": path,
            "name": name,
        })

    # ------------------------------------------------------------------
    # Torrent queries
    # ------------------------------------------------------------------

    async def get(
        self,
        ids: Optional[TorrentIds] = None,
        fields: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Get information on torrents.
        Without ids every torrent is returned; without fields, TORRENT_FIELDS.
        """
        if fields is None:
            fields = []
        if not isinstance(fields, (list, tuple)):
            raise ValidationError("The fields parameter must be a list")

        arguments: Dict[str, Any] = {"fields": list(fields) or list(TORRENT_FIELDS)}
        torrent_ids = _optional_ids(ids)
        if torrent_ids:
            arguments["ids"] = torrent_ids

        return await self.call(RpcMethod.TORRENT_GET, arguments)

    async def all(self) -> Dict[str, Any]:
        return await self.get()

    async def active(self) -> Dict[str, Any]:
        """Torrents active since the daemon's last "recently-active" check."""
        return await self.call(RpcMethod.TORRENT_GET, {
            "fields": list(TORRENT_FIELDS),
            "ids": RECENTLY_ACTIVE,
        })

    async def peers(self, ids: TorrentIds) -> Dict[str, Any]:
        return await self.get(ids, PEER_FIELDS)

    async def files(self, ids: TorrentIds) -> Dict[str, Any]:
        return await self.get(ids, FILE_FIELDS)

    async def fast(self, ids: TorrentIds) -> Dict[str, Any]:
        """Progress and rate fields only."""
        return await self.get(ids, FAST_FIELDS)

    async def wait_for_state(
        self,
        torrent_id: TorrentId,
        target_state: Union[TorrentStatus, str],
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Poll until a torrent reaches target_state and return its snapshot.

        Polls indefinitely unless a timeout is given; cancel the awaiting
        task to stop waiting early.
        """
        poller = StatePoller(
            self.get,
            poll_interval=self.poll_interval if poll_interval is None else poll_interval,
        )
        return await poller.wait_for(torrent_id, target_state, timeout=timeout)

    # ------------------------------------------------------------------
    # Torrent actions
    # ------------------------------------------------------------------

    async def stop(self, ids: Optional[TorrentIds] = None) -> Dict[str, Any]:
        """Stop the given torrent(s), or all torrents when no ids are given."""
        return await self._call_with_ids(RpcMethod.TORRENT_STOP, ids, required=False)

    async def stop_all(self) -> Dict[str, Any]:
        return await self.stop()

    async def start(self, ids: Optional[TorrentIds] = None) -> Dict[str, Any]:
        """Start the given torrent(s), or all torrents when no ids are given."""
        return await self._call_with_ids(RpcMethod.TORRENT_START, ids, required=False)

    async def start_all(self) -> Dict[str, Any]:
        return await self.start()

    async def start_now(self, ids: TorrentIds) -> Dict[str, Any]:
        """Start torrent(s) immediately, bypassing the queue."""
        return await self._call_with_ids(RpcMethod.TORRENT_START_NOW, ids)

    async def verify(self, ids: TorrentIds) -> Dict[str, Any]:
        return await self._call_with_ids(RpcMethod.TORRENT_VERIFY, ids)

    async def reannounce(self, ids: TorrentIds) -> Dict[str, Any]:
        return await self._call_with_ids(RpcMethod.TORRENT_REANNOUNCE, ids)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def session(self, settings: Optional[Mapping] = None) -> Dict[str, Any]:
        """Get session settings, or set them when a mapping is given."""
        if settings is None:
            return await self.call(RpcMethod.SESSION_GET)

        if not isinstance(settings, Mapping):
            raise ValidationError("The session settings must be a mapping")
        return await self.call(RpcMethod.SESSION_SET, settings)

    async def session_stats(self) -> Dict[str, Any]:
        return await self.call(RpcMethod.SESSION_STATS)

    async def free_space(self, path: str) -> Dict[str, Any]:
        """Free space, in bytes, in a directory on the daemon's host."""
        return await self.call(RpcMethod.FREE_SPACE, {"path": path})

    async def blocklist_update(self) -> Dict[str, Any]:
        """Ask the daemon to re-download its blocklist."""
        return await self.call(RpcMethod.BLOCKLIST_UPDATE)

    async def port_test(self) -> Dict[str, Any]:
        """Check whether the daemon's peer port is reachable."""
        return await self.call(RpcMethod.PORT_TEST)
