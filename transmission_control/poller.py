"""
State Poller
Blocks until a torrent reaches a target lifecycle state.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .exceptions import PollTimeoutError, TorrentNotFoundError
from .logging_config import LogContext
from .status import TorrentStatus

logger = logging.getLogger(__name__)

Lookup = Callable[[Any], Awaitable[Dict[str, Any]]]


class PollState(Enum):
    """Poller states."""
    POLLING = "polling"
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERRORED = "errored"


class StatePoller:
    """
    Re-issues a torrent lookup until the torrent's status matches a target.

    Without a timeout this polls indefinitely, ending only on a match, a
    missing torrent, a lookup error or cancellation of the awaiting task.
    Lookup errors are re-raised as-is and never retried.
    """

    def __init__(
        self,
        lookup: Lookup,
        poll_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._lookup = lookup
        self._sleep = sleep
        self.poll_interval = poll_interval
        self.state = PollState.POLLING
        self.lookups = 0
        self.latest: Optional[Dict[str, Any]] = None

    async def wait_for(
        self,
        torrent_id,
        target: Union[TorrentStatus, str],
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Wait for a torrent to reach the target state.

        Args:
            torrent_id: Id of the torrent to watch
            target: TorrentStatus member or status name
            timeout: Optional bound in seconds; None polls indefinitely

        Returns:
            The torrent snapshot from the lookup that matched

        Raises:
            ValidationError: unknown target name (before any lookup)
            TorrentNotFoundError: the torrent is not in the daemon
            PollTimeoutError: timeout elapsed before a match
        """
        target_status = TorrentStatus.coerce(target)
        self.state = PollState.POLLING
        self.lookups = 0
        self.latest = None

        if timeout is None:
            return await self._poll(torrent_id, target_status)

        try:
            return await asyncio.wait_for(
                self._poll(torrent_id, target_status), timeout
            )
        except asyncio.TimeoutError:
            self.state = PollState.ERRORED
            raise PollTimeoutError(torrent_id, target_status.name, timeout) from None

    async def _poll(self, torrent_id, target: TorrentStatus) -> Dict[str, Any]:
        with LogContext(torrent_id=torrent_id, operation="wait_for_state"):
            while True:
                torrent = await self._lookup_once(torrent_id)

                status = self._status_of(torrent)
                if status == target:
                    self.state = PollState.FOUND
                    logger.info(f"Torrent {torrent_id} reached {target.name}")
                    return torrent

                logger.debug(
                    f"Torrent {torrent_id} is {status.name}, waiting for {target.name}"
                )
                await self._sleep(self.poll_interval)

    async def _lookup_once(self, torrent_id) -> Dict[str, Any]:
        self.lookups += 1
        try:
            result = await self._lookup(torrent_id)
        except Exception:
            self.state = PollState.ERRORED
            raise

        torrents = result.get("torrents") or []
        if not torrents:
            self.state = PollState.NOT_FOUND
            raise TorrentNotFoundError(torrent_id)

        self.latest = torrents[0]
        return self.latest

    def _status_of(self, torrent: Dict[str, Any]) -> TorrentStatus:
        try:
            return TorrentStatus.from_ordinal(torrent.get("status"))
        except Exception:
            self.state = PollState.ERRORED
            raise
