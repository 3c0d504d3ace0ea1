"""
Torrent lifecycle states as reported by the daemon's "status" field.
"""

from enum import IntEnum
from typing import Union

from .exceptions import ProtocolError, ValidationError


class TorrentStatus(IntEnum):
    """Daemon torrent status ordinals."""
    STOPPED = 0         # Torrent is stopped
    CHECK_WAIT = 1      # Queued to check files
    CHECK = 2           # Checking files
    DOWNLOAD_WAIT = 3   # Queued to download
    DOWNLOAD = 4        # Downloading
    SEED_WAIT = 5       # Queued to seed
    SEED = 6            # Seeding
    ISOLATED = 7        # No connection to peers

    @classmethod
    def from_ordinal(cls, value) -> "TorrentStatus":
        """
        Map a status ordinal from a daemon response to its state.

        Raises:
            ProtocolError: if the value is not one of the known ordinals
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise ProtocolError(
                "Invalid torrent status in response", details=repr(value)
            )
        try:
            return cls(value)
        except ValueError:
            raise ProtocolError(
                "Unknown torrent status in response", details=str(value)
            ) from None

    @classmethod
    def from_name(cls, name: str) -> "TorrentStatus":
        """
        Look up a state by name, case-insensitively.

        Raises:
            ValidationError: if no state has that name
        """
        try:
            return cls[name.upper()]
        except (KeyError, AttributeError):
            raise ValidationError(f"Unknown torrent status: {name!r}") from None

    @classmethod
    def coerce(cls, value: Union["TorrentStatus", str]) -> "TorrentStatus":
        """Accept either a member or a state name."""
        if isinstance(value, cls):
            return value
        return cls.from_name(value)
