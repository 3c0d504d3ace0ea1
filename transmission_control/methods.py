"""
RPC Method Registry
Static table of the daemon's RPC method names and the fields each
"set"/"add" style method accepts. These are protocol constants and must
track the fields the daemon accepts.
"""

from enum import Enum
from typing import Iterable

from .exceptions import FieldNotSettableError


class RpcMethod(Enum):
    """Logical operations mapped to their wire method names."""
    TORRENT_STOP = "torrent-stop"
    TORRENT_START = "torrent-start"
    TORRENT_START_NOW = "torrent-start-now"
    TORRENT_VERIFY = "torrent-verify"
    TORRENT_REANNOUNCE = "torrent-reannounce"
    TORRENT_SET = "torrent-set"
    TORRENT_ADD = "torrent-add"
    TORRENT_RENAME_PATH = "torrent-rename-path"
    TORRENT_REMOVE = "torrent-remove"
    TORRENT_SET_LOCATION = "torrent-set-location"
    TORRENT_GET = "torrent-get"
    SESSION_STATS = "session-stats"
    SESSION_GET = "session-get"
    SESSION_SET = "session-set"
    BLOCKLIST_UPDATE = "blocklist-update"
    PORT_TEST = "port-test"
    FREE_SPACE = "free-space"


TORRENT_SET_FIELDS = frozenset({
    "bandwidthPriority",
    "downloadLimit",
    "downloadLimited",
    "files-wanted",
    "files-unwanted",
    "honorsSessionLimits",
    "ids",
    "location",
    "peer-limit",
    "priority-high",
    "priority-low",
    "priority-normal",
    "seedRatioLimit",
    "seedRatioMode",
    "uploadLimit",
    "uploadLimited",
})

TORRENT_ADD_FIELDS = frozenset({
    "download-dir",
    "filename",
    "metainfo",
    "paused",
    "peer-limit",
    "files-wanted",
    "files-unwanted",
    "priority-high",
    "priority-low",
    "priority-normal",
})

TORRENT_REMOVE_FIELDS = frozenset({
    "ids",
    "delete-local-data",
})

TORRENT_SET_LOCATION_FIELDS = frozenset({
    "location",
    "ids",
    "move",
})

SESSION_SET_FIELDS = frozenset({
    "start-added-torrents",
    "alt-speed-down",
    "alt-speed-enabled",
    "alt-speed-time-begin",
    "alt-speed-time-enabled",
    "alt-speed-time-end",
    "alt-speed-time-day",
    "alt-speed-up",
    "blocklist-enabled",
    "dht-enabled",
    "encryption",
    "download-dir",
    "peer-limit-global",
    "peer-limit-per-torrent",
    "pex-enabled",
    "peer-port",
    "peer-port-random-on-start",
    "port-forwarding-enabled",
    "seedRatioLimit",
    "seedRatioLimited",
    "speed-limit-down",
    "speed-limit-down-enabled",
    "speed-limit-up",
    "speed-limit-up-enabled",
})

# Methods whose arguments are checked against a whitelist
SETTABLE_FIELDS = {
    RpcMethod.TORRENT_SET: TORRENT_SET_FIELDS,
    RpcMethod.TORRENT_ADD: TORRENT_ADD_FIELDS,
    RpcMethod.TORRENT_REMOVE: TORRENT_REMOVE_FIELDS,
    RpcMethod.TORRENT_SET_LOCATION: TORRENT_SET_LOCATION_FIELDS,
    RpcMethod.SESSION_SET: SESSION_SET_FIELDS,
}


# Default field lists for torrent-get
TORRENT_FIELDS = [
    "activityDate", "addedDate", "bandwidthPriority", "comment", "corruptEver",
    "creator", "dateCreated", "desiredAvailable", "doneDate", "downloadDir",
    "downloadedEver", "downloadLimit", "downloadLimited", "error",
    "errorString", "eta", "files", "fileStats", "hashString", "haveUnchecked",
    "haveValid", "honorsSessionLimits", "id", "isFinished", "isPrivate",
    "leftUntilDone", "magnetLink", "manualAnnounceTime", "maxConnectedPeers",
    "metadataPercentComplete", "name", "peer-limit", "peers", "peersConnected",
    "peersFrom", "peersGettingFromUs", "peersKnown", "peersSendingToUs",
    "percentDone", "pieces", "pieceCount", "pieceSize", "priorities",
    "rateDownload", "rateUpload", "recheckProgress", "seedIdleLimit",
    "seedIdleMode", "seedRatioLimit", "seedRatioMode", "sizeWhenDone",
    "startDate", "status", "trackers", "trackerStats", "totalSize",
    "torrentFile", "uploadedEver", "uploadLimit", "uploadLimited",
    "uploadRatio", "wanted", "webseeds", "webseedsSendingToUs",
]

PEER_FIELDS = ["peers", "hashString", "id"]

FILE_FIELDS = ["files", "fileStats", "hashString", "id"]

FAST_FIELDS = [
    "id", "error", "errorString", "eta", "isFinished", "isStalled",
    "leftUntilDone", "metadataPercentComplete", "peersConnected",
    "peersGettingFromUs", "peersSendingToUs", "percentDone", "queuePosition",
    "rateDownload", "rateUpload", "recheckProgress", "seedRatioMode",
    "seedRatioLimit", "sizeWhenDone", "status", "trackers", "uploadedEver",
    "uploadRatio",
]


def wire_name_for(method: RpcMethod) -> str:
    """Get the RPC method name sent on the wire."""
    return method.value


def is_field_settable(method: RpcMethod, field: str) -> bool:
    """Check whether a field may appear in the arguments of a method."""
    allowed = SETTABLE_FIELDS.get(method)
    if allowed is None:
        return False
    return field in allowed


def has_whitelist(method: RpcMethod) -> bool:
    return method in SETTABLE_FIELDS


def validate_fields(method: RpcMethod, fields: Iterable[str]) -> None:
    """
    Reject any field the method does not accept.

    Raises:
        FieldNotSettableError: naming the first field outside the whitelist
    """
    for field in fields:
        if not is_field_settable(method, field):
            raise FieldNotSettableError(wire_name_for(method), field)
