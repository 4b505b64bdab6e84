"""Client for the MPD line protocol over TCP."""

from mpdctrl.api.mpd.client import MpdClient
from mpdctrl.api.mpd.connection import ConnectionState, MpdConnection
from mpdctrl.api.mpd.errors import (
    ConfigError,
    MpdError,
    ProtocolError,
    ServerError,
    TransportError,
)
from mpdctrl.api.mpd.protocol import ResponseParser
from mpdctrl.api.mpd.settings import MpdSettings, resolve_settings
from mpdctrl.api.mpd.types import (
    AckError,
    Failure,
    MpdAlbumArt,
    MpdStats,
    MpdStatus,
    MpdTrack,
    Outcome,
    ResponseRecord,
    Success,
)

__all__ = [
    "AckError",
    "ConfigError",
    "ConnectionState",
    "Failure",
    "MpdAlbumArt",
    "MpdClient",
    "MpdConnection",
    "MpdError",
    "MpdSettings",
    "MpdStats",
    "MpdStatus",
    "MpdTrack",
    "Outcome",
    "ProtocolError",
    "ResponseParser",
    "ResponseRecord",
    "ServerError",
    "Success",
    "TransportError",
    "resolve_settings",
]
