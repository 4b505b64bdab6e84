"""Projection of response records into typed results.

MPD field names are matched case-insensitively ("Title" and "title" both
map to MpdTrack.title). Values that fail numeric coercion keep the field
default rather than failing the whole projection.
"""

import logging
from dataclasses import fields
from typing import Any

from mpdctrl.api.mpd.types import MpdAlbumArt, MpdStats, MpdStatus, MpdTrack, ResponseRecord

logger = logging.getLogger(__name__)

# MPD key name mappings to dataclass field names
_TRACK_KEY_MAP: dict[str, str] = {
    "file": "file",
    "title": "title",
    "artist": "artist",
    "album": "album",
    "albumartist": "album_artist",
    "duration": "duration",
    "time": "time",
    "track": "track",
    "date": "date",
    "genre": "genre",
    "format": "format",
    "last-modified": "modified",
    "pos": "pos",
    "id": "id",
}

_STATUS_KEY_MAP: dict[str, str] = {
    "partition": "partition",
    "state": "state",
    "volume": "volume",
    "repeat": "repeat",
    "random": "random",
    "single": "single",
    "consume": "consume",
    "playlist": "playlist",
    "playlistlength": "playlist_length",
    "song": "song",
    "songid": "song_id",
    "nextsong": "next_song",
    "nextsongid": "next_song_id",
    "elapsed": "elapsed",
    "duration": "duration",
    "time": "_time",  # Special: "elapsed:duration" format
    "bitrate": "bitrate",
    "xfade": "xfade",
    "mixrampdb": "mixrampdb",
    "mixrampdelay": "mixrampdelay",
    "audio": "audio",
    "error": "error",
}

_STATS_KEY_MAP: dict[str, str] = {
    "artists": "artists",
    "albums": "albums",
    "songs": "songs",
    "uptime": "uptime",
    "db_playtime": "db_playtime",
    "db_update": "db_update",
    "playtime": "playtime",
}


def text_fields(record: ResponseRecord) -> dict[str, str]:
    """Return the string fields of a record with lowercased keys.

    Later keys win when two differ only by case.
    """
    return {key.lower(): value for key, value in record.items() if isinstance(value, str)}


def _coerce(value: str, field_type: Any) -> Any:
    """Convert a field value to the dataclass field type.

    Raises:
        ValueError: If a numeric value does not parse.
        OverflowError: If an int field holds an infinite float.
    """
    if field_type is int:
        return int(float(value)) if "." in value else int(value)
    if field_type is float:
        return float(value)
    if field_type is bool:
        return value == "1"
    if field_type == bool | str:
        # single/consume: "0", "1" or a mode name such as "oneshot"
        if value in ("0", "1"):
            return value == "1"
        return value
    return value


def _project(data: dict[str, str], key_map: dict[str, str], cls: type) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    field_types = {f.name: f.type for f in fields(cls)}

    for mpd_key, field_name in key_map.items():
        if mpd_key not in data or field_name not in field_types:
            continue
        value = data[mpd_key]
        try:
            kwargs[field_name] = _coerce(value, field_types[field_name])
        except (ValueError, OverflowError):
            logger.debug("Ignoring unparsable %s value %r", mpd_key, value)

    return kwargs


def parse_track(record: ResponseRecord) -> MpdTrack:
    """Project a song record into MpdTrack.

    Args:
        record: Fields from currentsong or a playlist query.

    Returns:
        MpdTrack instance; file is empty if the record had none.
    """
    kwargs = _project(text_fields(record), _TRACK_KEY_MAP, MpdTrack)
    kwargs.setdefault("file", "")
    return MpdTrack(**kwargs)


def parse_status(record: ResponseRecord) -> MpdStatus:
    """Project a status record into MpdStatus.

    Args:
        record: Fields from the status command.

    Returns:
        MpdStatus instance.
    """
    data = text_fields(record)
    kwargs = _project(data, _STATUS_KEY_MAP, MpdStatus)

    # Legacy "time: elapsed:duration", used when the precise fields are absent
    legacy_time = data.get("time", "")
    if ":" in legacy_time:
        elapsed_str, duration_str = legacy_time.split(":", 1)
        try:
            kwargs.setdefault("elapsed", float(elapsed_str))
            kwargs.setdefault("duration", float(duration_str))
        except ValueError:
            logger.debug("Ignoring unparsable time value %r", legacy_time)

    return MpdStatus(**kwargs)


def parse_stats(record: ResponseRecord) -> MpdStats:
    """Project a stats record into MpdStats."""
    return MpdStats(**_project(text_fields(record), _STATS_KEY_MAP, MpdStats))


def parse_binary_response(record: ResponseRecord, uri: str) -> MpdAlbumArt | None:
    """Project an albumart/readpicture record.

    Args:
        record: Fields including "size", optional "type" and "binary".
        uri: The file URI this art is associated with.

    Returns:
        MpdAlbumArt, or None if the record carries no binary payload.
    """
    data = record.get("binary")
    if not isinstance(data, bytes):
        return None

    header = text_fields(record)
    try:
        size = int(header.get("size", "0"))
    except ValueError:
        size = len(data)

    return MpdAlbumArt(
        uri=uri,
        data=data,
        mime_type=header.get("type", ""),
        size=size,
    )
