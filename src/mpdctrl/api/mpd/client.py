"""Blocking MPD client.

Typed convenience methods over MpdConnection. Each method frames one
command, raises ServerError if MPD answers with ACK, and projects the
response fields into a result type.

Example:
    with MpdClient("192.168.1.100") as client:
        status = client.status()
        if status.is_playing:
            track = client.current_song()
            print(f"Playing: {track.title} by {track.artist}")
"""

import logging
from collections.abc import Mapping
from typing import Literal, Self

from mpdctrl.api.mpd.connection import MpdConnection
from mpdctrl.api.mpd.errors import ServerError
from mpdctrl.api.mpd.projection import (
    parse_binary_response,
    parse_stats,
    parse_status,
    parse_track,
    text_fields,
)
from mpdctrl.api.mpd.protocol import escape_arg
from mpdctrl.api.mpd.settings import StoredSettings
from mpdctrl.api.mpd.types import (
    Failure,
    MpdAlbumArt,
    MpdStats,
    MpdStatus,
    MpdTrack,
    ResponseRecord,
)

logger = logging.getLogger(__name__)

# MPD error codes
MPD_ERROR_NO_EXIST = 50  # No file/art exists

REPLAY_GAIN_MODES = ("off", "track", "album", "auto")

ReplayGainMode = Literal["off", "track", "album", "auto"]


def _flag(state: bool) -> str:
    return "1" if state else "0"


def _mode(state: bool | Literal["oneshot"]) -> str:
    if state == "oneshot":
        return "oneshot"
    if isinstance(state, bool):
        return _flag(state)
    raise ValueError(f"Expected True, False or 'oneshot', got {state!r}")


class MpdClient:
    """Blocking MPD client.

    Wraps one MpdConnection; see MpdConnection for the settings
    precedence and lifecycle.

    Attributes:
        connection: The underlying protocol connection.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        timeout: float | None = None,
        *,
        password: str | None = None,
        strict: bool = False,
        stored: StoredSettings | None = None,
        environ: Mapping[str, str] | None = None,
        connection: MpdConnection | None = None,
    ) -> None:
        """Initialize MPD client.

        Args:
            host: MPD server hostname or IP.
            port: MPD server port.
            timeout: Seconds allowed for each blocking operation.
            password: Optional password for authentication.
            strict: Fail on unrecognised response lines.
            stored: Persisted settings consulted after the environment.
            environ: Environment mapping (defaults to os.environ).
            connection: Use an existing connection instead of creating one.
        """
        self.connection = connection or MpdConnection(
            host,
            port,
            timeout,
            password=password,
            strict=strict,
            stored=stored,
            environ=environ,
        )

    @property
    def is_connected(self) -> bool:
        """Return True if connected to MPD."""
        return self.connection.is_connected

    @property
    def version(self) -> str:
        """Return MPD protocol version from initial handshake."""
        return self.connection.version

    def connect(self) -> str:
        """Connect to MPD server.

        Returns:
            Protocol version announced by the server.
        """
        return self.connection.open()

    def close(self) -> None:
        """Disconnect from MPD server."""
        self.connection.close()

    def __enter__(self) -> Self:
        """Context manager entry."""
        self.connection.__enter__()
        return self

    def __exit__(self, *_: object) -> None:
        """Context manager exit."""
        self.close()

    def command(self, template: str, *params: object) -> ResponseRecord:
        """Send a command and return its response fields.

        Args:
            template: Command line, e.g. "setvol {}".
            *params: Values substituted into the template (not quoted).

        Returns:
            Response record.

        Raises:
            ServerError: If MPD answers with ACK.
        """
        outcome = self.connection.request(template, *params)
        if isinstance(outcome, Failure):
            raise ServerError(outcome.error)
        return outcome.record

    def _playback_command(self, template: str, *params: object) -> None:
        """Run a command that may change the player error state.

        The stale error is cleared first so a later status() reports the
        outcome of this command only.
        """
        self.clear_error()
        self.command(template, *params)

    # -------------------------------------------------------------------------
    # Status & Info Commands
    # -------------------------------------------------------------------------

    def clear_error(self) -> None:
        """Clear the current player error."""
        self.command("clearerror")

    def status(self) -> MpdStatus:
        """Get current player status.

        Returns:
            MpdStatus with current state, volume, etc.
        """
        return parse_status(self.command("status"))

    def current_song(self) -> MpdTrack | None:
        """Get current song information.

        Returns:
            MpdTrack if a song is loaded, None otherwise.
        """
        record = self.command("currentsong")
        if "file" not in text_fields(record):
            return None
        return parse_track(record)

    def stats(self) -> MpdStats:
        """Get database statistics."""
        return parse_stats(self.command("stats"))

    def ping(self) -> None:
        """Ping MPD server to check connection."""
        self.command("ping")

    # -------------------------------------------------------------------------
    # Playback Options
    # -------------------------------------------------------------------------

    def consume(self, state: bool | Literal["oneshot"] = False) -> None:
        """Set consume mode (remove tracks after playing)."""
        self.command("consume {}", _mode(state))

    def crossfade(self, seconds: int = 0) -> None:
        """Set crossfade between songs in seconds."""
        if seconds < 0:
            raise ValueError(f"Crossfade must be non-negative, got {seconds}")
        self.command("crossfade {}", int(seconds))

    def mixrampdb(self, decibels: float = 0) -> None:
        """Set the MixRamp threshold in decibels."""
        self.command("mixrampdb {}", decibels)

    def mixrampdelay(self, seconds: float = 0) -> None:
        """Set MixRamp overlap delay in seconds. Negative disables MixRamp."""
        self.command("mixrampdelay {}", seconds)

    def random(self, state: bool = False) -> None:
        """Enable or disable random playback."""
        self.command("random {}", _flag(state))

    def repeat(self, state: bool = False) -> None:
        """Enable or disable repeat."""
        self.command("repeat {}", _flag(state))

    def single(self, state: bool | Literal["oneshot"] = False) -> None:
        """Set single mode (stop after current track)."""
        self.command("single {}", _mode(state))

    def setvol(self, volume: int) -> None:
        """Set volume.

        Args:
            volume: Volume level (0-100).

        Raises:
            ValueError: If volume is out of range.
        """
        if isinstance(volume, bool) or not 0 <= volume <= 100:
            raise ValueError(f"Volume must be in 0-100, got {volume!r}")
        self.command("setvol {}", int(volume))

    def getvol(self) -> int | None:
        """Return the current volume, or None if MPD has no mixer."""
        value = text_fields(self.command("getvol")).get("volume")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning("Unexpected volume value from MPD: %r", value)
            return None

    def replay_gain_mode(self, mode: ReplayGainMode = "off") -> None:
        """Set the replay gain mode.

        Raises:
            ValueError: If mode is not off, track, album or auto.
        """
        if mode not in REPLAY_GAIN_MODES:
            raise ValueError(f"Unsupported replay gain mode: {mode!r}")
        self.command("replay_gain_mode {}", mode)

    def replay_gain_status(self) -> str:
        """Return the current replay gain mode."""
        return text_fields(self.command("replay_gain_status")).get("replay_gain_mode", "")

    def binarylimit(self, size: int) -> None:
        """Set the maximum binary chunk size MPD sends per response."""
        if size <= 0:
            raise ValueError(f"Binary limit must be positive, got {size}")
        self.command("binarylimit {}", int(size))

    # -------------------------------------------------------------------------
    # Playback Control
    # -------------------------------------------------------------------------

    def play(self, pos: int | None = None) -> None:
        """Start playback.

        Args:
            pos: Position in playlist to start from, or None for current.
        """
        if pos is None:
            self._playback_command("play")
        else:
            self._playback_command("play {}", int(pos))

    def playid(self, song_id: int | None = None) -> None:
        """Start playback at the song with the given ID."""
        if song_id is None:
            self._playback_command("playid")
        else:
            self._playback_command("playid {}", int(song_id))

    def pause(self, state: bool | None = None) -> None:
        """Pause or resume playback.

        Args:
            state: True to pause, False to resume, None to toggle.
        """
        if state is None:
            self.command("pause")
        else:
            self.command("pause {}", _flag(state))

    def stop(self) -> None:
        """Stop playback."""
        self.command("stop")

    def next(self) -> None:
        """Skip to next track."""
        self._playback_command("next")

    def previous(self) -> None:
        """Skip to previous track."""
        self._playback_command("previous")

    def seek(self, pos: int, time: float) -> None:
        """Seek to a position in the song at playlist position pos."""
        self._playback_command("seek {} {}", int(pos), time)

    def seekid(self, song_id: int, time: float) -> None:
        """Seek to a position in the song with the given ID."""
        self._playback_command("seekid {} {}", int(song_id), time)

    def seekcur(self, time: float | str) -> None:
        """Seek in the current song.

        Args:
            time: Seconds, or a string prefixed with "+"/"-" for a relative seek.
        """
        self._playback_command("seekcur {}", time)

    # -------------------------------------------------------------------------
    # Album Art Commands
    # -------------------------------------------------------------------------

    def _binary_command(self, cmd: str, uri: str, offset: int) -> MpdAlbumArt | None:
        try:
            record = self.command(f"{cmd} {{}} {{}}", escape_arg(uri), int(offset))
        except ServerError as e:
            if e.code == MPD_ERROR_NO_EXIST:
                return None
            raise
        return parse_binary_response(record, uri)

    def albumart(self, uri: str, offset: int = 0) -> MpdAlbumArt | None:
        """Get one chunk of album art from the song's folder (cover.jpg, etc.).

        Args:
            uri: The file URI to get art for.
            offset: Byte offset for chunked retrieval.

        Returns:
            MpdAlbumArt if available, None if no art found.
        """
        return self._binary_command("albumart", uri, offset)

    def readpicture(self, uri: str, offset: int = 0) -> MpdAlbumArt | None:
        """Get one chunk of embedded album art from file tags.

        Args:
            uri: The file URI to get art for.
            offset: Byte offset for chunked retrieval.

        Returns:
            MpdAlbumArt if available, None if no embedded art.
        """
        return self._binary_command("readpicture", uri, offset)

    def _fetch_full_art(self, cmd: str, uri: str) -> MpdAlbumArt | None:
        """Fetch complete album art, handling chunked responses.

        MPD returns album art in chunks (binarylimit, 8KB by default). This
        method fetches all chunks and concatenates them.
        """
        art = self._binary_command(cmd, uri, 0)
        if art is None or not art.is_valid:
            return None
        if art.is_complete:
            return art

        all_data = bytearray(art.data)
        while len(all_data) < art.size:
            chunk = self._binary_command(cmd, uri, len(all_data))
            if chunk is None or not chunk.is_valid:
                logger.warning("Album art for %s truncated at %d of %d bytes", uri,
                               len(all_data), art.size)
                break
            all_data.extend(chunk.data)

        return MpdAlbumArt(
            uri=art.uri,
            data=bytes(all_data),
            mime_type=art.mime_type,
            size=art.size,
        )

    def get_album_art(self, uri: str) -> MpdAlbumArt | None:
        """Get album art, trying readpicture first, then albumart.

        Args:
            uri: The file URI to get art for.

        Returns:
            MpdAlbumArt if available from either source, None otherwise.
        """
        art = self._fetch_full_art("readpicture", uri)
        if art is not None:
            return art
        return self._fetch_full_art("albumart", uri)
