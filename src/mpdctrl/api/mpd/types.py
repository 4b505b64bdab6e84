"""MPD protocol data types.

Frozen dataclasses for protocol outcomes and for the typed results the
command catalog projects out of a response record.
"""

from dataclasses import dataclass, field

# Field name -> value. Only the "binary" key carries bytes.
ResponseRecord = dict[str, str | bytes]


@dataclass(frozen=True)
class AckError:
    """Decoded ACK line: ``ACK [code@index] {command} message``.

    Attributes:
        code: MPD error code (e.g. 50 for "no such file").
        index: Position of the failing command in a command list.
        command: Name of the command that failed.
        message: Human-readable error text.
    """

    code: int
    index: int
    command: str
    message: str


@dataclass(frozen=True)
class Success:
    """Response terminated by OK."""

    record: ResponseRecord = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Response terminated by an ACK line."""

    error: AckError

    @property
    def ok(self) -> bool:
        return False


Outcome = Success | Failure


@dataclass(frozen=True)
class MpdTrack:
    """Song information from ``currentsong``.

    Attributes:
        file: Path to the audio file in MPD's music directory.
        title: Track title from tags.
        artist: Artist name(s) from tags.
        album: Album name from tags.
        album_artist: Album artist (if different from track artist).
        duration: Track duration in seconds.
        time: Legacy integer duration in seconds.
        track: Track number (e.g., "3" or "3/12").
        date: Release date/year.
        genre: Genre tag.
        format: Audio format string (e.g., "44100:16:2").
        modified: Last modification time of the file.
        pos: Position in the current playlist.
        id: MPD song ID in the current playlist.
    """

    file: str
    title: str = ""
    artist: str = ""
    album: str = ""
    album_artist: str = ""
    duration: float = 0.0
    time: int = 0
    track: str = ""
    date: str = ""
    genre: str = ""
    format: str = ""
    modified: str = ""
    pos: int = -1
    id: int = -1

    @property
    def display_title(self) -> str:
        """Return title for display, with filename fallback."""
        if self.title:
            return self.title
        name = self.file.rsplit("/", 1)[-1]
        if "." in name:
            name = name.rsplit(".", 1)[0]
        return name

    @property
    def display_artist(self) -> str:
        """Return artist for display, falling back to album_artist if empty."""
        return self.artist or self.album_artist or ""


@dataclass(frozen=True)
class MpdStatus:
    """MPD player status.

    ``single`` and ``consume`` are booleans for "0"/"1" and keep the raw
    string for other modes such as "oneshot".
    """

    partition: str = ""
    state: str = "stop"
    volume: int = -1
    repeat: bool = False
    random: bool = False
    single: bool | str = False
    consume: bool | str = False
    playlist: int = 0
    playlist_length: int = 0
    song: int = -1
    song_id: int = -1
    next_song: int = -1
    next_song_id: int = -1
    elapsed: float = 0.0
    duration: float = 0.0
    bitrate: int = 0
    xfade: int = 0
    mixrampdb: float = 0.0
    mixrampdelay: float = 0.0
    audio: str = ""
    error: str = ""

    @property
    def is_playing(self) -> bool:
        """Return True if currently playing."""
        return self.state == "play"

    @property
    def is_paused(self) -> bool:
        """Return True if paused."""
        return self.state == "pause"

    @property
    def is_stopped(self) -> bool:
        """Return True if stopped."""
        return self.state == "stop"

    @property
    def progress(self) -> float:
        """Return playback progress as a fraction (0.0 to 1.0)."""
        if self.duration <= 0:
            return 0.0
        return min(1.0, self.elapsed / self.duration)


@dataclass(frozen=True)
class MpdStats:
    """Database statistics from ``stats``. Times are in seconds."""

    artists: int = 0
    albums: int = 0
    songs: int = 0
    uptime: int = 0
    db_playtime: int = 0
    db_update: int = 0
    playtime: int = 0


@dataclass(frozen=True)
class MpdAlbumArt:
    """Album art data from MPD.

    Attributes:
        uri: The file URI this art is associated with.
        data: Raw image bytes.
        mime_type: MIME type (e.g., "image/jpeg", "image/png").
        size: Total size in bytes.
    """

    uri: str
    data: bytes
    mime_type: str = ""
    size: int = 0

    @property
    def is_valid(self) -> bool:
        """Return True if art data is present."""
        return len(self.data) > 0

    @property
    def is_complete(self) -> bool:
        """Return True if all declared bytes have been fetched."""
        return len(self.data) >= self.size
