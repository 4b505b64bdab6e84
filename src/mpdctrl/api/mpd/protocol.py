"""MPD protocol parsing utilities.

MPD uses a simple line-based text protocol:
- The server greets each connection with "OK MPD <version>"
- Commands are sent as plain text lines
- Responses are key-value pairs: "key: value"
- Responses end with "OK" or "ACK [error@index] {command} message"
- A "binary: <size>" field is followed by exactly <size> raw bytes
  (albumart, readpicture), then line parsing resumes

Reference: https://mpd.readthedocs.io/en/stable/protocol.html
"""

import enum
import logging
import re
from typing import Protocol

from mpdctrl.api.mpd.errors import ProtocolError, TransportError
from mpdctrl.api.mpd.types import AckError, Failure, Outcome, ResponseRecord, Success

logger = logging.getLogger(__name__)

# Greeting sent by the server right after accept: OK MPD 0.23.5
HANDSHAKE_PATTERN = re.compile(r"^OK MPD ([0-9]+(?:\.[0-9]+)*)$")

# Pattern for ACK responses: ACK [error@command_listNum] {current_command} message_text
ACK_PATTERN = re.compile(r"^ACK \[(\d+)@(\d+)\]\s*\{([^}]*)\}\s?(.*)$")

FIELD_PATTERN = re.compile(r"^([A-Za-z0-9_-]+): (.*)$")

BINARY_KEY = "binary"


class LineReader(Protocol):
    """Binary stream the parser reads from (socket file or BytesIO)."""

    def readline(self) -> bytes: ...

    def read(self, size: int) -> bytes: ...


class ParserState(enum.Enum):
    READING_LINES = "reading_lines"
    READING_BINARY = "reading_binary"


def parse_handshake(line: str) -> str | None:
    """Extract the protocol version from the server greeting.

    Args:
        line: Greeting line without its terminator.

    Returns:
        Version string (e.g. "0.23.5"), or None if the line is not a greeting.
    """
    match = HANDSHAKE_PATTERN.match(line)
    return match.group(1) if match else None


def parse_ack(line: str) -> AckError | None:
    """Decode an ACK error line.

    Args:
        line: Response line without its terminator.

    Returns:
        AckError, or None if the line is not a well-formed ACK.
    """
    match = ACK_PATTERN.match(line)
    if not match:
        return None
    return AckError(
        code=int(match.group(1)),
        index=int(match.group(2)),
        command=match.group(3),
        message=match.group(4),
    )


def parse_field(line: str) -> tuple[str, str] | None:
    """Split a "key: value" line. Returns None for anything else."""
    match = FIELD_PATTERN.match(line)
    if not match:
        return None
    return match.group(1), match.group(2)


class ResponseParser:
    """Reads one response from a stream and turns it into an Outcome.

    Lines are read until "OK" or an ACK line. A "binary: N" field switches
    the parser into a length-prefixed sub-read of exactly N bytes before
    line reading resumes.

    Lines matching neither a field, OK nor ACK are skipped in lenient mode
    and raise ProtocolError in strict mode. Blank lines are always skipped:
    MPD terminates every binary payload with one. An "ACK " line that does
    not decode ends the response as a Failure with code 0 when lenient.

    Example:
        parser = ResponseParser(sock.makefile("rb"))
        outcome = parser.read_response()
        if outcome.ok:
            print(outcome.record)
    """

    def __init__(self, stream: LineReader, strict: bool = False) -> None:
        """Initialize the parser.

        Args:
            stream: Buffered binary stream positioned at a response.
            strict: Fail on unrecognised lines instead of skipping them.
        """
        self._stream = stream
        self._strict = strict
        self._state = ParserState.READING_LINES

    @property
    def state(self) -> ParserState:
        """Return the current parser state."""
        return self._state

    @property
    def strict(self) -> bool:
        """Return True if unrecognised lines are fatal."""
        return self._strict

    def read_line(self) -> str:
        """Read one line and strip its terminator.

        Raises:
            TransportError: On socket failure or if the stream hit EOF.
            ProtocolError: If the line is not valid UTF-8.
        """
        try:
            raw = self._stream.readline()
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

        if not raw.endswith(b"\n"):
            raise TransportError("Connection closed by server")

        try:
            return raw[:-1].decode("utf-8").removesuffix("\r")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Invalid UTF-8 in response line: {raw!r}") from e

    def read_response(self) -> Outcome:
        """Read lines until OK or ACK.

        Returns:
            Success with the collected fields, or Failure with the ACK.

        Raises:
            TransportError: If the stream fails or ends mid-response.
            ProtocolError: On a bad binary length, or an unknown line in
                strict mode.
        """
        record: ResponseRecord = {}
        self._state = ParserState.READING_LINES

        while True:
            line = self.read_line()

            if line == "OK":
                return Success(record)

            if line.startswith("ACK "):
                ack = parse_ack(line)
                if ack is None:
                    if self._strict:
                        raise ProtocolError(f"Malformed ACK line: {line!r}")
                    ack = AckError(code=0, index=0, command="", message=line)
                return Failure(ack)

            pair = parse_field(line)
            if pair is not None:
                key, value = pair
                if key == BINARY_KEY:
                    record[key] = self._read_binary(value)
                else:
                    record[key] = value
                continue

            if not line:
                continue

            if self._strict:
                raise ProtocolError(f"Unexpected response line: {line!r}")
            logger.debug("Skipping unrecognised MPD line: %r", line)

    def _read_binary(self, size_value: str) -> bytes:
        """Read the raw payload announced by a "binary: N" field."""
        try:
            size = int(size_value)
        except ValueError as e:
            raise ProtocolError(f"Invalid binary size: {size_value!r}") from e
        if size < 0:
            raise ProtocolError(f"Invalid binary size: {size}")

        self._state = ParserState.READING_BINARY
        chunks: list[bytes] = []
        remaining = size
        while remaining > 0:
            try:
                chunk = self._stream.read(remaining)
            except OSError as e:
                raise TransportError(f"Binary read failed: {e}") from e
            if not chunk:
                raise TransportError(
                    f"Connection closed after {size - remaining} of {size} binary bytes"
                )
            chunks.append(chunk)
            remaining -= len(chunk)

        self._state = ParserState.READING_LINES
        return b"".join(chunks)


def escape_arg(arg: str) -> str:
    """Escape an argument for MPD command.

    MPD requires arguments with spaces or special chars to be quoted.
    Inside quotes, backslash and double-quote must be escaped.

    Args:
        arg: The argument to escape.

    Returns:
        Escaped argument, quoted if necessary.
    """
    if arg and not any(c in arg for c in ' "\t\n\\\''):
        return arg

    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
