"""Blocking MPD connection.

Owns one TCP socket, performs the "OK MPD <version>" handshake, frames
commands and reads one response per command. MPD processes commands
strictly in order, so only one request may be in flight at a time.

Example:
    with MpdConnection("192.168.1.100") as conn:
        outcome = conn.request("status")
        if outcome.ok:
            print(outcome.record["state"])
"""

import enum
import logging
import socket
from collections.abc import Mapping
from typing import BinaryIO, Self

from mpdctrl.api.mpd.errors import (
    ConfigError,
    MpdError,
    ProtocolError,
    ServerError,
    TransportError,
)
from mpdctrl.api.mpd.protocol import ResponseParser, escape_arg, parse_handshake
from mpdctrl.api.mpd.settings import StoredSettings, resolve_settings
from mpdctrl.api.mpd.types import Failure, Outcome

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class MpdConnection:
    """A single synchronous connection to an MPD server.

    The connection is not reusable: once closed, create a new instance.
    No locking is done; callers sharing one connection between threads
    must serialize access themselves.

    Attributes:
        host: MPD server hostname or IP.
        port: MPD server port.
        timeout: Seconds allowed for each blocking connect/read/write.
        strict: Fail on unrecognised response lines instead of skipping them.
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
    ) -> None:
        """Initialize the connection without opening it.

        Unset arguments fall back to MPD_HOST/MPD_PORT/MPD_TIMEOUT, then to
        stored settings, then to localhost:6600 with a 1 second timeout.

        Raises:
            ConfigError: If a setting has the wrong type or is out of range.
        """
        if not isinstance(strict, bool):
            raise ConfigError(f"strict must be a bool, got {strict!r}")
        settings = resolve_settings(
            host, port, timeout, password, environ=environ, stored=stored
        )
        self.host = settings.host
        self.port = settings.port
        self.timeout = settings.timeout
        self.strict = strict
        self._password = settings.password

        self._sock: socket.socket | None = None
        self._reader: BinaryIO | None = None
        self._parser: ResponseParser | None = None
        self._state = ConnectionState.UNCONNECTED
        self._version = ""
        self._pending = False

    @property
    def state(self) -> ConnectionState:
        """Return the lifecycle state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Return True if the handshake succeeded and close() was not called."""
        return self._state is ConnectionState.CONNECTED

    @property
    def version(self) -> str:
        """Return MPD protocol version from the handshake."""
        return self._version

    def open(self) -> str:
        """Connect and perform the handshake.

        Returns:
            Protocol version announced by the server.

        Raises:
            TransportError: If connecting or reading fails or times out, or
                the connection was already opened or closed.
            ProtocolError: If the greeting is missing or malformed.
            ServerError: If the configured password is rejected.
        """
        if self._state is ConnectionState.CLOSED:
            raise TransportError("Connection is closed; create a new MpdConnection")
        if self._state is ConnectionState.CONNECTED:
            raise TransportError(f"Already connected to {self.host}:{self.port}")

        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except TimeoutError as e:
            raise TransportError(f"Connection to {self.host}:{self.port} timed out") from e
        except OSError as e:
            raise TransportError(f"Failed to connect to {self.host}:{self.port}: {e}") from e

        sock.settimeout(self.timeout)
        reader = sock.makefile("rb")
        try:
            self._version = self._read_greeting(reader)
        except MpdError:
            _release(sock, reader)
            raise

        self._sock = sock
        self._reader = reader
        self._parser = ResponseParser(reader, strict=self.strict)
        self._state = ConnectionState.CONNECTED
        logger.info("Connected to MPD %s at %s:%d", self._version, self.host, self.port)

        if self._password:
            try:
                self._authenticate()
            except MpdError:
                self._release()
                self._state = ConnectionState.UNCONNECTED
                raise

        return self._version

    def _read_greeting(self, reader: BinaryIO) -> str:
        try:
            raw = reader.readline()
        except TimeoutError as e:
            raise TransportError(f"Timed out waiting for MPD greeting from {self.host}") from e
        except OSError as e:
            raise TransportError(f"Failed to read MPD greeting: {e}") from e

        if not raw.endswith(b"\n"):
            raise ProtocolError(f"No MPD greeting from {self.host}:{self.port}")

        line = raw[:-1].decode("utf-8", errors="replace").removesuffix("\r")
        version = parse_handshake(line)
        if version is None:
            raise ProtocolError(f"Invalid MPD greeting: {line!r}")
        return version

    def _authenticate(self) -> None:
        outcome = self.request("password {}", escape_arg(self._password))
        if isinstance(outcome, Failure):
            raise ServerError(outcome.error)

    def close(self) -> None:
        """Release the socket. Calling close() again is a no-op."""
        if self._state is ConnectionState.CLOSED:
            return

        was_connected = self._state is ConnectionState.CONNECTED
        self._release()
        self._state = ConnectionState.CLOSED
        if was_connected:
            logger.info("Disconnected from MPD")

    def _release(self) -> None:
        if self._sock is not None:
            _release(self._sock, self._reader)
        self._sock = None
        self._reader = None
        self._parser = None
        self._pending = False

    def __enter__(self) -> Self:
        """Context manager entry; opens the connection if needed."""
        if self._state is ConnectionState.UNCONNECTED:
            self.open()
        return self

    def __exit__(self, *_: object) -> None:
        """Context manager exit."""
        self.close()

    def send(self, template: str, *params: object) -> None:
        """Frame a command and write it.

        Parameters are substituted with str.format; no quoting is applied,
        use escape_arg() for values that may contain spaces or quotes.

        Args:
            template: Command line, e.g. "setvol {}".
            *params: Values substituted into the template.

        Raises:
            TransportError: If not connected or the write fails.
            ProtocolError: If a response is still unread or the framed
                command spans more than one line.
        """
        sock = self._require_socket()
        if self._pending:
            raise ProtocolError("Previous response has not been read")

        line = template.format(*params) if params else template
        if "\n" in line or "\r" in line:
            raise ProtocolError(f"Command must be a single line: {line!r}")

        if line.startswith("password "):
            logger.debug("MPD command: password ******")
        else:
            logger.debug("MPD command: %s", line)

        try:
            sock.sendall(f"{line}\n".encode())
        except OSError as e:
            self._abort()
            raise TransportError(f"Failed to send command: {e}") from e
        self._pending = True

    def read_response(self) -> Outcome:
        """Read the response to the last command sent.

        Returns:
            Success with the response fields, or Failure with the ACK.

        Raises:
            TransportError: On socket failure, timeout or EOF. The
                connection is closed.
            ProtocolError: On malformed output (see ResponseParser). The
                connection is closed.
        """
        self._require_socket()
        if not self._pending or self._parser is None:
            raise ProtocolError("No command awaiting a response")

        try:
            outcome = self._parser.read_response()
        except (TransportError, ProtocolError):
            self._abort()
            raise

        self._pending = False
        if isinstance(outcome, Failure):
            logger.debug("MPD ACK %d in %s: %s", outcome.error.code, outcome.error.command,
                         outcome.error.message)
        return outcome

    def request(self, template: str, *params: object) -> Outcome:
        """Send a command and read its response.

        Args:
            template: Command line, e.g. "play {}".
            *params: Values substituted into the template.

        Returns:
            Success or Failure for this command.
        """
        self.send(template, *params)
        return self.read_response()

    def _require_socket(self) -> socket.socket:
        if self._state is not ConnectionState.CONNECTED or self._sock is None:
            raise TransportError("Not connected")
        return self._sock

    def _abort(self) -> None:
        """Close after a failure that leaves the stream position unknown."""
        logger.warning("Closing MPD connection to %s:%d after stream failure", self.host,
                       self.port)
        self.close()


def _release(sock: socket.socket, reader: BinaryIO | None) -> None:
    for resource in (reader, sock):
        if resource is None:
            continue
        try:
            resource.close()
        except OSError as e:
            logger.debug("Expected error during MPD disconnect: %s", e)
