"""MPD client exceptions.

All errors raised by this package derive from MpdError:

- ConfigError: invalid host/port/timeout values, raised at construction.
- TransportError: the socket failed, timed out, or closed mid-response.
- ProtocolError: the server (or caller) broke the line protocol.
- ServerError: the server answered with a well-formed ACK line.
"""

from mpdctrl.api.mpd.types import AckError


class MpdError(Exception):
    """Base class for MPD client errors."""


class ConfigError(MpdError, ValueError):
    """Invalid connection setting."""


class TransportError(MpdError):
    """Socket connect/send/receive failure, including timeouts."""


class ProtocolError(MpdError):
    """Malformed handshake or response line."""


class ServerError(MpdError):
    """MPD rejected a command with an ACK line.

    The connection remains usable after this error.
    """

    def __init__(self, ack: AckError) -> None:
        self.ack = ack
        super().__init__(f"MPD error {ack.code} in {ack.command}: {ack.message}")

    @property
    def code(self) -> int:
        """Return the ACK error code."""
        return self.ack.code

    @property
    def command(self) -> str:
        """Return the command that failed."""
        return self.ack.command

    @property
    def message(self) -> str:
        """Return the server's error message."""
        return self.ack.message
