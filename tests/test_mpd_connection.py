"""Tests for MpdConnection."""

import logging
from collections.abc import Callable

import pytest

from conftest import GREETING, FakeSocket
from mpdctrl.api.mpd import (
    ConfigError,
    ConnectionState,
    MpdConnection,
    ProtocolError,
    ServerError,
    TransportError,
)
from mpdctrl.api.mpd.types import AckError, Failure, Success

FakeServer = Callable[..., FakeSocket]


def _open(
    fake_server: FakeServer, inbound: bytes, **kwargs: object
) -> tuple[MpdConnection, FakeSocket]:
    sock = fake_server(GREETING + inbound)
    conn = MpdConnection("localhost", **kwargs)  # type: ignore[arg-type]
    conn.open()
    return conn, sock


class TestMpdConnectionSettings:
    """Tests for constructor validation and defaults."""

    def test_defaults(self) -> None:
        """Test built-in defaults."""
        conn = MpdConnection(environ={})
        assert conn.host == "localhost"
        assert conn.port == 6600
        assert conn.timeout == 1.0
        assert not conn.strict
        assert conn.state is ConnectionState.UNCONNECTED

    def test_explicit_beats_environment(self) -> None:
        """Test that explicit arguments override the environment."""
        env = {"MPD_HOST": "env-host", "MPD_PORT": "6601", "MPD_TIMEOUT": "3"}
        conn = MpdConnection("explicit", 6700, 0.5, environ=env)
        assert (conn.host, conn.port, conn.timeout) == ("explicit", 6700, 0.5)

    def test_environment_beats_default(self) -> None:
        """Test that the environment overrides defaults."""
        env = {"MPD_HOST": "env-host", "MPD_PORT": "6601", "MPD_TIMEOUT": "3"}
        conn = MpdConnection(environ=env)
        assert (conn.host, conn.port, conn.timeout) == ("env-host", 6601, 3.0)

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that os.environ is used when no mapping is given."""
        monkeypatch.setenv("MPD_PORT", "6602")
        assert MpdConnection().port == 6602

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"host": ""},
            {"port": 0},
            {"port": 70000},
            {"port": "6600"},
            {"port": True},
            {"timeout": 0},
            {"timeout": -1},
            {"timeout": "1"},
            {"timeout": float("nan")},
            {"timeout": float("inf")},
            {"strict": "yes"},
        ],
    )
    def test_invalid_arguments(self, kwargs: dict[str, object]) -> None:
        """Test that bad settings fail at construction."""
        with pytest.raises(ConfigError):
            MpdConnection(environ={}, **kwargs)  # type: ignore[arg-type]

    def test_invalid_environment(self) -> None:
        """Test that a non-numeric MPD_PORT fails at construction."""
        with pytest.raises(ConfigError):
            MpdConnection(environ={"MPD_PORT": "abc"})


class TestMpdConnectionHandshake:
    """Tests for open()."""

    def test_open_success(self, fake_server: FakeServer) -> None:
        """Test a successful handshake."""
        sock = fake_server(GREETING)
        conn = MpdConnection("music.local", 6601, 2.5)

        assert conn.open() == "0.23.5"
        assert conn.is_connected
        assert conn.version == "0.23.5"
        assert conn.state is ConnectionState.CONNECTED
        assert sock.connect_args == (("music.local", 6601), 2.5)  # type: ignore[attr-defined]
        assert sock.timeout == 2.5

    def test_open_logs_connection(
        self, fake_server: FakeServer, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a successful connect is logged."""
        fake_server(GREETING)
        with caplog.at_level(logging.INFO, logger="mpdctrl.api.mpd.connection"):
            MpdConnection("localhost").open()
        assert "Connected to MPD 0.23.5" in caplog.text

    @pytest.mark.parametrize("greeting", [b"INVALID\n", b"\n", b"OK MPD\n", b"OK\n"])
    def test_invalid_greeting(self, fake_server: FakeServer, greeting: bytes) -> None:
        """Test that a malformed greeting is a protocol error."""
        sock = fake_server(greeting)
        conn = MpdConnection("localhost")

        with pytest.raises(ProtocolError):
            conn.open()
        assert not conn.is_connected
        assert conn.state is ConnectionState.UNCONNECTED
        assert conn.version == ""
        assert sock.closed

    def test_missing_greeting(self, fake_server: FakeServer) -> None:
        """Test that a server closing without a greeting is a protocol error."""
        fake_server(b"")
        conn = MpdConnection("localhost")
        with pytest.raises(ProtocolError):
            conn.open()
        assert not conn.is_connected

    def test_greeting_timeout(self, fake_server: FakeServer) -> None:
        """Test that a greeting timeout is a transport error."""
        sock = fake_server(b"", fail_with=TimeoutError("timed out"))
        conn = MpdConnection("localhost")
        with pytest.raises(TransportError) as excinfo:
            conn.open()
        assert "Timed out" in str(excinfo.value)
        assert conn.state is ConnectionState.UNCONNECTED
        assert sock.closed

    def test_connect_refused(self, refuse_connection: Callable[[OSError], None]) -> None:
        """Test connection refused."""
        refuse_connection(ConnectionRefusedError("Connection refused"))
        conn = MpdConnection("localhost")
        with pytest.raises(TransportError) as excinfo:
            conn.open()
        assert "Connection refused" in str(excinfo.value)
        assert conn.state is ConnectionState.UNCONNECTED

    def test_connect_timeout(self, refuse_connection: Callable[[OSError], None]) -> None:
        """Test connection timeout."""
        refuse_connection(TimeoutError())
        with pytest.raises(TransportError) as excinfo:
            MpdConnection("localhost").open()
        assert "timed out" in str(excinfo.value)

    def test_retry_after_failed_open(self, fake_server: FakeServer) -> None:
        """Test that a failed open leaves the connection openable."""
        fake_server(b"garbage\n")
        conn = MpdConnection("localhost")
        with pytest.raises(ProtocolError):
            conn.open()

        fake_server(GREETING)
        assert conn.open() == "0.23.5"

    def test_open_twice(self, fake_server: FakeServer) -> None:
        """Test that opening a connected connection fails."""
        conn, _ = _open(fake_server, b"")
        with pytest.raises(TransportError):
            conn.open()

    def test_password_sent_after_handshake(
        self, fake_server: FakeServer, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test authentication right after the greeting."""
        sock = fake_server(GREETING + b"OK\n")
        conn = MpdConnection("localhost", password="s3cret")
        with caplog.at_level(logging.DEBUG, logger="mpdctrl.api.mpd.connection"):
            conn.open()

        assert sock.sent == [b"password s3cret\n"]
        assert conn.is_connected
        assert "s3cret" not in caplog.text

    def test_password_from_environment(self, fake_server: FakeServer) -> None:
        """Test MPD_HOST in password@host form."""
        sock = fake_server(GREETING + b"OK\n")
        conn = MpdConnection(environ={"MPD_HOST": "pw@music.local"})
        conn.open()

        assert conn.host == "music.local"
        assert sock.sent == [b"password pw\n"]

    def test_password_rejected(self, fake_server: FakeServer) -> None:
        """Test that a rejected password fails open()."""
        sock = fake_server(GREETING + b"ACK [3@0] {password} incorrect password\n")
        conn = MpdConnection("localhost", password="wrong")

        with pytest.raises(ServerError) as excinfo:
            conn.open()
        assert excinfo.value.code == 3
        assert conn.state is ConnectionState.UNCONNECTED
        assert sock.closed


class TestMpdConnectionClose:
    """Tests for close()."""

    def test_close(self, fake_server: FakeServer) -> None:
        """Test closing releases the socket."""
        conn, sock = _open(fake_server, b"")
        conn.close()

        assert sock.closed
        assert sock.reader.closed
        assert not conn.is_connected
        assert conn.state is ConnectionState.CLOSED

    def test_close_is_idempotent(self, fake_server: FakeServer) -> None:
        """Test that closing twice is a no-op."""
        conn, _ = _open(fake_server, b"")
        conn.close()
        conn.close()
        assert conn.state is ConnectionState.CLOSED

    def test_close_unopened(self) -> None:
        """Test closing a connection that was never opened."""
        conn = MpdConnection("localhost")
        conn.close()
        assert conn.state is ConnectionState.CLOSED

    def test_no_reopen_after_close(self, fake_server: FakeServer) -> None:
        """Test that a closed connection cannot be reopened."""
        conn, _ = _open(fake_server, b"")
        conn.close()
        fake_server(GREETING)
        with pytest.raises(TransportError):
            conn.open()

    def test_context_manager(self, fake_server: FakeServer) -> None:
        """Test context manager opens and closes."""
        sock = fake_server(GREETING)
        with MpdConnection("localhost") as conn:
            assert conn.is_connected
        assert not conn.is_connected
        assert sock.closed


class TestMpdConnectionRequests:
    """Tests for send(), read_response() and request()."""

    def test_send_frames_one_line(self, fake_server: FakeServer) -> None:
        """Test that a command is written once with one newline."""
        conn, sock = _open(fake_server, b"OK\n")
        conn.send("status")
        assert sock.sent == [b"status\n"]

    def test_send_substitutes_params(self, fake_server: FakeServer) -> None:
        """Test template substitution."""
        conn, sock = _open(fake_server, b"OK\n")
        conn.send("seek {} {}", 3, 12.5)
        assert sock.sent == [b"seek 3 12.5\n"]

    def test_send_without_params_keeps_braces(self, fake_server: FakeServer) -> None:
        """Test that a template is sent verbatim when no params are given."""
        conn, sock = _open(fake_server, b"OK\n")
        conn.send('find "(artist == \'{x}\')"')
        assert sock.sent == [b'find "(artist == \'{x}\')"\n']

    def test_send_rejects_newline(self, fake_server: FakeServer) -> None:
        """Test that a multi-line command is refused before writing."""
        conn, sock = _open(fake_server, b"")
        with pytest.raises(ProtocolError):
            conn.send("play {}", "1\nstop")
        assert sock.sent == []

    def test_send_while_response_pending(self, fake_server: FakeServer) -> None:
        """Test that only one request may be in flight."""
        conn, sock = _open(fake_server, b"OK\nOK\n")
        conn.send("stop")
        with pytest.raises(ProtocolError):
            conn.send("play")
        assert sock.sent == [b"stop\n"]

    def test_read_without_send(self, fake_server: FakeServer) -> None:
        """Test reading when no command was sent."""
        conn, _ = _open(fake_server, b"OK\n")
        with pytest.raises(ProtocolError):
            conn.read_response()

    def test_send_when_not_connected(self) -> None:
        """Test sending on an unopened connection."""
        with pytest.raises(TransportError):
            MpdConnection("localhost").send("status")

    def test_send_failure_closes(self, fake_server: FakeServer) -> None:
        """Test that a failed write is a transport error."""
        conn, sock = _open(fake_server, b"")
        sock.send_error = BrokenPipeError("Broken pipe")
        with pytest.raises(TransportError):
            conn.send("status")
        assert conn.state is ConnectionState.CLOSED

    def test_request_success(self, fake_server: FakeServer) -> None:
        """Test a full request cycle."""
        conn, _ = _open(fake_server, b"volume: 75\nstate: play\nOK\n")
        outcome = conn.request("status")
        assert outcome == Success({"volume": "75", "state": "play"})

    def test_ack_keeps_connection_usable(self, fake_server: FakeServer) -> None:
        """Test that a server error does not close the connection."""
        conn, sock = _open(fake_server, b"ACK [2@0] {setvol} Invalid volume value\nOK\n")

        outcome = conn.request("setvol 101")
        assert outcome == Failure(
            AckError(code=2, index=0, command="setvol", message="Invalid volume value")
        )
        assert conn.is_connected
        assert conn.request("setvol 50") == Success({})
        assert sock.sent == [b"setvol 101\n", b"setvol 50\n"]

    def test_requests_do_not_interleave(self, fake_server: FakeServer) -> None:
        """Test that each response is consumed before the next command is sent."""
        conn, sock = _open(fake_server, b"a: 1\nOK\nb: 2\nOK\n")

        assert conn.request("first") == Success({"a": "1"})
        assert conn.request("second") == Success({"b": "2"})

        kinds = sock.events
        second_send = kinds.index(("send", b"second\n"))
        assert ("read", b"OK\n") in kinds[:second_send]
        assert kinds[second_send + 1:] == [("read", b"b: 2\n"), ("read", b"OK\n")]

    def test_binary_request(self, fake_server: FakeServer) -> None:
        """Test a binary response over the connection."""
        conn, _ = _open(fake_server, b"size: 4\nbinary: 4\n\x89PNG\nOK\n")
        outcome = conn.request("albumart {} {}", "a.mp3", 0)
        assert outcome == Success({"size": "4", "binary": b"\x89PNG"})

    def test_truncated_binary_closes(self, fake_server: FakeServer) -> None:
        """Test that a short binary read fails and closes the connection."""
        conn, sock = _open(fake_server, b"binary: 4\n\x89P")
        with pytest.raises(TransportError):
            conn.request("albumart a.mp3 0")
        assert conn.state is ConnectionState.CLOSED
        assert sock.closed

    def test_read_timeout_closes(self, fake_server: FakeServer) -> None:
        """Test that a read timeout fails and closes the connection."""
        sock = fake_server(GREETING + b"volume: 75\n", fail_with=TimeoutError("timed out"))
        conn = MpdConnection("localhost")
        conn.open()

        with pytest.raises(TransportError):
            conn.request("status")
        assert conn.state is ConnectionState.CLOSED
        assert sock.closed

    def test_strict_mode_closes_on_garbage(self, fake_server: FakeServer) -> None:
        """Test strict mode through the connection."""
        conn, _ = _open(fake_server, b"garbage\nOK\n", strict=True)
        with pytest.raises(ProtocolError):
            conn.request("status")
        assert conn.state is ConnectionState.CLOSED

    def test_lenient_mode_skips_garbage(self, fake_server: FakeServer) -> None:
        """Test lenient mode through the connection."""
        conn, _ = _open(fake_server, b"garbage\nstate: stop\nOK\n")
        assert conn.request("status") == Success({"state": "stop"})
