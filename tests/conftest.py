"""Test fixtures for mpdctrl tests."""

import io
import socket
from collections.abc import Callable, Generator

import pytest

from mpdctrl.core.config import ConfigManager

GREETING = b"OK MPD 0.23.5\n"


class FakeReader:
    """Buffered reader over scripted server bytes.

    Records every line read into the shared event log. When the script
    runs out and ``fail_with`` is set, raises it instead of returning EOF.
    """

    def __init__(
        self,
        data: bytes,
        events: list[tuple[str, bytes]],
        fail_with: BaseException | None = None,
    ) -> None:
        self._buffer = io.BytesIO(data)
        self._events = events
        self._fail_with = fail_with
        self.closed = False

    def readline(self) -> bytes:
        """Read a line from scripted data."""
        line = self._buffer.readline()
        if not line and self._fail_with is not None:
            raise self._fail_with
        self._events.append(("read", line))
        return line

    def read(self, size: int) -> bytes:
        """Read up to size bytes."""
        data = self._buffer.read(size)
        if not data and self._fail_with is not None:
            raise self._fail_with
        self._events.append(("read", data))
        return data

    def close(self) -> None:
        """Mark as closed."""
        self.closed = True


class FakeSocket:
    """Stand-in for a connected TCP socket."""

    def __init__(self, inbound: bytes, fail_with: BaseException | None = None) -> None:
        self.events: list[tuple[str, bytes]] = []
        self.reader = FakeReader(inbound, self.events, fail_with)
        self.timeout: float | None = None
        self.closed = False
        self.send_error: OSError | None = None

    @property
    def sent(self) -> list[bytes]:
        """Return all writes in order."""
        return [data for kind, data in self.events if kind == "send"]

    def settimeout(self, timeout: float | None) -> None:
        """Record the timeout."""
        self.timeout = timeout

    def makefile(self, mode: str) -> FakeReader:
        """Return the scripted reader."""
        assert mode == "rb"
        return self.reader

    def sendall(self, data: bytes) -> None:
        """Record written data."""
        if self.send_error is not None:
            raise self.send_error
        self.events.append(("send", data))

    def close(self) -> None:
        """Mark as closed."""
        self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's MPD_* variables out of the tests."""
    for name in ("MPD_HOST", "MPD_PORT", "MPD_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_server(
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[..., FakeSocket]:
    """Patch socket.create_connection to return a scripted FakeSocket.

    Usage:
        sock = fake_server(GREETING + b"OK\\n")
        sock.connect_args  # (address, timeout) passed to create_connection
    """

    def _fake_server(inbound: bytes, fail_with: BaseException | None = None) -> FakeSocket:
        sock = FakeSocket(inbound, fail_with)

        def _create_connection(
            address: tuple[str, int], timeout: float | None = None
        ) -> FakeSocket:
            sock.connect_args = (address, timeout)  # type: ignore[attr-defined]
            return sock

        monkeypatch.setattr(socket, "create_connection", _create_connection)
        return sock

    return _fake_server


@pytest.fixture
def refuse_connection(monkeypatch: pytest.MonkeyPatch) -> Callable[[OSError], None]:
    """Make socket.create_connection raise the given error."""

    def _refuse(error: OSError) -> None:
        def _create_connection(*_: object, **__: object) -> socket.socket:
            raise error

        monkeypatch.setattr(socket, "create_connection", _create_connection)

    return _refuse


@pytest.fixture
def config() -> Generator[ConfigManager, None, None]:
    """Return a fresh ConfigManager backed by a throwaway QSettings store."""
    config = ConfigManager("mpdctrlTest", "TestConfig")
    config.clear()
    yield config
    config.clear()
