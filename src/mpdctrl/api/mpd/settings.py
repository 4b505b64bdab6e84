"""Connection settings resolution.

Each setting is taken from the first source that provides it:

1. explicit argument
2. environment (MPD_HOST, MPD_PORT, MPD_TIMEOUT)
3. stored settings (e.g. mpdctrl.core.config.ConfigManager), if given
4. built-in default

MPD_HOST may carry a password in the form ``password@host``, the same
convention mpc uses.
"""

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from mpdctrl.api.mpd.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6600
DEFAULT_TIMEOUT = 1.0

ENV_HOST = "MPD_HOST"
ENV_PORT = "MPD_PORT"
ENV_TIMEOUT = "MPD_TIMEOUT"


class StoredSettings(Protocol):
    """Persisted defaults; each getter returns None when nothing is saved."""

    def get_mpd_host(self) -> str | None: ...

    def get_mpd_port(self) -> int | None: ...

    def get_mpd_timeout(self) -> float | None: ...


@dataclass(frozen=True)
class MpdSettings:
    """Resolved connection settings.

    Attributes:
        host: MPD server hostname or IP.
        port: MPD server port.
        timeout: Seconds allowed for each connect/read/write.
        password: Password sent after the handshake, or empty.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    password: str = ""


def check_host(host: object) -> str:
    if not isinstance(host, str) or not host:
        raise ConfigError(f"host must be a non-empty string, got {host!r}")
    return host


def check_port(port: object) -> int:
    if isinstance(port, bool) or not isinstance(port, int):
        raise ConfigError(f"port must be an integer, got {port!r}")
    if not 1 <= port <= 65535:
        raise ConfigError(f"port must be in 1-65535, got {port}")
    return port


def check_timeout(timeout: object) -> float:
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ConfigError(f"timeout must be a number, got {timeout!r}")
    if not math.isfinite(timeout) or timeout <= 0:
        raise ConfigError(f"timeout must be a positive finite number, got {timeout}")
    return float(timeout)


def split_host_password(value: str) -> tuple[str, str]:
    """Split an MPD_HOST value of the form ``password@host``.

    Args:
        value: Raw MPD_HOST value.

    Returns:
        Tuple of (host, password); password is empty if absent.
    """
    password, sep, host = value.rpartition("@")
    if not sep or not password:
        return value, ""
    return host, password


def _env_port(environ: Mapping[str, str]) -> int | None:
    raw = environ.get(ENV_PORT)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PORT} must be an integer, got {raw!r}") from e


def _env_timeout(environ: Mapping[str, str]) -> float | None:
    raw = environ.get(ENV_TIMEOUT)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_TIMEOUT} must be a number, got {raw!r}") from e


def _first(*values: object) -> object:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def resolve_settings(
    host: str | None = None,
    port: int | None = None,
    timeout: float | None = None,
    password: str | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    stored: StoredSettings | None = None,
) -> MpdSettings:
    """Resolve connection settings.

    Args:
        host: Explicit host, overrides everything else.
        port: Explicit port.
        timeout: Explicit timeout in seconds.
        password: Explicit password.
        environ: Environment mapping (defaults to os.environ).
        stored: Persisted settings consulted after the environment.

    Returns:
        Validated MpdSettings.

    Raises:
        ConfigError: If any resolved value has the wrong type or range.
    """
    env = os.environ if environ is None else environ

    env_host: str | None = None
    env_password = ""
    if env.get(ENV_HOST):
        env_host, env_password = split_host_password(env[ENV_HOST])

    stored_host = stored.get_mpd_host() if stored else None
    stored_port = stored.get_mpd_port() if stored else None
    stored_timeout = stored.get_mpd_timeout() if stored else None

    resolved_host = check_host(_first(host, env_host, stored_host, DEFAULT_HOST))

    # The MPD_HOST password belongs to the MPD_HOST server only
    if password is not None:
        resolved_password = password
    elif host is None and env_host is not None:
        resolved_password = env_password
    else:
        resolved_password = ""
    if not isinstance(resolved_password, str):
        raise ConfigError(f"password must be a string, got {resolved_password!r}")

    if port is None:
        port = _first(_env_port(env), stored_port, DEFAULT_PORT)
    if timeout is None:
        timeout = _first(_env_timeout(env), stored_timeout, DEFAULT_TIMEOUT)

    settings = MpdSettings(
        host=resolved_host,
        port=check_port(port),
        timeout=check_timeout(timeout),
        password=resolved_password,
    )
    logger.debug(
        "Resolved MPD settings: %s:%d timeout=%.1fs", settings.host, settings.port, settings.timeout
    )
    return settings
