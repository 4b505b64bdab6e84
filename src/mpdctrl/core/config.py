"""Configuration manager using QSettings for persistent storage."""

import logging

from PySide6.QtCore import QSettings

from mpdctrl.api.mpd.settings import DEFAULT_PORT, DEFAULT_TIMEOUT, check_timeout

logger = logging.getLogger(__name__)

# Settings keys
_KEY_MPD_HOST = "mpd/host"
_KEY_MPD_PORT = "mpd/port"
_KEY_MPD_TIMEOUT = "mpd/timeout"


class ConfigManager:
    """Wrapper around QSettings for persisted MPD connection defaults.

    QSettings stores config in platform-specific locations:
    - Windows: HKEY_CURRENT_USER\\Software\\mpdctrl\\mpdctrl
    - macOS: ~/Library/Preferences/com.mpdctrl.mpdctrl.plist
    - Linux: ~/.config/mpdctrl/mpdctrl.conf

    Getters return None for settings that were never saved, so
    resolve_settings() falls through to the built-in default.

    Example:
        config = ConfigManager()
        config.set_mpd_host("music.local")
        settings = resolve_settings(stored=config)
    """

    def __init__(self, organization: str = "mpdctrl", application: str = "mpdctrl") -> None:
        """Initialize the config manager.

        Args:
            organization: Organization name for QSettings.
            application: Application name for QSettings.
        """
        self._settings = QSettings(organization, application)

    @property
    def settings(self) -> QSettings:
        """Return the underlying QSettings instance."""
        return self._settings

    def get_mpd_host(self) -> str | None:
        """Return the saved MPD host, or None if not saved."""
        if not self._settings.contains(_KEY_MPD_HOST):
            return None
        value = self._settings.value(_KEY_MPD_HOST, "", str)
        return str(value) if value else None

    def set_mpd_host(self, host: str) -> None:
        """Save the MPD host.

        Args:
            host: Hostname or IP address.
        """
        self._settings.setValue(_KEY_MPD_HOST, host)

    def get_mpd_port(self) -> int | None:
        """Return the saved MPD port, or None if not saved."""
        if not self._settings.contains(_KEY_MPD_PORT):
            return None
        return int(self._settings.value(_KEY_MPD_PORT, DEFAULT_PORT, int))

    def set_mpd_port(self, port: int) -> None:
        """Save the MPD port, clamped to 1-65535.

        Args:
            port: TCP port.
        """
        self._settings.setValue(_KEY_MPD_PORT, max(1, min(65535, port)))

    def get_mpd_timeout(self) -> float | None:
        """Return the saved timeout in seconds, or None if not saved."""
        if not self._settings.contains(_KEY_MPD_TIMEOUT):
            return None
        return float(self._settings.value(_KEY_MPD_TIMEOUT, DEFAULT_TIMEOUT, float))

    def set_mpd_timeout(self, seconds: float) -> None:
        """Save the timeout.

        Args:
            seconds: Timeout in seconds.

        Raises:
            ConfigError: If seconds is not a positive number.
        """
        self._settings.setValue(_KEY_MPD_TIMEOUT, check_timeout(seconds))

    def clear(self) -> None:
        """Clear all settings."""
        self._settings.clear()
        logger.debug("Cleared stored MPD settings")

    def sync(self) -> None:
        """Force write settings to storage."""
        self._settings.sync()
