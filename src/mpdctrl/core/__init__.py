"""Application layer around the MPD client.

Classes:
    ConfigManager: QSettings wrapper for persisted connection defaults.
"""

from mpdctrl.core.config import ConfigManager

__all__ = ["ConfigManager"]
