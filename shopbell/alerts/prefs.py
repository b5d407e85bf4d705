"""
Persisted user preferences: alarm volume and the upcoming-reminder toggle.
"""

from __future__ import annotations

import logging

from shopbell.core.config import AlertsConfig
from shopbell.store.base import StorageProvider

logger = logging.getLogger(__name__)

VOLUME_KEY = "prefs/alert_volume"
UPCOMING_KEY = "prefs/upcoming_alerts"


class Preferences:
    """Typed accessors over the key/value store."""

    def __init__(self, storage: StorageProvider, config: AlertsConfig | None = None) -> None:
        self._storage = storage
        self._config = config or AlertsConfig()

    def clamp_volume(self, value: float) -> float:
        return max(self._config.min_volume, min(self._config.max_volume, value))

    async def get_volume(self) -> float:
        raw = await self._storage.get(VOLUME_KEY)
        if raw is None:
            return self.clamp_volume(self._config.default_volume)
        try:
            return self.clamp_volume(float(raw.decode()))
        except (ValueError, UnicodeDecodeError):
            logger.warning(f"Unreadable volume preference {raw!r}, using default")
            return self.clamp_volume(self._config.default_volume)

    async def set_volume(self, value: float) -> float:
        """Store the clamped volume and return what was stored."""
        clamped = self.clamp_volume(value)
        await self._storage.set(VOLUME_KEY, str(clamped).encode())
        return clamped

    async def upcoming_enabled(self) -> bool:
        raw = await self._storage.get(UPCOMING_KEY)
        if raw is None:
            return True
        return raw.decode(errors="ignore").strip().lower() == "true"

    async def set_upcoming_enabled(self, enabled: bool) -> None:
        await self._storage.set(UPCOMING_KEY, str(enabled).lower().encode())
