from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from product_update_server.domain.models import ServerSettings
from product_update_server.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

SETTINGS_OPTION = "product_update_server_settings"


class SettingsService:
    """
    Durable server settings, stored as a single option record.
    """

    def __init__(self, store: CacheStore):
        self.store = store

    def get_settings(self) -> ServerSettings:
        """
        Load settings, merging stored values over the defaults.

        Defaults are persisted on first read so the record always exists afterwards.
        """
        raw = self.store.get_option(SETTINGS_OPTION)
        if not isinstance(raw, dict):
            settings = ServerSettings()
            self.store.update_option(SETTINGS_OPTION, settings.model_dump(mode="json"))
            return settings

        merged = ServerSettings().model_dump()
        merged.update({k: v for k, v in raw.items() if k in merged})
        try:
            return ServerSettings(**merged)
        except ValidationError as e:
            logger.warning(f"Stored settings are invalid, using defaults: {e}")
            return ServerSettings()

    def save_settings(self, cache_ttl: Optional[int], enable_cron: bool) -> ServerSettings:
        """
        Persist new settings. A missing cache_ttl keeps the stored value;
        negative values are stored as their absolute value.
        """
        current = self.get_settings()
        ttl = current.cache_ttl if cache_ttl is None else abs(int(cache_ttl))
        settings = ServerSettings(cache_ttl=ttl, enable_cron=bool(enable_cron))
        self.store.update_option(SETTINGS_OPTION, settings.model_dump(mode="json"))
        logger.info(f"Settings saved: cache_ttl={settings.cache_ttl} enable_cron={settings.enable_cron}")
        return settings
