"""
Composition root for the update server.

Collaborators are passed in explicitly so tests and alternative backends can
substitute their own.
"""
from __future__ import annotations

import logging
from typing import Optional

from product_update_server.domain.models import CronState, Index, IndexStatus, ServerSettings
from product_update_server.services.access_oracle import AccessOracle
from product_update_server.services.access_validator import AccessValidator
from product_update_server.services.catalog import CatalogAdapter
from product_update_server.services.index_builder import IndexBuilder
from product_update_server.services.index_cache import IndexCacheManager
from product_update_server.services.query_service import QueryService
from product_update_server.services.scheduler import RefreshScheduler
from product_update_server.services.settings import SettingsService
from product_update_server.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)


class UpdateServer:
    def __init__(self, catalog: CatalogAdapter, oracle: AccessOracle, store: CacheStore):
        self.catalog = catalog
        self.oracle = oracle
        self.store = store

        self.settings = SettingsService(store)
        self.builder = IndexBuilder(catalog, store, self.settings)
        self.cache = IndexCacheManager(self.builder, store)
        self.validator = AccessValidator(oracle)
        self.queries = QueryService(self.cache, self.validator)
        self.scheduler = RefreshScheduler(self.cache, store)

    def activate(self) -> None:
        """
        Startup: rebuild the index and (re)schedule the periodic refresh.
        """
        self.refresh_index()
        self.scheduler.sync(self.settings.get_settings(), force=True)

    def deactivate(self) -> None:
        """
        Shutdown: stop the periodic refresh and drop the cached index.
        """
        self.scheduler.unschedule()
        self.cache.evict()

    def refresh_index(self) -> Index:
        return self.cache.refresh()

    def save_settings(self, cache_ttl: Optional[int], enable_cron: bool) -> ServerSettings:
        settings = self.settings.save_settings(cache_ttl, enable_cron)
        self.scheduler.sync(settings, force=True)
        return settings

    def index_status(self) -> Optional[IndexStatus]:
        return self.cache.status()

    def schedule_state(self) -> CronState:
        return self.scheduler.get_state()
