from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from product_update_server.domain.models import Index, IndexStatus
from product_update_server.services.index_builder import INDEX_KEY, IndexBuilder, index_from_json
from product_update_server.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)


class IndexCacheManager:
    """
    Serves the cached index, rebuilding on a miss.

    There is no locking: concurrent misses may each trigger a build. Every build
    replaces the whole cached value, so whichever finishes last wins.
    """

    def __init__(self, builder: IndexBuilder, store: CacheStore):
        self.builder = builder
        self.store = store

    def get_index(self, force: bool = False) -> Index:
        if not force:
            cached = self.store.get_transient(INDEX_KEY)
            if isinstance(cached, dict):
                try:
                    return index_from_json(cached)
                except (ValidationError, TypeError) as e:
                    logger.warning(f"Discarding unreadable cached index: {e}")
        return self.builder.build()

    def refresh(self) -> Index:
        """Evict the cached index and rebuild it."""
        self.store.delete_transient(INDEX_KEY)
        return self.builder.build()

    def evict(self) -> None:
        self.store.delete_transient(INDEX_KEY)

    def status(self) -> Optional[IndexStatus]:
        raw = self.store.get_option(INDEX_KEY)
        if not isinstance(raw, dict):
            return None
        try:
            return IndexStatus(**raw)
        except ValidationError as e:
            logger.warning(f"Stored index status is invalid: {e}")
            return None
