"""
Builds the update index from a catalog snapshot and persists it.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from product_update_server.domain.errors import CatalogUnavailable
from product_update_server.domain.models import CatalogProduct, Index, IndexEntry, IndexStatus
from product_update_server.services.catalog import CatalogAdapter
from product_update_server.services.settings import SettingsService
from product_update_server.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

# The TTL entry and the durable status record share this key in their own namespaces.
INDEX_KEY = "product_update_server_index"


def _format_last_updated(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.replace(microsecond=0).isoformat()


def entry_from_product(product: CatalogProduct) -> Optional[IndexEntry]:
    """
    Turn a catalog product into an index entry, or None if it is not indexable.

    When a product has several downloads only the last one listed is used.
    """
    plugin_name = product.plugin_name
    if not plugin_name:
        return None
    if not product.downloads:
        return None

    download = product.downloads[-1]
    return IndexEntry(
        product_id=product.id,
        plugin_name=plugin_name,
        version=product.version,
        download_url=download.file,
        file_name=download.name,
        last_updated=_format_last_updated(product.date_modified),
    )


def index_to_json(index: Index) -> dict:
    return {name: entry.model_dump(mode="json") for name, entry in index.items()}


def index_from_json(raw: dict) -> Index:
    return {name: IndexEntry(**item) for name, item in raw.items()}


class IndexBuilder:
    def __init__(
        self,
        catalog: CatalogAdapter,
        store: CacheStore,
        settings: SettingsService,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.catalog = catalog
        self.store = store
        self.settings = settings
        self._now = now

    def build(self) -> Index:
        """
        Rebuild the index from the catalog and write it to both stores.

        The TTL write and the status write are independent; if one fails the
        stores may disagree until the next build.
        """
        try:
            products = self.catalog.list_products()
        except CatalogUnavailable as e:
            logger.warning(f"Catalog unavailable, serving an empty index: {e}")
            return {}

        index: Index = {}
        for product in products:
            entry = entry_from_product(product)
            if entry is None:
                logger.debug(f"Skipping product {product.id}: no slug or no downloads")
                continue
            # Duplicate slugs: last write wins.
            index[entry.plugin_name] = entry

        ttl = self.settings.get_settings().effective_cache_ttl
        payload = index_to_json(index)
        self.store.set_transient(INDEX_KEY, payload, ttl)

        status = IndexStatus(data=index, generated_at=self._now())
        self.store.update_option(INDEX_KEY, status.model_dump(mode="json"))

        logger.info(f"Built update index with {len(index)} product(s) from {len(products)} listed, ttl={ttl}s")
        return index
