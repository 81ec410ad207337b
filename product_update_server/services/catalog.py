"""
Catalog adapters: the source of truth for products that publish update metadata.

An adapter lists only eligible products: published, downloadable, and carrying
a non-empty `_plugin_name` meta value. Download variants keep catalog order.
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

import httpx
from pydantic import ValidationError

from product_update_server.domain.errors import CatalogUnavailable
from product_update_server.domain.models import CatalogProduct, ProductDownload
from product_update_server.services.woocommerce import WooCommerceClient, parse_gmt_datetime

logger = logging.getLogger(__name__)


def is_listable(product: CatalogProduct) -> bool:
    return product.status == "publish" and product.downloadable and bool(product.plugin_name)


class CatalogAdapter(ABC):
    """
    Abstract catalog collaborator.

    Implementations raise CatalogUnavailable when the backing catalog is absent
    or misconfigured; any other exception is a real failure and propagates.
    """

    @abstractmethod
    def list_products(self) -> List[CatalogProduct]:
        """Return eligible products in catalog listing order."""
        pass


class JsonCatalogAdapter(CatalogAdapter):
    """
    Reads products from the data directory.

    Expected layout: <data_dir>/catalog/<any folder>/product.json
    Folders are visited in name order, which defines listing order.
    """

    def __init__(self, data_dir: Path):
        self.catalog_dir = data_dir / "catalog"

    def list_products(self) -> List[CatalogProduct]:
        if not self.catalog_dir.is_dir():
            raise CatalogUnavailable(f"Catalog directory {self.catalog_dir} does not exist")

        products: List[CatalogProduct] = []
        for product_dir in sorted(self.catalog_dir.iterdir()):
            if not product_dir.is_dir():
                continue
            product_json = product_dir / "product.json"
            if not product_json.exists():
                continue

            try:
                raw = json.loads(product_json.read_text(encoding="utf-8"))
                product = CatalogProduct(**raw)
            except (OSError, ValueError, TypeError) as e:
                # ValidationError is a ValueError
                logger.warning(f"Skipping unreadable catalog product {product_json}: {e}")
                continue

            if is_listable(product):
                products.append(product)
        return products


class WooCommerceCatalogAdapter(CatalogAdapter):
    """
    Lists products through the WooCommerce REST API.

    WooCommerce cannot filter on meta values over REST, so the slug filter is
    applied here after fetching published downloadable products.
    """

    def __init__(self, client: Optional[WooCommerceClient]):
        self.client = client

    def list_products(self) -> List[CatalogProduct]:
        if self.client is None:
            raise CatalogUnavailable("WooCommerce is not configured")

        try:
            raw_products = self.client.get_all(
                "/wc/v3/products",
                params={"status": "publish", "downloadable": "true"},
            )
        except httpx.HTTPStatusError as e:
            # 401/403: bad credentials, 404: WooCommerce REST routes missing.
            if e.response.status_code in (401, 403, 404):
                raise CatalogUnavailable(
                    f"WooCommerce catalog rejected the request ({e.response.status_code})"
                ) from e
            raise

        products: List[CatalogProduct] = []
        for raw in raw_products:
            try:
                product = self._to_catalog_product(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed WooCommerce product {raw.get('id')}: {e}")
                continue
            if is_listable(product):
                products.append(product)
        return products

    @staticmethod
    def _to_catalog_product(raw: dict) -> CatalogProduct:
        meta = {}
        for item in raw.get("meta_data") or []:
            if isinstance(item, dict) and "key" in item:
                meta[item["key"]] = item.get("value")

        downloads = [
            ProductDownload(
                id=str(d["id"]) if d.get("id") is not None else None,
                name=d.get("name") or "",
                file=d.get("file") or "",
            )
            for d in raw.get("downloads") or []
            if isinstance(d, dict)
        ]

        return CatalogProduct(
            id=raw.get("id"),
            name=raw.get("name") or "",
            status=raw.get("status") or "",
            downloadable=bool(raw.get("downloadable")),
            meta=meta,
            downloads=downloads,
            date_modified=parse_gmt_datetime(raw.get("date_modified_gmt")),
        )
