"""
Pydantic models for the product update server.

This module defines all data models used throughout the application, including:
- Catalog products and their download variants (collaborator input)
- Index entries and summaries served to client installations
- Durable index status and server settings
- Membership plans and refresh schedule state

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


# Product identifiers are owned by the catalog; WooCommerce uses integers,
# the JSON catalog may use either.
ProductId = Union[int, str]

DEFAULT_CACHE_TTL = 3600
REFRESH_INTERVAL_SECONDS = 3600

PLUGIN_NAME_META_KEY = "_plugin_name"
VERSION_META_KEY = "_version"


# ---------------------------------------------------------------------------
# Catalog Models
# ---------------------------------------------------------------------------


class ProductDownload(BaseModel):
    """
    A single downloadable file attached to a catalog product.

    Only the locator and display name are indexed; the binary is never served
    by this application.
    """

    id: Optional[str] = Field(
        default=None,
        description="Catalog-assigned identifier of the download, if any.",
    )
    name: str = Field(
        default="",
        description="Display name of the file shown to customers.",
    )
    file: str = Field(
        description="Download URL of the file.",
    )


class CatalogProduct(BaseModel):
    """
    A product as listed by the catalog adapter.

    `downloads` keeps catalog listing order; the index uses the last entry.
    """

    id: ProductId
    name: str = ""
    status: str = Field(
        default="publish",
        description="Publication status; only 'publish' products are indexed.",
    )
    downloadable: bool = False
    meta: Dict[str, Any] = Field(
        default_factory=dict,
        description="Product metadata (e.g. '_plugin_name', '_version').",
    )
    downloads: List[ProductDownload] = Field(default_factory=list)
    date_modified: Optional[datetime] = None

    @property
    def plugin_name(self) -> str:
        value = self.meta.get(PLUGIN_NAME_META_KEY)
        return str(value).strip() if value is not None else ""

    @property
    def version(self) -> str:
        value = self.meta.get(VERSION_META_KEY)
        return str(value).strip() if value is not None else ""


# ---------------------------------------------------------------------------
# Index Models
# ---------------------------------------------------------------------------


class ProductSummary(BaseModel):
    """
    Public listing row for a product. Never carries the download reference.
    """

    plugin_name: str
    version: str
    product_id: ProductId
    last_updated: str


class IndexEntry(BaseModel):
    """
    Update metadata for one eligible product, keyed by `plugin_name` in the index.
    """

    product_id: ProductId
    plugin_name: str = Field(min_length=1)
    version: str = ""
    download_url: str
    file_name: str = ""
    last_updated: str = Field(
        default="",
        description="ISO-8601 timestamp of the last catalog modification, or '' if unknown.",
    )

    def to_summary(self) -> ProductSummary:
        return ProductSummary(
            plugin_name=self.plugin_name,
            version=self.version,
            product_id=self.product_id,
            last_updated=self.last_updated,
        )


# Mapping of plugin_name -> IndexEntry.
Index = Dict[str, IndexEntry]


class IndexStatus(BaseModel):
    """
    Durable record written on every build, used only for status reporting.
    """

    data: Dict[str, IndexEntry] = Field(default_factory=dict)
    generated_at: datetime


# ---------------------------------------------------------------------------
# Settings Models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    """
    Durable server settings, mutated only through the admin settings action.

    A stored `cache_ttl` of 0 is accepted; builds fall back to the default.
    """

    cache_ttl: int = Field(
        default=DEFAULT_CACHE_TTL,
        ge=0,
        description="How long (in seconds) the update index stays cached.",
    )
    enable_cron: bool = Field(
        default=False,
        description="If True, the index is rebuilt hourly in the background.",
    )

    @property
    def effective_cache_ttl(self) -> int:
        return self.cache_ttl if self.cache_ttl > 0 else DEFAULT_CACHE_TTL


# ---------------------------------------------------------------------------
# Access Models
# ---------------------------------------------------------------------------


class AccessQuery(BaseModel):
    """Identity claims supplied by a caller for one product."""

    product_id: ProductId
    customer_email: str = ""
    customer_id: Optional[int] = None
    membership_plan: str = ""

    def has_identity(self) -> bool:
        return bool(self.customer_email or self.customer_id or self.membership_plan)


class MembershipPlan(BaseModel):
    id: ProductId
    name: str = ""
    slug: str = ""


# ---------------------------------------------------------------------------
# Scheduling Models
# ---------------------------------------------------------------------------


class CronState(BaseModel):
    """
    State of the scheduled index refresh.

    Persisted in the durable store so restarts keep the pending fire time.
    """

    enabled: bool = False
    next_fire_time: Optional[datetime] = None
