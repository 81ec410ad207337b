"""
Minimal WooCommerce REST client shared by the WooCommerce catalog and access backends.

Only read endpoints are used. Authentication uses the consumer key/secret pair
over HTTP basic auth, which WooCommerce accepts on HTTPS sites.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

API_PREFIX = "/wp-json"
DEFAULT_PAGE_SIZE = 100


class WooCommerceClient:
    """
    Thin synchronous wrapper around httpx for the WooCommerce v3 REST API.

    HTTP errors are raised as httpx exceptions; callers decide how they map to
    domain errors.
    """

    def __init__(
        self,
        base_url: str,
        consumer_key: str = "",
        consumer_secret: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        auth = (consumer_key, consumer_secret) if consumer_key else None
        self._client = httpx.Client(
            base_url=f"{self.base_url}{API_PREFIX}",
            auth=auth,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self._client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    def get_all(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[dict]:
        """
        Fetch every page of a collection endpoint, preserving listing order.
        """
        items: List[dict] = []
        page = 1
        while True:
            query = dict(params or {})
            query.update({"per_page": DEFAULT_PAGE_SIZE, "page": page})
            response = self._client.get(path, params=query)
            response.raise_for_status()
            batch = response.json()
            if not batch:
                break
            items.extend(batch)

            total_pages = int(response.headers.get("X-WP-TotalPages") or 1)
            if page >= total_pages:
                break
            page += 1
        logger.debug(f"Fetched {len(items)} item(s) from {path}")
        return items

    def close(self) -> None:
        self._client.close()


def parse_gmt_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse WooCommerce `*_gmt` timestamps, which are ISO-8601 without an offset.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
