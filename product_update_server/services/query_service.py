from __future__ import annotations

import logging
from typing import List, Optional

from product_update_server.domain.errors import Forbidden, MissingIdentity, NotFound
from product_update_server.domain.models import AccessQuery, IndexEntry, ProductSummary
from product_update_server.services.access_validator import AccessValidator
from product_update_server.services.index_cache import IndexCacheManager

logger = logging.getLogger(__name__)


class QueryService:
    """
    Read operations exposed to client installations.
    """

    def __init__(self, cache: IndexCacheManager, validator: AccessValidator):
        self.cache = cache
        self.validator = validator

    def list_summaries(self) -> List[ProductSummary]:
        """
        All indexed products without their download references.
        """
        index = self.cache.get_index()
        return [entry.to_summary() for entry in index.values()]

    def get_item(
        self,
        plugin_name: str,
        customer_email: str = "",
        customer_id: Optional[int] = None,
        membership_plan: str = "",
    ) -> IndexEntry:
        """
        Full index entry for plugin_name, including the download reference.

        Raises:
            NotFound: the slug is not indexed.
            MissingIdentity: no identity claim was supplied.
            Forbidden: the claims do not grant access.
        """
        index = self.cache.get_index()
        entry = index.get(plugin_name)
        if entry is None:
            raise NotFound()

        query = AccessQuery(
            product_id=entry.product_id,
            customer_email=customer_email or "",
            customer_id=customer_id or None,
            membership_plan=membership_plan or "",
        )
        if not query.has_identity():
            raise MissingIdentity()

        allowed = self.validator.has_access(
            query.product_id,
            customer_email=query.customer_email,
            customer_id=query.customer_id,
            membership_plan=query.membership_plan,
        )
        if not allowed:
            logger.info(f"Denied download of {plugin_name!r} (product {entry.product_id})")
            raise Forbidden()

        return entry
