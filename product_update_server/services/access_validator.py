from __future__ import annotations

import logging
from typing import Optional

from product_update_server.domain.models import ProductId
from product_update_server.services.access_oracle import AccessOracle, OracleCapability

logger = logging.getLogger(__name__)


class AccessValidator:
    """
    Decides whether identity claims entitle a caller to a product's download.

    Claims are caller-asserted and not verified. Oracle failures propagate as
    AccessOracleError; they never grant access.
    """

    def __init__(self, oracle: AccessOracle):
        self.oracle = oracle

    def has_access(
        self,
        product_id: ProductId,
        customer_email: str = "",
        customer_id: Optional[int] = None,
        membership_plan: str = "",
    ) -> bool:
        oracle = self.oracle

        if customer_id and not customer_email and oracle.supports(OracleCapability.CUSTOMER_LOOKUP):
            customer_email = oracle.find_customer_email(customer_id) or ""

        if (customer_email or customer_id) and oracle.supports(OracleCapability.PURCHASES):
            if oracle.customer_bought_product(customer_email, customer_id, product_id):
                logger.debug(f"Access to product {product_id} granted by purchase")
                return True

        if membership_plan and customer_id and oracle.supports(OracleCapability.MEMBERSHIPS):
            # Callers pass either a plan name or a plan id, so both are checked.
            if oracle.supports(OracleCapability.PLAN_LOOKUP):
                plan = oracle.find_membership_plan(membership_plan)
                if plan is not None and oracle.is_active_member(customer_id, plan.id):
                    logger.debug(f"Access to product {product_id} granted by plan {plan.id}")
                    return True

            if oracle.is_active_member(customer_id, membership_plan):
                logger.debug(f"Access to product {product_id} granted by plan {membership_plan!r}")
                return True

        return False
