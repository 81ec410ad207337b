"""
Access oracles answer purchase and membership questions about a customer.

Oracles declare what they can answer through `capabilities`. The access
validator skips any lookup the oracle does not support, so "membership
checking unavailable" is distinct from "checked, not a member".
"""
from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

import httpx
from pydantic import BaseModel, Field

from product_update_server.domain.errors import AccessOracleError
from product_update_server.domain.models import MembershipPlan, ProductId
from product_update_server.services.woocommerce import WooCommerceClient

logger = logging.getLogger(__name__)

# Order statuses WooCommerce treats as paid for "customer bought product".
PAID_ORDER_STATUSES = ("completed", "processing")

# WooCommerce Memberships statuses that grant member access.
ACTIVE_MEMBERSHIP_STATUSES = ("active", "complimentary", "free_trial", "pending")


class OracleCapability(str, Enum):
    CUSTOMER_LOOKUP = "customer_lookup"
    PURCHASES = "purchases"
    MEMBERSHIPS = "memberships"
    PLAN_LOOKUP = "plan_lookup"


class AccessOracle(ABC):
    """
    Abstract purchase/membership collaborator.

    Lookups that fail (network, malformed data) raise AccessOracleError.
    """

    capabilities: FrozenSet[OracleCapability] = frozenset()

    def supports(self, capability: OracleCapability) -> bool:
        return capability in self.capabilities

    @abstractmethod
    def find_customer_email(self, customer_id: int) -> Optional[str]:
        """Return the account email for customer_id, or None if there is no such account."""
        pass

    @abstractmethod
    def customer_bought_product(
        self, customer_email: str, customer_id: Optional[int], product_id: ProductId
    ) -> bool:
        """True if a paid order by this email or customer id contains product_id."""
        pass

    def find_membership_plan(self, plan_name: str) -> Optional[MembershipPlan]:
        raise NotImplementedError("membership plan lookup is not supported")

    def is_active_member(self, customer_id: int, plan: ProductId) -> bool:
        raise NotImplementedError("membership checks are not supported")


# ---------------------------------------------------------------------------
# JSON data-directory oracle
# ---------------------------------------------------------------------------


class _Customer(BaseModel):
    id: int
    email: str = ""


class _Order(BaseModel):
    id: Optional[ProductId] = None
    customer_id: Optional[int] = None
    billing_email: str = ""
    status: str = "completed"
    product_ids: List[ProductId] = Field(default_factory=list)


class _Membership(BaseModel):
    customer_id: int
    plan_id: ProductId
    status: str = "active"


class _AccessData(BaseModel):
    customers: List[_Customer] = Field(default_factory=list)
    orders: List[_Order] = Field(default_factory=list)
    membership_plans: List[MembershipPlan] = Field(default_factory=list)
    memberships: List[_Membership] = Field(default_factory=list)


def _same_id(a: Any, b: Any) -> bool:
    return str(a) == str(b)


class JsonAccessOracle(AccessOracle):
    """
    Answers access questions from <data_dir>/access.json.

    The file is re-read whenever its modification time changes. A missing file
    is an oracle that knows no customers.
    """

    capabilities = frozenset(OracleCapability)

    def __init__(self, data_dir: Path):
        self.path = data_dir / "access.json"
        self._data = _AccessData()
        self._loaded_mtime: Optional[float] = None

    def _load(self) -> _AccessData:
        if not self.path.exists():
            self._data = _AccessData()
            self._loaded_mtime = None
            return self._data

        mtime = self.path.stat().st_mtime
        if mtime != self._loaded_mtime:
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                self._data = _AccessData(**raw)
            except (OSError, ValueError, TypeError) as e:
                raise AccessOracleError(f"Could not read {self.path}: {e}") from e
            self._loaded_mtime = mtime
        return self._data

    def find_customer_email(self, customer_id: int) -> Optional[str]:
        for customer in self._load().customers:
            if customer.id == customer_id:
                return customer.email or None
        return None

    def customer_bought_product(
        self, customer_email: str, customer_id: Optional[int], product_id: ProductId
    ) -> bool:
        email = (customer_email or "").strip().casefold()
        for order in self._load().orders:
            if order.status not in PAID_ORDER_STATUSES:
                continue
            if not any(_same_id(pid, product_id) for pid in order.product_ids):
                continue
            if customer_id and order.customer_id == customer_id:
                return True
            if email and order.billing_email.strip().casefold() == email:
                return True
        return False

    def find_membership_plan(self, plan_name: str) -> Optional[MembershipPlan]:
        wanted = plan_name.strip().casefold()
        for plan in self._load().membership_plans:
            if plan.name.casefold() == wanted or plan.slug.casefold() == wanted:
                return plan
        return None

    def is_active_member(self, customer_id: int, plan: ProductId) -> bool:
        data = self._load()
        # A raw plan reference may be the plan id or its slug.
        plan_ids = {str(plan)}
        for known in data.membership_plans:
            if known.slug and known.slug == str(plan):
                plan_ids.add(str(known.id))

        return any(
            m.customer_id == customer_id
            and str(m.plan_id) in plan_ids
            and m.status in ACTIVE_MEMBERSHIP_STATUSES
            for m in data.memberships
        )


# ---------------------------------------------------------------------------
# WooCommerce REST oracle
# ---------------------------------------------------------------------------


class WooCommerceAccessOracle(AccessOracle):
    """
    Answers access questions with the WooCommerce (and optionally WooCommerce
    Memberships) REST API.
    """

    def __init__(self, client: WooCommerceClient, memberships_enabled: bool = False):
        self.client = client
        caps = {OracleCapability.CUSTOMER_LOOKUP, OracleCapability.PURCHASES}
        if memberships_enabled:
            caps |= {OracleCapability.MEMBERSHIPS, OracleCapability.PLAN_LOOKUP}
        self.capabilities = frozenset(caps)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            return self.client.get(path, params=params)
        except httpx.HTTPError as e:
            raise AccessOracleError(f"WooCommerce lookup {path} failed: {e}") from e

    def find_customer_email(self, customer_id: int) -> Optional[str]:
        try:
            customer = self.client.get(f"/wc/v3/customers/{customer_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise AccessOracleError(f"WooCommerce customer lookup failed: {e}") from e
        except httpx.HTTPError as e:
            raise AccessOracleError(f"WooCommerce customer lookup failed: {e}") from e
        return (customer or {}).get("email") or None

    def customer_bought_product(
        self, customer_email: str, customer_id: Optional[int], product_id: ProductId
    ) -> bool:
        status = ",".join(PAID_ORDER_STATUSES)
        if customer_id:
            orders = self._get(
                "/wc/v3/orders",
                params={"customer": customer_id, "product": product_id, "status": status, "per_page": 1},
            )
            if orders:
                return True

        email = (customer_email or "").strip().casefold()
        if email:
            # search matches loosely, so confirm the billing email
            orders = self._get(
                "/wc/v3/orders",
                params={"search": email, "product": product_id, "status": status},
            )
            for order in orders or []:
                billing_email = ((order.get("billing") or {}).get("email") or "").strip().casefold()
                if billing_email == email:
                    return True
        return False

    def find_membership_plan(self, plan_name: str) -> Optional[MembershipPlan]:
        try:
            plans = self.client.get_all("/wc/v3/memberships/plans")
        except httpx.HTTPError as e:
            raise AccessOracleError(f"WooCommerce membership plan lookup failed: {e}") from e

        wanted = plan_name.strip().casefold()
        for raw in plans:
            name = (raw.get("name") or "").casefold()
            slug = (raw.get("slug") or "").casefold()
            if wanted in (name, slug):
                return MembershipPlan(id=raw["id"], name=raw.get("name") or "", slug=raw.get("slug") or "")
        return None

    def is_active_member(self, customer_id: int, plan: ProductId) -> bool:
        members = self._get(
            "/wc/v3/memberships/members",
            params={"customer": customer_id, "plan": plan},
        )
        return any(
            (m.get("status") or "").replace("wcm-", "") in ACTIVE_MEMBERSHIP_STATUSES
            for m in members or []
        )
