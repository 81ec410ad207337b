"""
Public update API consumed by client installations.

No authentication is required to call these endpoints; download references are
gated by the identity claims passed as query parameters.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from product_update_server.core.dependencies import get_update_server
from product_update_server.domain.errors import NotFound
from product_update_server.domain.models import IndexEntry, ProductSummary
from product_update_server.services.update_server import UpdateServer

logger = logging.getLogger(__name__)
router = APIRouter()

_PLUGIN_NAME_PATTERN = re.compile(r"^[\w\-.]+$")


def _absint(value: Optional[str]) -> Optional[int]:
    """
    Coerce a customer id the way the shop does: non-numeric input is empty,
    negative input is made positive, and 0 means "not given".
    """
    if value is None:
        return None
    match = re.match(r"^\s*[-+]?\d+", value)
    if not match:
        return None
    number = abs(int(match.group().strip()))
    return number or None


_EMAIL_LOCAL_DISALLOWED = re.compile(r"[^a-zA-Z0-9!#$%&'*+/=?^_`{|}~.-]")
_EMAIL_DOMAIN_DISALLOWED = re.compile(r"[^a-z0-9-]+", re.IGNORECASE)


def _sanitize_email(value: Optional[str]) -> str:
    """
    Strip characters an address may not contain. Anything that still does not
    look like local@domain.tld comes back as "".
    """
    email = (value or "").strip()
    if len(email) < 6 or email.find("@", 1) == -1:
        return ""

    local, domain = email.split("@", 1)
    local = _EMAIL_LOCAL_DISALLOWED.sub("", local)
    if not local or ".." in domain:
        return ""

    subs = []
    for sub in domain.strip(" \t\n\r\0\x0b.").split("."):
        sub = _EMAIL_DOMAIN_DISALLOWED.sub("", sub.strip(" \t\n\r\0\x0b-"))
        if sub:
            subs.append(sub)
    if len(subs) < 2:
        return ""
    return f"{local}@{'.'.join(subs)}"


# ---------------------------------------------------------------------------
# 1. GET /products
# ---------------------------------------------------------------------------

@router.get("/products", response_model=List[ProductSummary])
def list_products(server: UpdateServer = Depends(get_update_server)) -> List[ProductSummary]:
    """
    List every indexed product without its download reference.
    """
    return server.queries.list_summaries()


# ---------------------------------------------------------------------------
# 2. GET /products/{plugin_name}
# ---------------------------------------------------------------------------

@router.get("/products/{plugin_name}", response_model=IndexEntry)
def get_product(
    plugin_name: str,
    customer_email: Optional[str] = Query(default=None),
    customer_id: Optional[str] = Query(default=None),
    membership_plan: Optional[str] = Query(default=None),
    server: UpdateServer = Depends(get_update_server),
) -> IndexEntry:
    """
    Full update metadata for one product, including the download URL, if the
    identity claims show a purchase or an active membership.
    """
    if not _PLUGIN_NAME_PATTERN.match(plugin_name):
        raise NotFound()

    return server.queries.get_item(
        plugin_name.strip(),
        customer_email=_sanitize_email(customer_email),
        customer_id=_absint(customer_id),
        membership_plan=(membership_plan or "").strip(),
    )
