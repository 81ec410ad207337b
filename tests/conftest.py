"""Pytest configuration and fixtures."""
from datetime import datetime, timezone
from typing import Iterable, Optional

import pytest
from fastapi.testclient import TestClient

from product_update_server.core.dependencies import get_admin_token, get_update_server
from product_update_server.domain.models import CatalogProduct, MembershipPlan, ProductDownload
from product_update_server.main import app
from product_update_server.services.access_oracle import AccessOracle, OracleCapability
from product_update_server.services.catalog import CatalogAdapter
from product_update_server.services.update_server import UpdateServer
from product_update_server.storage.memory_cache_store import InMemoryCacheStore

ADMIN_TOKEN = "test-admin-token"


class FakeClock:
    """Controllable epoch-seconds clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog(CatalogAdapter):
    def __init__(self, products: Optional[Iterable[CatalogProduct]] = None):
        self.products = list(products or [])
        self.calls = 0
        self.error: Optional[Exception] = None

    def list_products(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.products)


class FakeOracle(AccessOracle):
    """
    In-memory oracle recording every lookup it answers.

    purchases holds (email-or-customer-id, product_id) pairs;
    members holds (customer_id, str(plan)) pairs.
    """

    def __init__(self, capabilities=frozenset(OracleCapability)):
        self.capabilities = frozenset(capabilities)
        self.emails = {}
        self.purchases = set()
        self.plans = {}
        self.members = set()
        self.calls = []
        self.error: Optional[Exception] = None

    def find_customer_email(self, customer_id):
        self.calls.append(("email", customer_id))
        return self.emails.get(customer_id)

    def customer_bought_product(self, customer_email, customer_id, product_id):
        self.calls.append(("purchase", customer_email, customer_id, product_id))
        if self.error is not None:
            raise self.error
        by_email = bool(customer_email) and (customer_email, product_id) in self.purchases
        by_id = bool(customer_id) and (customer_id, product_id) in self.purchases
        return by_email or by_id

    def find_membership_plan(self, plan_name):
        self.calls.append(("plan", plan_name))
        return self.plans.get(plan_name)

    def is_active_member(self, customer_id, plan):
        self.calls.append(("member", customer_id, plan))
        return (customer_id, str(plan)) in self.members


def make_product(
    product_id,
    slug: Optional[str],
    version: str = "1.0.0",
    files: Iterable[str] = ("https://downloads.example.com/file.zip",),
    status: str = "publish",
    downloadable: bool = True,
    date_modified: Optional[datetime] = None,
) -> CatalogProduct:
    meta = {"_version": version}
    if slug is not None:
        meta["_plugin_name"] = slug
    return CatalogProduct(
        id=product_id,
        name=f"Product {product_id}",
        status=status,
        downloadable=downloadable,
        meta=meta,
        downloads=[
            ProductDownload(id=str(i), name=url.rsplit("/", 1)[-1], file=url)
            for i, url in enumerate(files)
        ],
        date_modified=date_modified,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def acme_product():
    return make_product(
        10,
        "acme-tool",
        version="2.1.0",
        files=("https://x/a.zip", "https://x/b.zip"),
        date_modified=datetime(2024, 5, 1, 12, 30, 15, tzinfo=timezone.utc),
    )


@pytest.fixture
def catalog(acme_product):
    return FakeCatalog([acme_product, make_product(11, "other-theme", version="0.9")])


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def server(catalog, oracle, store):
    return UpdateServer(catalog=catalog, oracle=oracle, store=store)


@pytest.fixture
def client(server):
    """Test client wired to an UpdateServer built from fakes."""
    app.dependency_overrides[get_update_server] = lambda: server
    app.dependency_overrides[get_admin_token] = lambda: ADMIN_TOKEN
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def gold_plan():
    return MembershipPlan(id=7, name="Gold", slug="gold")
