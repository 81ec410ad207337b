"""
Tests for environment-driven wiring of the update server.
"""

from product_update_server.core import dependencies
from product_update_server.services.access_oracle import (
    JsonAccessOracle,
    OracleCapability,
    WooCommerceAccessOracle,
)
from product_update_server.services.catalog import JsonCatalogAdapter, WooCommerceCatalogAdapter
from product_update_server.storage.json_cache_store import JsonCacheStore


def test_data_dir_from_environment(monkeypatch, tmp_path):
    target = tmp_path / "server-data"
    monkeypatch.setenv(dependencies.DATA_ROOT_ENV_VAR, str(target))

    assert dependencies.get_data_dir() == target
    assert target.is_dir()


def test_json_backend_is_default(monkeypatch, tmp_path):
    monkeypatch.delenv(dependencies.WOOCOMMERCE_URL_ENV_VAR, raising=False)

    server = dependencies.create_update_server(tmp_path)

    assert isinstance(server.catalog, JsonCatalogAdapter)
    assert isinstance(server.oracle, JsonAccessOracle)
    assert isinstance(server.store, JsonCacheStore)


def test_woocommerce_backend_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv(dependencies.WOOCOMMERCE_URL_ENV_VAR, "https://shop.test")
    monkeypatch.setenv(dependencies.WOOCOMMERCE_MEMBERSHIPS_ENV_VAR, "yes")

    server = dependencies.create_update_server(tmp_path)

    assert isinstance(server.catalog, WooCommerceCatalogAdapter)
    assert isinstance(server.oracle, WooCommerceAccessOracle)
    assert server.oracle.supports(OracleCapability.MEMBERSHIPS)


def test_refresh_poll_seconds(monkeypatch):
    monkeypatch.delenv(dependencies.REFRESH_POLL_ENV_VAR, raising=False)
    assert dependencies.get_refresh_poll_seconds() == 60.0

    monkeypatch.setenv(dependencies.REFRESH_POLL_ENV_VAR, "5")
    assert dependencies.get_refresh_poll_seconds() == 5.0

    monkeypatch.setenv(dependencies.REFRESH_POLL_ENV_VAR, "soon")
    assert dependencies.get_refresh_poll_seconds() == 60.0


def test_unconfigured_json_server_serves_empty_index(monkeypatch, tmp_path):
    monkeypatch.delenv(dependencies.WOOCOMMERCE_URL_ENV_VAR, raising=False)
    server = dependencies.create_update_server(tmp_path)

    assert server.queries.list_summaries() == []
