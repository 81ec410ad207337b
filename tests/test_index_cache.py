"""
Tests for the index cache manager: hits, misses, forced rebuilds and refresh.
"""

from product_update_server.services.index_builder import INDEX_KEY

from tests.conftest import make_product


def test_cache_hit_does_not_rebuild(server, catalog):
    first = server.cache.get_index()
    second = server.cache.get_index()

    assert catalog.calls == 1
    assert first == second


def test_never_populated_cache_builds(server, catalog):
    assert server.store.get_transient(INDEX_KEY) is None

    index = server.cache.get_index()

    assert catalog.calls == 1
    assert set(index) == {"acme-tool", "other-theme"}


def test_expired_entry_triggers_rebuild(server, catalog, clock):
    server.cache.get_index()
    clock.advance(3601)

    server.cache.get_index()

    assert catalog.calls == 2


def test_force_rebuilds_and_overwrites_unexpired_entry(server, catalog):
    server.cache.get_index()
    catalog.products = [make_product(99, "new-plugin")]

    forced = server.cache.get_index(force=True)
    after = server.cache.get_index()

    assert catalog.calls == 2
    assert list(forced) == ["new-plugin"]
    assert list(after) == ["new-plugin"]


def test_refresh_evicts_then_builds(server, catalog):
    server.cache.get_index()
    catalog.products = []

    assert server.cache.refresh() == {}
    assert server.cache.get_index() == {}
    assert catalog.calls == 2


def test_status_reports_last_build(server):
    assert server.cache.status() is None

    server.cache.get_index()
    status = server.cache.status()

    assert status is not None
    assert set(status.data) == {"acme-tool", "other-theme"}
    assert status.generated_at is not None


def test_unreadable_cached_value_is_rebuilt(server, catalog):
    server.store.set_transient(INDEX_KEY, {"broken": {"plugin_name": ""}}, 60)

    index = server.cache.get_index()

    assert catalog.calls == 1
    assert "broken" not in index
