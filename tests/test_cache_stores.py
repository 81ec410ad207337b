"""
Tests for the TTL and durable key-value stores.
"""

import threading

import pytest

from product_update_server.storage.json_cache_store import JsonCacheStore
from product_update_server.storage.memory_cache_store import InMemoryCacheStore

from tests.conftest import FakeClock


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    clock = FakeClock()
    if request.param == "memory":
        return InMemoryCacheStore(clock=clock), clock
    return JsonCacheStore(tmp_path, clock=clock), clock


def test_transient_round_trip_until_expiry(any_store):
    store, clock = any_store
    store.set_transient("index", {"a": 1}, 60)

    clock.advance(59)
    assert store.get_transient("index") == {"a": 1}

    clock.advance(1)
    assert store.get_transient("index") is None


def test_missing_transient_is_none(any_store):
    store, _ = any_store

    assert store.get_transient("never-set") is None


def test_delete_transient(any_store):
    store, _ = any_store
    store.set_transient("index", [1, 2], 60)

    store.delete_transient("index")
    store.delete_transient("index")

    assert store.get_transient("index") is None


def test_non_positive_ttl_is_rejected(any_store):
    store, _ = any_store

    with pytest.raises(ValueError):
        store.set_transient("index", {}, 0)


def test_options_are_durable_and_independent_of_transients(any_store):
    store, clock = any_store
    store.update_option("index", {"generated_at": "now"})
    store.set_transient("index", {"a": 1}, 10)

    clock.advance(3600)

    assert store.get_transient("index") is None
    assert store.get_option("index") == {"generated_at": "now"}


def test_option_default_and_delete(any_store):
    store, _ = any_store

    assert store.get_option("settings", default={"x": 1}) == {"x": 1}
    store.update_option("settings", {"x": 2})
    store.delete_option("settings")
    assert store.get_option("settings") is None


def test_memory_store_does_not_share_values():
    store = InMemoryCacheStore()
    value = {"a": [1]}
    store.update_option("k", value)

    value["a"].append(2)

    assert store.get_option("k") == {"a": [1]}


def test_json_store_survives_restart(tmp_path):
    clock = FakeClock()
    JsonCacheStore(tmp_path, clock=clock).update_option("settings", {"cache_ttl": 60})
    JsonCacheStore(tmp_path, clock=clock).set_transient("index", {"a": 1}, 60)

    reopened = JsonCacheStore(tmp_path, clock=clock)

    assert reopened.get_option("settings") == {"cache_ttl": 60}
    assert reopened.get_transient("index") == {"a": 1}


def test_json_store_removes_expired_file(tmp_path):
    clock = FakeClock()
    store = JsonCacheStore(tmp_path, clock=clock)
    store.set_transient("index", {}, 5)

    clock.advance(10)
    store.get_transient("index")

    assert not (tmp_path / "transients" / "index.json").exists()


def test_json_store_ignores_corrupt_file(tmp_path):
    store = JsonCacheStore(tmp_path)
    (tmp_path / "options" / "settings.json").write_text("{not json", encoding="utf-8")

    assert store.get_option("settings", default="fallback") == "fallback"


def test_json_store_rejects_path_like_keys(tmp_path):
    store = JsonCacheStore(tmp_path)

    with pytest.raises(ValueError):
        store.update_option("../escape", 1)


def test_json_store_concurrent_writers_do_not_collide(tmp_path):
    store = JsonCacheStore(tmp_path)
    errors = []

    def writer(n):
        try:
            for i in range(100):
                store.set_transient("index", {"writer": n, "i": i}, 60)
                store.update_option("index", {"writer": n, "i": i})
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert store.get_transient("index")["i"] == 99
    assert store.get_option("index")["i"] == 99
    assert list((tmp_path / "transients").glob("*.tmp")) == []
