from propscore.core.cache import ResultCache
from propscore.core.utils import canonical_key


def test_entry_visible_until_ttl_elapses(cache, clock):
    cache.set("k", [1, 2])
    clock.advance(60)
    assert cache.get("k") == [1, 2]
    clock.advance(0.001)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_oldest_inserted_entry_is_evicted_first(clock):
    cache = ResultCache(maxsize=2, ttl=60, timer=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    # reading "a" does not protect it
    assert cache.get("a") == 1
    cache.set("c", 3)
    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_reinsert_refreshes_timestamp(cache, clock):
    cache.set("k", "old")
    clock.advance(50)
    cache.set("k", "new")
    clock.advance(50)
    assert cache.get("k") == "new"


def test_clear(cache):
    cache.set("a", 1)
    cache.clear()
    assert cache.get("a") is None


def test_canonical_key_ignores_order_and_empty_values():
    one = canonical_key("search", {"b": 2, "a": "x", "c": None, "d": []})
    two = canonical_key("search", {"a": "x", "b": 2})
    assert one == two
