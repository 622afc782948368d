from shared.utils.scoped_cache import ScopedCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ScopedCache(ttl_seconds=30, clock=clock)
    cache.set(("u1", "user"), [1])

    clock.now = 29
    assert cache.get(("u1", "user")) == [1]
    clock.now = 30
    assert cache.get(("u1", "user")) is None


def test_get_or_load_only_loads_once():
    cache = ScopedCache()
    loads = []

    def loader():
        loads.append(1)
        return ["row"]

    assert cache.get_or_load("k", loader) == ["row"]
    assert cache.get_or_load("k", loader) == ["row"]
    assert len(loads) == 1


def test_invalidate_where_drops_matching_scopes():
    cache = ScopedCache()
    cache.set(("u1", "user"), [])
    cache.set(("u2", "user"), [])
    cache.set(("m1", "building_manager"), [])
    cache.set(("a1", "admin"), [])

    dropped = cache.invalidate_where(lambda k: k[0] == "u1" or k[1] != "user")

    assert dropped == 3
    assert ("u2", "user") in cache
    assert ("u1", "user") not in cache


def test_instances_do_not_share_state():
    first, second = ScopedCache(), ScopedCache()
    first.set("k", 1)
    assert second.get("k") is None


def test_load_overlapping_an_invalidation_is_not_stored():
    cache = ScopedCache()

    def loader():
        rows = ["before write"]
        cache.invalidate_where(lambda k: True)
        return rows

    assert cache.get_or_load("k", loader) == ["before write"]
    assert "k" not in cache
    assert cache.get_or_load("k", lambda: ["after write"]) == ["after write"]
