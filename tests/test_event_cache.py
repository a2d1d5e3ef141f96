"""
Tests for the in-process event cache
"""

from types import SimpleNamespace

import pytest

from app.services import event_cache as event_cache_module
from app.services.event_cache import EventCache

class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

@pytest.fixture
def clock(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(event_cache_module, "time", SimpleNamespace(monotonic=clock))
    return clock

def _event(dinner, event_id):
    return dinner.model_copy(update={"id": event_id})

def test_entries_expire_after_ttl(clock, dinner):
    cache = EventCache(ttl_seconds=30)
    cache.put(dinner)

    clock.now += 30
    assert cache.get(dinner.id).id == dinner.id

    clock.now += 1
    assert cache.get(dinner.id) is None

def test_put_prunes_expired_entries(clock, dinner):
    cache = EventCache(ttl_seconds=30)
    for event_id in ("e1", "e2", "e3"):
        cache.put(_event(dinner, event_id))

    clock.now += 31
    cache.put(_event(dinner, "e4"))

    assert len(cache) == 1
    assert cache.get("e4") is not None

def test_fresh_entries_survive_pruning(clock, dinner):
    cache = EventCache(ttl_seconds=30)
    cache.put(_event(dinner, "old"))
    clock.now += 20
    cache.put(_event(dinner, "recent"))
    clock.now += 15

    cache.put(_event(dinner, "new"))

    assert len(cache) == 2
    assert cache.get("old") is None
    assert cache.get("recent") is not None

def test_zero_ttl_disables_caching(dinner):
    cache = EventCache(ttl_seconds=0)
    cache.put(dinner)

    assert len(cache) == 0
    assert cache.get(dinner.id) is None

def test_reads_are_copies(dinner):
    cache = EventCache(ttl_seconds=30)
    cache.put(dinner)

    cache.get(dinner.id).participants.append("u9")

    assert cache.get(dinner.id).participants == ["u1"]
