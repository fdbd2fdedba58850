import pytest
from cachetools import LRUCache

from seo_checker.models import AuxData, Plan
from seo_checker.services.report_cache import ReportCache


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestReportCache:
    def setup_method(self):
        self.clock = Clock()
        self.cache = ReportCache(ttl_seconds=300, max_entries=2, clock=self.clock)

    def test_miss_then_hit(self, make_snapshot):
        snapshot, aux = make_snapshot(), AuxData()
        assert self.cache.get("https://example.com", Plan.FREE) is None
        self.cache.put("https://example.com", Plan.FREE, snapshot, aux)
        assert self.cache.get(" https://example.com ", Plan.FREE) == (snapshot, aux)

    def test_plan_is_part_of_key(self, make_snapshot):
        self.cache.put("https://example.com", Plan.FREE, make_snapshot(), AuxData())
        assert self.cache.get("https://example.com", Plan.PRO) is None

    def test_entry_expires_with_time_bucket(self, make_snapshot):
        self.cache.put("https://example.com", Plan.FREE, make_snapshot(), AuxData())
        self.clock.now = 1199.0
        assert self.cache.get("https://example.com", Plan.FREE) is not None
        self.clock.now = 1200.0
        assert self.cache.get("https://example.com", Plan.FREE) is None
        assert len(self.cache) == 0

    def test_least_recently_used_is_evicted(self, make_snapshot):
        snap = make_snapshot()
        self.cache.put("https://a.com", Plan.FREE, snap, AuxData())
        self.cache.put("https://b.com", Plan.FREE, snap, AuxData())
        self.cache.get("https://a.com", Plan.FREE)
        self.cache.put("https://c.com", Plan.FREE, snap, AuxData())

        assert len(self.cache) == 2
        assert self.cache.get("https://b.com", Plan.FREE) is None
        assert self.cache.get("https://a.com", Plan.FREE) is not None

    def test_clear(self, make_snapshot):
        self.cache.put("https://a.com", Plan.FREE, make_snapshot(), AuxData())
        self.cache.clear()
        assert len(self.cache) == 0

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            ReportCache(ttl_seconds=0)
        with pytest.raises(ValueError):
            ReportCache(max_entries=0)

    def test_stale_entries_are_dropped_on_write(self, make_snapshot):
        self.cache.put("https://a.com", Plan.FREE, make_snapshot(), AuxData())
        self.clock.now = 1300.0
        self.cache.put("https://b.com", Plan.FREE, make_snapshot(), AuxData())
        assert len(self.cache) == 1
        assert self.cache.get("https://b.com", Plan.FREE) is not None

    def test_entries_are_held_in_lru_cache(self):
        assert isinstance(self.cache._entries, LRUCache)
        assert self.cache._entries.maxsize == 2
