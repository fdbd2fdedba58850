"""
seo_checker/services/report_cache.py
Bounded in-process freshness cache for crawl artifacts.

Keys are (url, plan, time bucket); a bucket is ttl_seconds wide, so an entry
stops matching as soon as the clock crosses into the next bucket. Size is
capped by a cachetools LRUCache. Concurrent writers for one key: last one wins.
"""
import logging
import time
from typing import Callable, Optional, Tuple

from cachetools import LRUCache

from ..models import AuxData, PageSnapshot, Plan

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, int]
CachedArtifacts = Tuple[PageSnapshot, AuxData]


class _ArtifactLRU(LRUCache):
    def popitem(self):
        key, value = super().popitem()
        logger.debug("Cache full, evicted %s", key[0])
        return key, value


class ReportCache:
    def __init__(self, ttl_seconds: int = 300, max_entries: int = 256,
                 clock: Callable[[], float] = time.time):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: LRUCache = _ArtifactLRU(maxsize=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _bucket(self) -> int:
        return int(self._clock() // self.ttl_seconds)

    def _key(self, url: str, plan: Plan) -> CacheKey:
        return (url.strip(), Plan(plan).value, self._bucket())

    def _drop_stale(self, bucket: int) -> None:
        for key in [k for k in self._entries.keys() if k[2] != bucket]:
            del self._entries[key]

    def get(self, url: str, plan: Plan) -> Optional[CachedArtifacts]:
        key = self._key(url, plan)
        entry = self._entries.get(key)
        if entry is None:
            self._drop_stale(key[2])
        return entry

    def put(self, url: str, plan: Plan, snapshot: PageSnapshot, aux: AuxData) -> None:
        key = self._key(url, plan)
        self._drop_stale(key[2])
        self._entries[key] = (snapshot, aux)

    def clear(self) -> None:
        self._entries.clear()
