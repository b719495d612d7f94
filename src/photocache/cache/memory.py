"""L1 in-memory LRU cache of decoded images."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from itertools import islice

from PIL import Image

from photocache.cache.stats import CacheStatistics
from photocache.cache.store import BoundedStore
from photocache.config.defaults import (
    DEFAULT_MAX_TRACKED_KEYS,
    DEFAULT_MEMORY_COST_LIMIT,
    DEFAULT_MEMORY_COUNT_LIMIT,
)
from photocache.utils.image import image_cost

logger = logging.getLogger(__name__)


class EvictionRecord:
    """Keys the backing store dropped on its own, waiting to be reconciled.

    This is the only structure shared with arbitrary threads: writers append,
    the cache drains and clears. Both hold the lock only for that.
    """

    def __init__(self) -> None:
        self._keys: list[str] = []
        self._lock = threading.Lock()

    def record(self, key: str) -> None:
        with self._lock:
            self._keys.append(key)

    def drain(self) -> list[str]:
        with self._lock:
            keys, self._keys = self._keys, []
        return keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


class MemoryCache:
    """In-memory LRU cache over a store that can evict without telling us.

    The LRU order (head = least recently used) is a view of the store's
    contents that is reconciled lazily: store evictions land in an
    :class:`EvictionRecord` and are applied before any read or size-sensitive
    operation. Everything except the eviction callback must be called from a
    single thread (the event loop).
    """

    def __init__(
        self,
        count_limit: int = DEFAULT_MEMORY_COUNT_LIMIT,
        total_cost_limit: int = DEFAULT_MEMORY_COST_LIMIT,
        max_tracked_keys: int = DEFAULT_MAX_TRACKED_KEYS,
    ) -> None:
        self._evictions = EvictionRecord()
        self._store: BoundedStore[Image.Image] = BoundedStore(
            count_limit=count_limit,
            total_cost_limit=total_cost_limit,
            on_evict=self._evictions.record,
            name="ImageCache",
        )
        self._order: OrderedDict[str, None] = OrderedDict()
        self._max_tracked_keys = max_tracked_keys
        logger.debug(
            "ImageCache initialized (limit: %d images, %dMB)",
            count_limit,
            total_cost_limit // (1024 * 1024),
        )

    @property
    def store(self) -> BoundedStore[Image.Image]:
        return self._store

    @property
    def count_limit(self) -> int:
        return self._store.count_limit

    @count_limit.setter
    def count_limit(self, value: int) -> None:
        self._store.count_limit = value

    @property
    def total_cost_limit(self) -> int:
        return self._store.total_cost_limit

    @total_cost_limit.setter
    def total_cost_limit(self, value: int) -> None:
        self._store.total_cost_limit = value

    @property
    def pending_evictions(self) -> int:
        return len(self._evictions)

    def get(self, key: str) -> Image.Image | None:
        self._reconcile()
        image = self._store.get(key)
        if image is None:
            self._order.pop(key, None)
            return None
        self._touch(key)
        return image

    def set(self, key: str, image: Image.Image) -> None:
        cost = image_cost(image)
        self._store.set(key, image, cost=cost)
        self._touch(key)
        if len(self._order) > self._max_tracked_keys:
            self._reconcile()
            self._enforce_bound()
        logger.debug("Cached image: %s (cost: %dKB)", key, cost // 1024)

    def remove(self, key: str) -> None:
        self._store.remove(key)
        self._order.pop(key, None)
        logger.debug("Removed from cache: %s", key)

    def remove_all_with_prefix(self, prefix: str) -> int:
        """Drop every size variant sharing ``prefix``. Returns resident count removed."""
        self._reconcile()
        matching = {k for k in self._store.keys() if k.startswith(prefix)}
        matching.update(k for k in self._order if k.startswith(prefix))
        removed = 0
        for key in matching:
            if self._store.remove(key):
                removed += 1
            self._order.pop(key, None)
        if matching:
            logger.debug("Removed %d cached images with prefix %s", removed, prefix)
        return removed

    def remove_all(self) -> None:
        self._store.clear()
        self._order.clear()
        self._evictions.drain()
        logger.debug("Image cache cleared")

    def least_recently_used_keys(self, count: int) -> list[str]:
        self._reconcile()
        return list(islice(self._order, count))

    def tracked_keys(self) -> list[str]:
        self._reconcile()
        return list(self._order)

    def statistics(self) -> CacheStatistics:
        self._reconcile()
        return CacheStatistics(
            tracked_keys=len(self._order),
            resident_keys=len(self._store),
            count_limit=self._store.count_limit,
            total_cost=self._store.total_cost,
            total_cost_limit=self._store.total_cost_limit,
            least_recently_used=list(islice(self._order, 5)),
        )

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def _touch(self, key: str) -> None:
        if key in self._order:
            self._order.move_to_end(key)
        else:
            self._order[key] = None

    def _enforce_bound(self) -> None:
        while len(self._order) > self._max_tracked_keys:
            oldest, _ = self._order.popitem(last=False)
            self._store.remove(oldest)
            logger.debug("LRU evicted: %s", oldest)

    def _reconcile(self) -> None:
        evicted = self._evictions.drain()
        if not evicted:
            return
        dropped = 0
        for key in evicted:
            # Re-inserted after the store dropped it: still resident, keep tracking
            if key in self._store or key not in self._order:
                continue
            del self._order[key]
            dropped += 1
        logger.debug("Reconciled %d store evictions", dropped)
