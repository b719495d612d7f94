"""Capacity-limited backing store that evicts on its own."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

EvictionCallback = Callable[[str], None]


@dataclass
class _Resident(Generic[V]):
    value: V
    cost: int


class BoundedStore(Generic[V]):
    """Thread-safe key→value store bounded by entry count and total cost.

    A limit of 0 means unlimited. When either limit is exceeded the store
    drops its least-recently-touched entries. Those drops, and entries removed
    by :meth:`purge` or :meth:`evict` (which may run on any thread), are
    reported through ``on_evict`` *after* the internal lock is released.
    Explicit :meth:`remove` and :meth:`clear` are not reported.
    """

    def __init__(
        self,
        count_limit: int = 0,
        total_cost_limit: int = 0,
        on_evict: EvictionCallback | None = None,
        name: str = "store",
    ) -> None:
        self._entries: OrderedDict[str, _Resident[V]] = OrderedDict()
        self._count_limit = count_limit
        self._total_cost_limit = total_cost_limit
        self._total_cost = 0
        self._on_evict = on_evict
        self._lock = threading.Lock()
        self.name = name

    @property
    def count_limit(self) -> int:
        return self._count_limit

    @count_limit.setter
    def count_limit(self, value: int) -> None:
        with self._lock:
            self._count_limit = value
            evicted = self._trim()
        self._notify(evicted)

    @property
    def total_cost_limit(self) -> int:
        return self._total_cost_limit

    @total_cost_limit.setter
    def total_cost_limit(self, value: int) -> None:
        with self._lock:
            self._total_cost_limit = value
            evicted = self._trim()
        self._notify(evicted)

    @property
    def total_cost(self) -> int:
        with self._lock:
            return self._total_cost

    def get(self, key: str) -> V | None:
        with self._lock:
            resident = self._entries.get(key)
            if resident is None:
                return None
            self._entries.move_to_end(key)
            return resident.value

    def set(self, key: str, value: V, cost: int = 0) -> None:
        with self._lock:
            self._pop(key)
            self._entries[key] = _Resident(value=value, cost=cost)
            self._total_cost += cost
            evicted = self._trim()
        self._notify(evicted)

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._pop(key) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_cost = 0

    def evict(self, key: str) -> bool:
        """Drop ``key`` as if the store chose to, notifying ``on_evict``."""
        with self._lock:
            evicted = [key] if self._pop(key) is not None else []
        self._notify(evicted)
        return bool(evicted)

    def purge(self, fraction: float = 1.0) -> int:
        """Drop the oldest ``fraction`` of entries (memory-pressure sweep)."""
        with self._lock:
            count = round(len(self._entries) * max(0.0, min(fraction, 1.0)))
            evicted = [self._pop_oldest() for _ in range(count)]
        self._notify(evicted)
        return len(evicted)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _pop(self, key: str) -> _Resident[V] | None:
        resident = self._entries.pop(key, None)
        if resident is not None:
            self._total_cost -= resident.cost
        return resident

    def _pop_oldest(self) -> str:
        key, resident = self._entries.popitem(last=False)
        self._total_cost -= resident.cost
        return key

    def _over_limit(self) -> bool:
        if self._count_limit and len(self._entries) > self._count_limit:
            return True
        return bool(self._total_cost_limit and self._total_cost > self._total_cost_limit)

    def _trim(self) -> list[str]:
        # An entry costlier than the whole limit ends up evicted as well
        evicted: list[str] = []
        while self._over_limit() and self._entries:
            evicted.append(self._pop_oldest())
        return evicted

    def _notify(self, evicted: list[str]) -> None:
        if not evicted:
            return
        logger.debug("%s evicted %d entries", self.name, len(evicted))
        if self._on_evict is None:
            return
        for key in evicted:
            self._on_evict(key)
