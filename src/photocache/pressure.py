"""Low-memory signal source.

There is no portable OS low-memory notification, so the monitor polls the
process RSS and fires once each time it crosses the threshold. Platform
bridges (or tests) can call :meth:`MemoryPressureMonitor.signal` directly.
Callbacks run on whichever thread calls ``check``/``signal``.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

MiB = 1 << 20

PressureCallback = Callable[[], None]


class MemoryPressureMonitor:
    """Fire subscribed callbacks when process memory runs high."""

    def __init__(self, threshold_bytes: int = 1024 * MiB) -> None:
        self._threshold_bytes = threshold_bytes
        self._callbacks: list[PressureCallback] = []
        self._lock = threading.Lock()
        self._fired = False
        self._last_rss = 0

    @property
    def threshold_bytes(self) -> int:
        return self._threshold_bytes

    @property
    def last_rss(self) -> int:
        return self._last_rss

    def subscribe(self, callback: PressureCallback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        with self._lock:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def check(self) -> bool:
        """Sample RSS; fire callbacks on an upward threshold crossing."""
        rss = self._read_rss()
        with self._lock:
            self._last_rss = rss
            if rss < self._threshold_bytes:
                self._fired = False
                return False
            if self._fired:
                return False
            self._fired = True
        logger.warning(
            "Memory pressure: %.1f MiB (threshold %.1f MiB)",
            rss / MiB,
            self._threshold_bytes / MiB,
        )
        self._fire()
        return True

    def signal(self) -> None:
        """Deliver a low-memory notification regardless of RSS."""
        logger.warning("Memory warning received")
        self._fire()

    def _fire(self) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Error in memory pressure callback")

    @staticmethod
    def _read_rss() -> int:
        try:
            with open("/proc/self/status") as f:
                for line in f:
                    if line.startswith("VmRSS:"):
                        return int(line.split()[1]) * 1024
        except OSError:
            pass
        try:
            import resource
        except ImportError:
            return 0
        # Peak RSS: KB on Linux, bytes on macOS
        rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        return rss if sys.platform == "darwin" else rss * 1024
