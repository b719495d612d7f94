"""Image pipeline: get-or-produce across memory, disk and the downsampler."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING

from PIL import Image

from photocache.cache.keys import downsample_key, hash_image
from photocache.cache.memory import MemoryCache
from photocache.cache.stats import PipelineStats
from photocache.concurrency.pool import DecodePool
from photocache.config.defaults import DEFAULT_JPEG_QUALITY, DEFAULT_SCALE
from photocache.types import ResolveRequest, TargetSize
from photocache.utils.image import decode_image, downsample, encode_image

if TYPE_CHECKING:
    from photocache.cache.disk import DiskCache
    from photocache.pressure import MemoryPressureMonitor

logger = logging.getLogger(__name__)

# Sizes the app renders photos at: grid cell, detail view
KNOWN_THUMBNAIL_SIZES: tuple[TargetSize, ...] = (
    TargetSize(width=110, height=120),
    TargetSize(width=600, height=600),
)


class ImagePipeline:
    """Single entry point for cached, downsampled images.

    Order: memory → disk → downsample, short-circuiting on the first hit.
    Memory-tier access happens on the event loop; disk I/O and decoding run in
    the DecodePool. Concurrent requests for one key share a single decode.
    Nothing raises to the caller: every failure resolves to None.
    """

    def __init__(
        self,
        memory: MemoryCache | None = None,
        disk: DiskCache | None = None,
        pool: DecodePool | None = None,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    ) -> None:
        self._memory = memory if memory is not None else MemoryCache()
        self._disk = disk  # None disables the disk tier
        self._pool = pool if pool is not None else DecodePool()
        self._jpeg_quality = jpeg_quality
        self._in_flight: dict[str, asyncio.Task[Image.Image | None]] = {}
        # Decodes whose key was invalidated mid-flight; their results are not cached
        self._abandoned: set[asyncio.Task[Image.Image | None]] = set()
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._stats = PipelineStats()

    @property
    def memory(self) -> MemoryCache:
        return self._memory

    @property
    def disk(self) -> DiskCache | None:
        return self._disk

    async def resolve(
        self,
        source: bytes,
        cache_key: str,
        target_size: TargetSize,
        scale: float,
    ) -> Image.Image | None:
        """Return the image for ``cache_key``, producing it from ``source`` on a miss."""
        try:
            return await self._resolve(source, cache_key, target_size, scale)
        except Exception:
            logger.exception("Unexpected failure resolving %s", cache_key)
            self._stats.failures += 1
            return None

    async def resolve_for(
        self,
        source: bytes,
        target_size: TargetSize,
        scale: float,
        cache_id: str | None = None,
    ) -> Image.Image | None:
        """Resolve with a key built from ``cache_id`` (or the content hash) and size."""
        base = cache_id or hash_image(source)
        try:
            key = downsample_key(base, target_size, scale)
        except (ValueError, OverflowError) as exc:
            logger.debug("Cannot build cache key for %s at %sx: %s", base, scale, exc)
            self._stats.failures += 1
            return None
        return await self.resolve(source, key, target_size, scale)

    async def resolve_many(
        self, requests: Sequence[ResolveRequest]
    ) -> list[Image.Image | None]:
        """Resolve a batch concurrently; results follow input order."""

        async def one(request: ResolveRequest) -> Image.Image | None:
            return await self.resolve(
                request.source, request.cache_key, request.target_size, request.scale
            )

        return await self._pool.map(one, requests)

    async def invalidate(
        self,
        cache_id: str,
        sizes: Iterable[TargetSize] = KNOWN_THUMBNAIL_SIZES,
        scale: float = DEFAULT_SCALE,
    ) -> int:
        """Drop every cached variant of ``cache_id`` (e.g. a deleted photo).

        Memory is matched by prefix; disk keys are rebuilt from ``sizes`` and
        ``scale`` since file names are hashed.
        """
        prefix = f"{cache_id}_"
        self._abandon_in_flight(prefix)
        removed = self._memory.remove_all_with_prefix(prefix)
        if self._disk is not None:
            keys = [downsample_key(cache_id, size, scale) for size in sizes]
            await self.drain()
            await self._pool.run(self._disk.remove_many, keys)
        logger.debug("Evicted cache for %s (%d in memory)", cache_id, removed)
        return removed

    async def clear(self) -> None:
        """Empty both tiers."""
        self._abandon_in_flight()
        self._memory.remove_all()
        if self._disk is not None:
            await self.drain()
            await self._pool.run(self._disk.remove_all)

    def handle_memory_pressure(self) -> None:
        """Low-memory response; must run on the event loop."""
        logger.warning("Memory warning received - clearing image cache")
        self._memory.remove_all()

    def attach(
        self,
        monitor: MemoryPressureMonitor,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> Callable[[], None]:
        """Clear the memory tier whenever ``monitor`` reports pressure.

        The monitor may fire on any thread; the clear is marshalled onto
        ``loop`` (the running loop by default). Returns the unsubscribe hook.
        """
        target = loop or asyncio.get_running_loop()

        def on_pressure() -> None:
            target.call_soon_threadsafe(self.handle_memory_pressure)

        return monitor.subscribe(on_pressure)

    async def drain(self) -> None:
        """Wait for fire-and-forget disk writes scheduled so far."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    def stats(self) -> PipelineStats:
        return self._stats.model_copy()

    def close(self) -> None:
        self._pool.close()

    async def _resolve(
        self,
        source: bytes,
        cache_key: str,
        target_size: TargetSize,
        scale: float,
    ) -> Image.Image | None:
        cached = self._memory.get(cache_key)
        if cached is not None:
            self._stats.memory_hits += 1
            return cached

        if self._disk is not None:
            image = await self._pool.run(self._load_from_disk, cache_key)
            if image is not None:
                self._memory.set(cache_key, image)
                self._stats.disk_hits += 1
                return image

        task = self._in_flight.get(cache_key)
        if task is None:
            task = asyncio.ensure_future(self._produce(source, cache_key, target_size, scale))
            self._in_flight[cache_key] = task
            task.add_done_callback(functools.partial(self._forget, cache_key))
        else:
            self._stats.coalesced += 1
        # A cancelled caller leaves the decode running; its result still gets cached
        return await asyncio.shield(task)

    async def _produce(
        self,
        source: bytes,
        cache_key: str,
        target_size: TargetSize,
        scale: float,
    ) -> Image.Image | None:
        try:
            image = await self._pool.run(downsample, source, target_size, scale)
        except Exception:
            logger.exception("Decode task failed for %s", cache_key)
            image = None
        if image is None:
            self._stats.failures += 1
            return None

        self._stats.decodes += 1
        if asyncio.current_task() in self._abandoned:
            logger.debug("Not caching %s: invalidated during decode", cache_key)
            return image
        self._memory.set(cache_key, image)
        if self._disk is not None:
            self._schedule_write(cache_key, image)
        return image

    def _load_from_disk(self, cache_key: str) -> Image.Image | None:
        data = self._disk.read(cache_key)
        if data is None:
            return None
        image = decode_image(data)
        if image is None:
            logger.debug("Dropping undecodable disk entry %s", cache_key)
            self._disk.remove(cache_key)
        return image

    def _store_on_disk(self, cache_key: str, image: Image.Image) -> None:
        data = encode_image(image, quality=self._jpeg_quality)
        if data is None:
            logger.debug("Nothing to write for %s: encoding failed", cache_key)
            return
        self._disk.write(cache_key, data)

    def _schedule_write(self, cache_key: str, image: Image.Image) -> None:
        task = asyncio.ensure_future(self._pool.run(self._store_on_disk, cache_key, image))
        self._pending_writes.add(task)
        task.add_done_callback(self._write_done)

    def _write_done(self, task: asyncio.Task[None]) -> None:
        self._pending_writes.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Disk write failed: %s", task.exception())

    def _abandon_in_flight(self, prefix: str | None = None) -> None:
        """Detach running decodes (all, or those under ``prefix``) from the cache.

        Waiting callers still get the image; later requests start a new decode.
        """
        for key, task in list(self._in_flight.items()):
            if prefix is None or key.startswith(prefix):
                self._abandoned.add(task)
                del self._in_flight[key]

    def _forget(self, cache_key: str, task: asyncio.Task[Image.Image | None]) -> None:
        self._abandoned.discard(task)
        if self._in_flight.get(cache_key) is task:
            del self._in_flight[cache_key]
