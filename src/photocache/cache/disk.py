"""L2 disk cache: one file per key under a dedicated cache directory."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable
from pathlib import Path

from photocache.cache.keys import hashed_file_name
from photocache.cache.store import BoundedStore
from photocache.config.defaults import (
    DEFAULT_CACHE_DIR,
    DEFAULT_DISK_DATA_COST_LIMIT,
    DEFAULT_DISK_DATA_COUNT_LIMIT,
)
from photocache.errors.exceptions import DiskCacheError

logger = logging.getLogger(__name__)

_FILE_EXTENSION = ".jpg"
_TMP_PREFIX = ".tmp-"
_CACHEDIR_TAG = "CACHEDIR.TAG"
_CACHEDIR_TAG_CONTENT = (
    "Signature: 8a477f597d28d172789f06886806bc55\n"
    "# This file is a cache directory tag created by photocache.\n"
    "# Its contents are derived thumbnails and can be deleted at any time.\n"
)


class DiskCache:
    """Best-effort durable key→bytes store.

    Nothing here raises: a failed read is a miss and a failed write is logged
    and dropped. Writes go to a temp file in the same directory and are moved
    into place with ``os.replace`` so readers never see partial files. Recently
    read or written bytes are also kept in a small in-process store.
    """

    def __init__(
        self,
        directory: Path | None = None,
        data_cache_count: int = DEFAULT_DISK_DATA_COUNT_LIMIT,
        data_cache_bytes: int = DEFAULT_DISK_DATA_COST_LIMIT,
    ) -> None:
        self._dir = Path(directory) if directory is not None else DEFAULT_CACHE_DIR
        self._data: BoundedStore[bytes] = BoundedStore(
            count_limit=data_cache_count,
            total_cost_limit=data_cache_bytes,
            name="DiskImageCache.data",
        )
        self._prepare_directory()

    @property
    def directory(self) -> Path:
        return self._dir

    def read(self, key: str) -> bytes | None:
        cached = self._data.get(key)
        if cached is not None:
            return cached
        path = self._path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.debug("DiskImageCache: read failed for %s: %s", key, exc)
            return None
        self._data.set(key, data, cost=len(data))
        return data

    def write(self, key: str, data: bytes) -> None:
        self._data.set(key, data, cost=len(data))
        try:
            self._atomic_write(key, data)
        except DiskCacheError as exc:
            logger.debug("DiskImageCache: write failed for %s: %s", key, exc.original)

    def remove(self, key: str) -> None:
        self._data.remove(key)
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            logger.debug("DiskImageCache: remove failed for %s: %s", key, exc)

    def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.remove(key)

    def remove_all(self) -> None:
        self._data.clear()
        try:
            items = list(self._dir.iterdir())
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("DiskImageCache: cannot list %s: %s", self._dir, exc)
            return
        for path in items:
            if path.name == _CACHEDIR_TAG:
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.debug("DiskImageCache: cannot delete %s: %s", path.name, exc)
        logger.debug("Disk image cache cleared")

    @property
    def entry_count(self) -> int:
        return len(self._entries())

    @property
    def size_mb(self) -> float:
        total = 0
        for path in self._entries():
            try:
                total += path.stat().st_size
            except OSError:
                continue
        return total / (1024 * 1024)

    def _entries(self) -> list[Path]:
        try:
            return [p for p in self._dir.iterdir() if p.suffix == _FILE_EXTENSION]
        except OSError:
            return []

    def _path_for(self, key: str) -> Path:
        return self._dir / hashed_file_name(key, _FILE_EXTENSION)

    def _atomic_write(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        tmp_path = self._dir / f"{_TMP_PREFIX}{path.stem}.{os.getpid()}.{time.time_ns()}"
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise DiskCacheError(
                f"Cannot write cache entry {path.name}", key=key, original=exc
            ) from exc
        finally:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("DiskImageCache: stale temp file %s", tmp_path.name)

    def _prepare_directory(self) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True, mode=0o700)
            # Owner-only access; mkdir's mode is masked by umask
            self._dir.chmod(0o700)
            tag = self._dir / _CACHEDIR_TAG
            if not tag.exists():
                tag.write_text(_CACHEDIR_TAG_CONTENT)
        except OSError as exc:
            # Not fatal: every operation degrades to a miss
            logger.debug("DiskImageCache: failed to create cache directory: %s", exc)
