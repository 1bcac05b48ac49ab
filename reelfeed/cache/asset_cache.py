"""Bounded memory and disk cache for video assets."""

import hashlib
import os
import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from loguru import logger

from reelfeed.cache.asset import MediaAsset
from reelfeed.config.settings import (
    DEFAULT_CACHE_DIR,
    DISK_CACHE_LIMIT,
    DISK_CACHE_SUFFIX,
    MEMORY_COST_LIMIT,
    MEMORY_COUNT_LIMIT,
)


@dataclass
class CacheEntry:
    """An asset held in memory under its URL."""

    key: str
    asset: MediaAsset
    cost: int = 0
    inserted_at: float = field(default_factory=time.time)


@dataclass
class CacheStats:
    """Hit/miss/eviction counters of an AssetCache."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_ratio(self) -> float:
        """Share of lookups served from memory."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


_CACHE_FILE_PATTERN = re.compile(
    rf"^[0-9a-f]{{40}}{re.escape(DISK_CACHE_SUFFIX)}(\.\d+\.part)?$"
)


def is_cache_file_name(name: str) -> bool:
    """True for names written by the cache (media files and their temp files)."""
    return _CACHE_FILE_PATTERN.match(name) is not None


def _creation_time(stat: os.stat_result) -> float:
    """Creation time where the platform records it, modification time otherwise."""
    return getattr(stat, 'st_birthtime', stat.st_mtime)


class AssetCache:
    """
    LRU cache of media assets keyed by URL, with a disk directory beside it.

    The in-memory side is bounded by an entry count and a total byte cost;
    least recently used entries go first. The disk side is bounded by
    prune_disk_cache(), which removes the oldest files. Only files named by
    the cache are ever listed or deleted, so the directory may be shared. Every public method
    takes the same re-entrant lock, so inserts may run while a prune is in
    progress on another thread.

    Attributes:
        cache_dir: Directory holding cached media bytes.
        count_limit: Maximum number of in-memory entries.
        cost_limit: Maximum total byte cost of in-memory entries.
        disk_limit: Byte ceiling of the disk directory.
        stats: Hit/miss/eviction counters.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        count_limit: int = MEMORY_COUNT_LIMIT,
        cost_limit: int = MEMORY_COST_LIMIT,
        disk_limit: int = DISK_CACHE_LIMIT,
        asset_factory: Callable[[str], MediaAsset] = MediaAsset,
        prune_on_init: bool = True,
    ) -> None:
        """
        Initialize the cache and its directory.

        Args:
            cache_dir: Disk cache directory. Created if missing.
            count_limit: Maximum number of in-memory entries.
            cost_limit: Maximum total byte cost in memory.
            disk_limit: Byte ceiling for the disk directory.
            asset_factory: Builds a new lazy asset for a URL.
            prune_on_init: If True, prune the disk directory right away.
        """
        if count_limit <= 0 or cost_limit <= 0 or disk_limit <= 0:
            raise ValueError("Cache limits must be positive")

        self.cache_dir = Path(cache_dir) if cache_dir is not None else DEFAULT_CACHE_DIR
        self.count_limit = count_limit
        self.cost_limit = cost_limit
        self.disk_limit = disk_limit
        self.asset_factory = asset_factory
        self.stats = CacheStats()

        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._total_cost = 0
        self._lock = threading.RLock()

        self._ensure_directory()
        if prune_on_init:
            self.prune_disk_cache()

    # ------------------------------------------------------------------
    # Memory side
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[MediaAsset]:
        """
        Get an asset and mark it as recently used.

        Args:
            key: Media URL.

        Returns:
            The cached asset, or None.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self.stats.hits += 1
            return entry.asset

    def peek(self, key: str) -> Optional[MediaAsset]:
        """Get an asset without touching recency or stats."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.asset if entry is not None else None

    def get_or_create(self, url: str) -> MediaAsset:
        """
        Return the cached asset for url, or open and cache a new lazy one.

        Never blocks on the network: a new handle is not loaded here.

        Args:
            url: Media URL.

        Returns:
            The asset handle.
        """
        with self._lock:
            asset = self.get(url)
            if asset is not None:
                logger.debug(f"Found video asset in memory cache: {url}")
                return asset
            logger.debug(f"Creating new video asset: {url}")
            asset = self.asset_factory(url)
            self.insert(asset, url)
            return asset

    def insert(self, asset: MediaAsset, key: str, cost: Optional[int] = None) -> None:
        """
        Store an asset under key, evicting least recently used entries.

        Args:
            asset: Asset to cache.
            key: Media URL.
            cost: Byte cost; defaults to the asset's known length.
        """
        cost = asset.cost if cost is None else max(0, cost)
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is not None:
                self._total_cost -= previous.cost
            self._entries[key] = CacheEntry(key=key, asset=asset, cost=cost)
            self._total_cost += cost
            self._enforce_limits()

    def remove(self, key: str) -> bool:
        """
        Drop one entry from memory.

        Returns:
            True if an entry was removed.
        """
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return False
            self._total_cost -= entry.cost
            return True

    def _enforce_limits(self) -> None:
        """Evict from the LRU end until both ceilings hold."""
        while self._entries and (
            len(self._entries) > self.count_limit or self._total_cost > self.cost_limit
        ):
            key, entry = self._entries.popitem(last=False)
            self._total_cost -= entry.cost
            self.stats.evictions += 1
            logger.debug(f"Evicted asset from memory: {key}")

    def keys(self) -> List[str]:
        """Cached keys from least to most recently used."""
        with self._lock:
            return list(self._entries.keys())

    @property
    def total_cost(self) -> int:
        """Total byte cost of in-memory entries."""
        with self._lock:
            return self._total_cost

    def __len__(self) -> int:
        """Return the number of in-memory entries."""
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        """Check membership without touching recency."""
        with self._lock:
            return key in self._entries

    def evict_all(self) -> None:
        """Clear memory and delete the cache files from disk."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._total_cost = 0
            removed = 0
            for path in self.disk_files():
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.warning(f"Failed to remove cache file {path}: {e}")
                    continue
                removed += 1
            self._ensure_directory()
        logger.info(f"Cleared video cache ({count} assets in memory, {removed} files on disk)")

    # ------------------------------------------------------------------
    # Disk side
    # ------------------------------------------------------------------

    def _ensure_directory(self) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create cache directory {self.cache_dir}: {e}")

    def disk_path_for(self, key: str) -> Path:
        """File path used to store the bytes of key."""
        digest = hashlib.sha1(key.encode('utf-8')).hexdigest()
        return self.cache_dir / f"{digest}{DISK_CACHE_SUFFIX}"

    def cached_file(self, key: str) -> Optional[Path]:
        """Path of the cached bytes for key, if present on disk."""
        path = self.disk_path_for(key)
        return path if path.is_file() else None

    def write_file(self, key: str, chunks: Iterable[bytes]) -> Optional[Path]:
        """
        Write media bytes for key into the disk cache.

        Writes to a temporary file, then renames it into place.

        Args:
            key: Media URL.
            chunks: Byte chunks to write.

        Returns:
            Path of the cached file, or None if writing failed.
        """
        path = self.disk_path_for(key)
        temp_path = path.with_name(f"{path.name}.{threading.get_ident()}.part")
        try:
            self._ensure_directory()
            with open(temp_path, 'wb') as f:
                for chunk in chunks:
                    f.write(chunk)
            temp_path.replace(path)
        except OSError as e:
            logger.warning(f"Failed to write cache file for {key}: {e}")
            temp_path.unlink(missing_ok=True)
            return None
        return path

    def _disk_files(self) -> List[Tuple[Path, float, int]]:
        """List (path, creation time, size) of the cache files in the directory."""
        files = []
        try:
            candidates = list(self.cache_dir.iterdir())
        except OSError as e:
            logger.error(f"Error listing cache directory {self.cache_dir}: {e}")
            return files

        for path in candidates:
            if not is_cache_file_name(path.name):
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                # Removed by a concurrent prune or evict_all
                continue
            except OSError as e:
                logger.warning(f"Cannot stat cache file {path}: {e}")
                continue
            if path.is_file():
                files.append((path, _creation_time(stat), stat.st_size))
        return files

    def disk_files(self) -> List[Path]:
        """Paths of the cache files in the disk cache directory."""
        return [path for path, _, _ in self._disk_files()]

    def disk_usage(self) -> int:
        """Total size in bytes of the disk cache directory."""
        return sum(size for _, _, size in self._disk_files())

    def prune_disk_cache(self) -> List[Path]:
        """
        Delete the oldest cache files until the directory fits the ceiling.

        The newest files are kept as long as their cumulative size stays
        within disk_limit; the first file that would overflow and every
        older file are deleted.

        Returns:
            Paths that were removed.
        """
        with self._lock:
            files = sorted(self._disk_files(), key=lambda f: (f[1], f[0].name), reverse=True)
            removed = []
            kept_size = 0
            overflowed = False
            for path, _, size in files:
                if not overflowed and kept_size + size <= self.disk_limit:
                    kept_size += size
                    continue
                overflowed = True
                try:
                    path.unlink()
                except FileNotFoundError:
                    continue
                except OSError as e:
                    logger.warning(f"Failed to remove cache file {path}: {e}")
                    continue
                removed.append(path)
                logger.info(f"Removed old cache file: {path.name}")
            return removed
