"""Tests for the memory and disk asset cache."""

import hashlib
import os
import threading

import pytest

from reelfeed.cache.asset_cache import AssetCache, CacheStats

from conftest import StubAsset


def _asset(url: str, size: int = 0) -> StubAsset:
    asset = StubAsset(url)
    asset.content_length = size or None
    return asset


def _cache_path(cache_dir, key: str):
    return cache_dir / f"{hashlib.sha1(key.encode('utf-8')).hexdigest()}.mp4"


def _write(path, size: int, mtime: float):
    path.write_bytes(b'\0' * size)
    os.utime(path, (mtime, mtime))
    return path


class TestAssetCacheInit:
    """Tests for cache construction."""

    def test_creates_directory(self, cache_dir):
        """The disk directory is created on construction."""
        AssetCache(cache_dir=cache_dir)
        assert cache_dir.is_dir()

    @pytest.mark.parametrize("limits", [
        {"count_limit": 0},
        {"cost_limit": -1},
        {"disk_limit": 0},
    ])
    def test_invalid_limits_raise(self, cache_dir, limits):
        """Non-positive limits are rejected."""
        with pytest.raises(ValueError):
            AssetCache(cache_dir=cache_dir, **limits)

    def test_prunes_on_init(self, cache_dir):
        """An oversized directory is pruned when the cache opens."""
        cache_dir.mkdir()
        old = _write(_cache_path(cache_dir, 'old'), 80, 1000)
        new = _write(_cache_path(cache_dir, 'new'), 80, 2000)

        AssetCache(cache_dir=cache_dir, disk_limit=100)

        assert not old.exists()
        assert new.exists()

    def test_prune_on_init_leaves_foreign_files(self, cache_dir):
        """Files the cache did not name are never pruned."""
        cache_dir.mkdir()
        notes = _write(cache_dir / 'notes.txt', 100, 1000)
        movie = _write(cache_dir / 'holiday.mp4', 100, 500)

        AssetCache(cache_dir=cache_dir, disk_limit=10)

        assert notes.exists()
        assert movie.exists()


class TestAssetCacheMemory:
    """Tests for the in-memory side."""

    def test_insert_and_get(self, asset_cache):
        """An inserted asset is returned by get()."""
        asset = _asset('https://cdn/a.mp4')
        asset_cache.insert(asset, asset.url)
        assert asset_cache.get(asset.url) is asset
        assert 'https://cdn/a.mp4' in asset_cache

    def test_get_missing_returns_none(self, asset_cache):
        """get() on an unknown key returns None and counts a miss."""
        assert asset_cache.get('https://cdn/none.mp4') is None
        assert asset_cache.stats.misses == 1

    def test_count_limit_evicts_least_recently_used(self, cache_dir):
        """Eleven inserts into a ten-entry cache leave ten, minus the oldest."""
        cache = AssetCache(cache_dir=cache_dir, count_limit=10)
        for i in range(11):
            cache.insert(_asset(f'k{i}'), f'k{i}')

        assert len(cache) == 10
        assert 'k0' not in cache
        assert 'k10' in cache

    def test_get_refreshes_recency(self, cache_dir):
        """A read moves the entry away from the eviction end."""
        cache = AssetCache(cache_dir=cache_dir, count_limit=10)
        for i in range(10):
            cache.insert(_asset(f'k{i}'), f'k{i}')
        cache.get('k0')
        cache.insert(_asset('k10'), 'k10')

        assert 'k0' in cache
        assert 'k1' not in cache

    def test_count_never_exceeds_limit(self, cache_dir):
        """The entry count stays within the ceiling after any inserts."""
        cache = AssetCache(cache_dir=cache_dir, count_limit=3)
        for i in range(20):
            cache.insert(_asset(f'k{i % 7}'), f'k{i % 7}')
            assert len(cache) <= 3

    def test_cost_limit_evicts(self, cache_dir):
        """Total cost stays within the cost ceiling."""
        cache = AssetCache(cache_dir=cache_dir, cost_limit=250)
        cache.insert(_asset('a', 100), 'a')
        cache.insert(_asset('b', 100), 'b')
        cache.insert(_asset('c', 100), 'c')

        assert cache.total_cost <= 250
        assert cache.keys() == ['b', 'c']
        assert cache.stats.evictions == 1

    def test_oversized_entry_not_retained(self, cache_dir):
        """An entry larger than the cost ceiling is not kept."""
        cache = AssetCache(cache_dir=cache_dir, cost_limit=50)
        cache.insert(_asset('big', 100), 'big')
        assert 'big' not in cache
        assert cache.total_cost == 0

    def test_reinsert_updates_cost(self, asset_cache):
        """Inserting an existing key replaces its cost."""
        asset = _asset('a')
        asset_cache.insert(asset, 'a')
        asset.content_length = 500
        asset_cache.insert(asset, 'a')
        assert len(asset_cache) == 1
        assert asset_cache.total_cost == 500

    def test_get_or_create_creates_lazy_asset(self, asset_cache):
        """get_or_create() opens a pending handle and caches it."""
        asset = asset_cache.get_or_create('https://cdn/a.mp4')
        assert isinstance(asset, StubAsset)
        assert asset.status.value == 'pending'
        assert asset_cache.get_or_create('https://cdn/a.mp4') is asset

    def test_peek_leaves_recency_and_stats(self, asset_cache):
        """peek() reads without counting a hit or refreshing recency."""
        asset_cache.insert(_asset('a'), 'a')
        asset_cache.insert(_asset('b'), 'b')

        assert asset_cache.peek('a') is not None
        assert asset_cache.peek('zzz') is None
        assert asset_cache.keys() == ['a', 'b']
        assert asset_cache.stats.hits == 0

    def test_remove(self, asset_cache):
        """remove() reports whether something was dropped."""
        asset_cache.insert(_asset('a', 10), 'a')
        assert asset_cache.remove('a') is True
        assert asset_cache.remove('a') is False
        assert asset_cache.total_cost == 0


class TestAssetCacheEvictAll:
    """Tests for evict_all()."""

    def test_clears_memory_and_disk(self, asset_cache):
        """evict_all() empties memory and the directory."""
        asset_cache.insert(_asset('a', 10), 'a')
        asset_cache.write_file('a', [b'data'])

        asset_cache.evict_all()

        assert len(asset_cache) == 0
        assert asset_cache.cache_dir.is_dir()
        assert asset_cache.disk_usage() == 0

    def test_leaves_foreign_files(self, asset_cache):
        """Only files written by the cache are deleted."""
        asset_cache.write_file('a', [b'data'])
        notes = asset_cache.cache_dir / 'notes.txt'
        notes.write_bytes(b'keep me')

        asset_cache.evict_all()

        assert asset_cache.disk_files() == []
        assert notes.read_bytes() == b'keep me'

    def test_idempotent(self, asset_cache):
        """Calling evict_all() twice leaves the same empty cache."""
        asset_cache.insert(_asset('a', 10), 'a')
        asset_cache.evict_all()
        asset_cache.evict_all()
        assert len(asset_cache) == 0
        assert asset_cache.keys() == []
        assert asset_cache.disk_files() == []


class TestAssetCacheDisk:
    """Tests for the disk side."""

    def test_write_file(self, asset_cache):
        """write_file() stores the chunks under a hashed name."""
        path = asset_cache.write_file('https://cdn/a.mp4', [b'abc', b'def'])

        assert path == asset_cache.disk_path_for('https://cdn/a.mp4')
        assert path.read_bytes() == b'abcdef'
        assert path.suffix == '.mp4'
        assert asset_cache.cached_file('https://cdn/a.mp4') == path

    def test_write_file_failure_returns_none(self, asset_cache):
        """A failing chunk source leaves no file behind."""
        def chunks():
            yield b'abc'
            raise OSError("connection reset")

        assert asset_cache.write_file('https://cdn/a.mp4', chunks()) is None
        assert asset_cache.cached_file('https://cdn/a.mp4') is None
        assert asset_cache.disk_files() == []

    def test_cached_file_missing(self, asset_cache):
        """cached_file() is None for an unknown key."""
        assert asset_cache.cached_file('https://cdn/none.mp4') is None

    def test_prune_removes_oldest_first(self, cache_dir):
        """Pruning deletes the oldest files and keeps the newest."""
        cache = AssetCache(cache_dir=cache_dir, disk_limit=250, prune_on_init=False)
        oldest = _write(_cache_path(cache_dir, 'a'), 100, 1000)
        middle = _write(_cache_path(cache_dir, 'b'), 100, 2000)
        newest = _write(_cache_path(cache_dir, 'c'), 100, 3000)

        removed = cache.prune_disk_cache()

        assert removed == [oldest]
        assert middle.exists() and newest.exists()
        assert cache.disk_usage() <= 250

    def test_prune_never_keeps_older_than_removed(self, cache_dir):
        """Once a file is removed, every older file is removed too."""
        cache = AssetCache(cache_dir=cache_dir, disk_limit=250, prune_on_init=False)
        oldest = _write(_cache_path(cache_dir, 'a'), 50, 1000)
        middle = _write(_cache_path(cache_dir, 'b'), 100, 2000)
        newest = _write(_cache_path(cache_dir, 'c'), 200, 3000)

        removed = cache.prune_disk_cache()

        assert set(removed) == {oldest, middle}
        assert newest.exists()

    def test_disk_files_lists_only_cache_files(self, asset_cache):
        """disk_files() and disk_usage() ignore files the cache did not name."""
        path = asset_cache.write_file('a', [b'12345'])
        (asset_cache.cache_dir / 'clip.mp4').write_bytes(b'x' * 100)

        assert asset_cache.disk_files() == [path]
        assert asset_cache.disk_usage() == 5

    def test_prune_under_limit_removes_nothing(self, asset_cache):
        """A directory within the ceiling is left alone."""
        asset_cache.write_file('a', [b'12345'])
        assert asset_cache.prune_disk_cache() == []
        assert len(asset_cache.disk_files()) == 1


class TestAssetCacheConcurrency:
    """Tests for inserts racing the disk pruning."""

    def test_insert_while_pruning(self, cache_dir):
        """Inserts on one thread and prunes on another keep every ceiling."""
        cache = AssetCache(cache_dir=cache_dir, count_limit=5, disk_limit=100, prune_on_init=False)
        errors = []

        def insert_loop():
            try:
                for i in range(500):
                    cache.insert(_asset(f'k{i}', 10), f'k{i}')
                    cache.get(f'k{i // 2}')
            except Exception as e:
                errors.append(e)

        def prune_loop():
            try:
                for i in range(50):
                    cache.write_file(f'f{i}', [b'x' * 10])
                    cache.prune_disk_cache()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=insert_loop), threading.Thread(target=prune_loop)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert len(cache) <= 5
        assert cache.total_cost == 50
        assert cache.disk_usage() <= 100


class TestCacheStats:
    """Tests for CacheStats."""

    def test_hit_ratio(self):
        """hit_ratio is hits over lookups."""
        assert CacheStats().hit_ratio == 0.0
        assert CacheStats(hits=3, misses=1).hit_ratio == 0.75
