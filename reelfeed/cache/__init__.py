"""Media asset caching and residency window."""

from reelfeed.cache.asset import AssetStatus, LoadResult, MediaAsset
from reelfeed.cache.asset_cache import AssetCache, CacheEntry, CacheStats
from reelfeed.cache.window import LoadingWindow, window, should_keep_loaded

__all__ = [
    "AssetStatus",
    "LoadResult",
    "MediaAsset",
    "AssetCache",
    "CacheEntry",
    "CacheStats",
    "LoadingWindow",
    "window",
    "should_keep_loaded",
]
