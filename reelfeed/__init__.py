"""
Reelfeed - Video feed asset cache with a sliding prefetch window.

Keeps a vertical short-video feed responsive by:
- Caching lazily opened media assets in a bounded LRU cache
- Keeping a fixed window of videos resident around the playing one
- Prefetching neighbours in the background while the user scrolls
- Paginating the feed from a document store without duplicates
"""

__version__ = "0.1.0"
