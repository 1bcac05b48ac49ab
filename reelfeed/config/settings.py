"""Configuration settings and constants for the reelfeed package."""

from pathlib import Path
from typing import Dict

# Loading window (odd so the playing video sits in the middle)
WINDOW_SIZE: int = 5

# In-memory asset cache bounds
MEMORY_COUNT_LIMIT: int = 10
MEMORY_COST_LIMIT: int = 250 * 1024 * 1024

# On-disk cache ceiling
DISK_CACHE_LIMIT: int = 500 * 1024 * 1024
DEFAULT_CACHE_DIR = Path.home() / '.cache' / 'reelfeed' / 'VideoCache'
DISK_CACHE_SUFFIX = '.mp4'

# Minimum delay between two deload passes, in seconds
CLEANUP_INTERVAL_SECONDS: float = 2.0

# Pagination
PAGE_SIZE: int = 3
LOAD_MORE_THRESHOLD: float = 100.0
DEFAULT_ITEM_HEIGHT: float = 844.0

# Resident memory above which distant assets are dropped
MEMORY_THRESHOLD_BYTES: int = 300 * 1024 * 1024

# Network
REQUEST_TIMEOUT_SECONDS: int = 10
VIDEO_MIME_TYPE = 'video/mp4'
ASSET_REQUEST_HEADERS: Dict[str, str] = {'Accept': VIDEO_MIME_TYPE}

# Background work
PREFETCH_WORKERS: int = 2
PREFETCH_BYTES: int = 0
STREAM_CHUNK_SIZE: int = 64 * 1024

# Environment variable prefix for FeedContext.from_env()
ENV_PREFIX = 'REELFEED_'
