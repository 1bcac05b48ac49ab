"""Runtime context for feed sessions."""

import os
from contextlib import contextmanager
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Generator, Optional

from loguru import logger

from reelfeed.config.settings import (
    CLEANUP_INTERVAL_SECONDS,
    DEFAULT_CACHE_DIR,
    DISK_CACHE_LIMIT,
    ENV_PREFIX,
    LOAD_MORE_THRESHOLD,
    MEMORY_COST_LIMIT,
    MEMORY_COUNT_LIMIT,
    PAGE_SIZE,
    PREFETCH_BYTES,
    PREFETCH_WORKERS,
    WINDOW_SIZE,
)

# Global context storage
_current_context: Optional["FeedContext"] = None


@dataclass
class FeedContext:
    """
    Runtime configuration for a feed session.

    Centralizes the tunables that the cache, the prefetcher and the
    controller need without threading them through every call.

    Attributes:
        cache_dir: Directory backing the on-disk asset cache.
        window_size: Number of videos kept resident around the current one.
        count_limit: Maximum number of assets held in memory.
        cost_limit: Maximum total byte cost of assets held in memory.
        disk_limit: Byte ceiling enforced when pruning the disk cache.
        cleanup_interval: Minimum seconds between two deload passes.
        page_size: Number of documents requested per page.
        load_more_threshold: Distance to the end of the feed that triggers a fetch.
        prefetch_workers: Size of the prefetch thread pool.
        prefetch_bytes: Bytes of each prefetched video written to disk (0 disables).
        debug: If True, enable debug logging.
    """

    cache_dir: Path = field(default_factory=lambda: DEFAULT_CACHE_DIR)
    window_size: int = WINDOW_SIZE
    count_limit: int = MEMORY_COUNT_LIMIT
    cost_limit: int = MEMORY_COST_LIMIT
    disk_limit: int = DISK_CACHE_LIMIT
    cleanup_interval: float = CLEANUP_INTERVAL_SECONDS
    page_size: int = PAGE_SIZE
    load_more_threshold: float = LOAD_MORE_THRESHOLD
    prefetch_workers: int = PREFETCH_WORKERS
    prefetch_bytes: int = PREFETCH_BYTES
    debug: bool = False

    def __post_init__(self) -> None:
        self.cache_dir = Path(self.cache_dir)
        if self.window_size <= 0 or self.window_size % 2 == 0:
            raise ValueError(f"window_size must be a positive odd number, got {self.window_size}")
        for name in ("count_limit", "cost_limit", "disk_limit", "page_size", "prefetch_workers"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.prefetch_bytes < 0:
            raise ValueError("prefetch_bytes cannot be negative")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides) -> "FeedContext":
        """
        Build a context from REELFEED_* environment variables.

        Unknown or unparsable values are logged and ignored.

        Args:
            environ: Mapping to read from (defaults to os.environ).
            **overrides: Values taking precedence over the environment.

        Returns:
            A new FeedContext.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None or raw == "":
                continue
            try:
                values[f.name] = _coerce(f.name, raw)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}")
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _coerce(name: str, raw: str):
    """Convert an environment string to the type of the named field."""
    if name == "cache_dir":
        return Path(raw).expanduser()
    if name == "debug":
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if name in ("cleanup_interval", "load_more_threshold"):
        return float(raw)
    return int(raw)


def get_context() -> FeedContext:
    """
    Get the current feed context.

    Returns:
        Current FeedContext, or a default one if not set.
    """
    if _current_context is None:
        return FeedContext()
    return _current_context


def set_context(ctx: Optional[FeedContext]) -> None:
    """
    Set the global feed context.

    Args:
        ctx: FeedContext to set, or None to reset to default.
    """
    global _current_context
    _current_context = ctx


@contextmanager
def feed_context(ctx: Optional[FeedContext] = None, **kwargs) -> Generator[FeedContext, None, None]:
    """
    Context manager for temporarily setting the feed context.

    Args:
        ctx: Existing FeedContext to activate. Built from kwargs if None.
        **kwargs: Arguments to pass to the FeedContext constructor.

    Yields:
        The active FeedContext.

    Example:
        with feed_context(window_size=3) as ctx:
            controller = FeedController.from_context(source, ctx)
        # Previous context restored
    """
    global _current_context
    previous = _current_context

    active = ctx if ctx is not None else FeedContext(**kwargs)
    _current_context = active

    try:
        yield active
    finally:
        _current_context = previous
