"""Background prefetching of video assets."""

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional

from loguru import logger

from reelfeed.cache.asset import AssetStatus, LoadResult, MediaAsset
from reelfeed.cache.asset_cache import AssetCache
from reelfeed.config.settings import PREFETCH_BYTES, PREFETCH_WORKERS, REQUEST_TIMEOUT_SECONDS
from reelfeed.feed.dispatcher import MainQueue
from reelfeed.models.video import VideoItem


class Prefetcher:
    """
    Loads assets ahead of display on a thread pool.

    Loads are fire-and-forget. Their completion is applied on the main
    queue: a ready asset goes into the cache even if its video has left
    the window meanwhile, since eviction alone decides residency. A failed
    load is logged and leaves the URL out of the cache.

    Attributes:
        cache: Cache receiving loaded assets.
        main_queue: Queue used to apply completions on the owning thread.
        prefetch_bytes: Bytes of each video also written to the disk cache.
        on_loaded: Optional callback (item, result) run on the main queue.
    """

    def __init__(
        self,
        cache: AssetCache,
        main_queue: MainQueue,
        executor: Optional[Executor] = None,
        max_workers: int = PREFETCH_WORKERS,
        prefetch_bytes: int = PREFETCH_BYTES,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        on_loaded: Optional[Callable[[VideoItem, LoadResult], None]] = None,
    ) -> None:
        """
        Initialize the prefetcher.

        Args:
            cache: Cache receiving loaded assets.
            main_queue: Queue of the owning thread.
            executor: Executor running the loads (a thread pool by default).
            max_workers: Pool size when no executor is given.
            prefetch_bytes: Bytes per video written to disk (0 disables).
            timeout: Network timeout per load.
            on_loaded: Callback run on the main queue after each load.
        """
        self.cache = cache
        self.main_queue = main_queue
        self.prefetch_bytes = prefetch_bytes
        self.timeout = timeout
        self.on_loaded = on_loaded
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix='reelfeed-prefetch'
        )
        self._pending: Dict[str, Future] = {}

    def is_pending(self, url: str) -> bool:
        """True while a load for url is in flight."""
        return url in self._pending

    def pending_load(self, url: str) -> Optional[Future]:
        """Future of the load in flight for url, if any."""
        return self._pending.get(url)

    @property
    def pending_count(self) -> int:
        """Number of loads in flight."""
        return len(self._pending)

    def prefetch(self, item: VideoItem) -> Optional[Future]:
        """
        Start loading the asset of item unless it is cached or in flight.

        Args:
            item: Video to prefetch.

        Returns:
            The Future of the load, or None if nothing was started.
        """
        url = item.media_url
        if url is None:
            logger.warning(f"Invalid URL for video {item.id}, not prefetched")
            return None
        if url in self.cache:
            logger.debug(f"Video {item.id} already prefetched")
            return None
        if url in self._pending:
            logger.debug(f"Video {item.id} prefetch already in flight")
            return None

        logger.debug(f"Starting prefetch for video {item.id}")
        asset = self.cache.asset_factory(url)
        future = self._executor.submit(self._load, asset)
        self._pending[url] = future
        future.add_done_callback(
            lambda f: self.main_queue.call_soon(self._finish, item, asset, f)
        )
        return future

    def _load(self, asset: MediaAsset) -> LoadResult:
        """Runs on a worker thread."""
        result = asset.load(self.timeout)
        if result.ready and self.prefetch_bytes > 0 and self.cache.cached_file(asset.url) is None:
            self.cache.write_file(asset.url, asset.iter_bytes(self.prefetch_bytes))
        return result

    def _finish(self, item: VideoItem, asset: MediaAsset, future: Future) -> None:
        """Runs on the main queue."""
        self._pending.pop(asset.url, None)
        if future.cancelled():
            logger.debug(f"Prefetch cancelled for video {item.id}")
            return
        try:
            result = future.result()
        except Exception as e:
            logger.error(f"Prefetch crashed for video {item.id}: {e}")
            return

        if result.ready:
            logger.info(f"Successfully prefetched video {item.id}")
            self.cache.insert(asset, asset.url)
        else:
            logger.warning(f"Failed to prefetch video {item.id}: {result.error or 'Unknown error'}")

        if self.on_loaded is not None:
            self.on_loaded(item, result)

    def load_for_playback(
        self,
        asset: MediaAsset,
        on_done: Callable[[LoadResult], None]
    ) -> Optional[Future]:
        """
        Load an asset a cell is already holding.

        A ready asset is re-inserted with its byte cost; a failed one is
        dropped from the cache so the next configure opens a fresh handle.

        Args:
            asset: Pending asset taken from the cache by a cell.
            on_done: Called with the LoadResult on the main queue.

        Returns:
            The Future of the load, or None if the asset needs no load.
        """
        if asset.status is not AssetStatus.PENDING:
            return None
        future = self._executor.submit(asset.load, self.timeout)
        future.add_done_callback(
            lambda f: self.main_queue.call_soon(self._finish_playback, asset, f, on_done)
        )
        return future

    def _finish_playback(
        self,
        asset: MediaAsset,
        future: Future,
        on_done: Callable[[LoadResult], None]
    ) -> None:
        if future.cancelled():
            return
        try:
            result = future.result()
        except Exception as e:
            logger.error(f"Playback load crashed for {asset.url}: {e}")
            return
        if self.cache.peek(asset.url) is asset:
            if result.ready:
                # Re-insert so the entry carries the now known byte cost
                self.cache.insert(asset, asset.url)
            else:
                self.cache.remove(asset.url)
        on_done(result)

    def cancel(self, item: VideoItem) -> bool:
        """
        Cancel the load of item if it has not started yet.

        Returns:
            True if the load was cancelled.
        """
        url = item.media_url
        future = self._pending.get(url) if url else None
        if future is None:
            return False
        return future.cancel()

    def shutdown(self, wait: bool = False) -> None:
        """Stop the pool when it was created here."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=True)
