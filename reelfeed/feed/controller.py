"""Scroll-driven controller of the video feed."""

import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Set

from loguru import logger

from reelfeed.api.exceptions import FeedError
from reelfeed.api.feed_client import FeedPage
from reelfeed.cache.asset import AssetStatus, LoadResult
from reelfeed.cache.asset_cache import AssetCache
from reelfeed.cache.window import LoadingWindow
from reelfeed.config.context import FeedContext, get_context
from reelfeed.config.settings import (
    CLEANUP_INTERVAL_SECONDS,
    DEFAULT_ITEM_HEIGHT,
    LOAD_MORE_THRESHOLD,
    MEMORY_THRESHOLD_BYTES,
    PAGE_SIZE,
    WINDOW_SIZE,
)
from reelfeed.feed.cell import VideoCell
from reelfeed.feed.dispatcher import MainQueue
from reelfeed.feed.prefetcher import Prefetcher
from reelfeed.models.events import FeedEventBus
from reelfeed.models.video import VideoItem


class FeedSource(Protocol):
    """Anything returning pages of the feed, newest first."""

    def fetch_page(self, cursor: Optional[str] = None, limit: int = PAGE_SIZE) -> FeedPage:
        ...


class ScrollState(Enum):
    """Scroll state machine: IDLE -> SCROLLING -> SETTLED -> IDLE."""

    IDLE = 'idle'
    SCROLLING = 'scrolling'
    SETTLED = 'settled'


class FeedController:
    """
    Owns the ordered videos, the playing index and the residency window.

    Every method must be called on the thread owning main_queue. Page
    fetches and asset loads run on executors and come back through the
    queue, so state is only mutated when the owner drains it.

    Attributes:
        items: Videos of the feed, newest first, unique by id.
        current_index: Index of the playing video, or None before the first settle.
        state: Current ScrollState.
        cells: Realized cells by index.
        loading_window: Window around the current index.
        has_more: False once the backend returned an empty page.
        is_loading_more: True while a page fetch is in flight.
    """

    def __init__(
        self,
        source: FeedSource,
        cache: Optional[AssetCache] = None,
        prefetcher: Optional[Prefetcher] = None,
        main_queue: Optional[MainQueue] = None,
        event_bus: Optional[FeedEventBus] = None,
        window_size: int = WINDOW_SIZE,
        cleanup_interval: float = CLEANUP_INTERVAL_SECONDS,
        page_size: int = PAGE_SIZE,
        load_more_threshold: float = LOAD_MORE_THRESHOLD,
        item_height: float = DEFAULT_ITEM_HEIGHT,
        clock: Callable[[], float] = time.monotonic,
        fetch_executor: Optional[Executor] = None,
        background_executor: Optional[Executor] = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            source: Feed source providing pages.
            cache: Asset cache (a new one by default).
            prefetcher: Prefetcher sharing the cache and queue.
            main_queue: Queue of the owning thread.
            event_bus: Bus receiving cell actions.
            window_size: Odd size of the residency window.
            cleanup_interval: Minimum seconds between two evictions.
            page_size: Videos requested per page.
            load_more_threshold: Distance to the end that triggers the next page.
            item_height: Height of one full-screen item.
            clock: Monotonic clock used for the cleanup cooldown.
            fetch_executor: Executor running page fetches.
            background_executor: Executor running disk pruning.
        """
        if item_height <= 0:
            raise ValueError(f"item_height must be positive, got {item_height}")

        self.source = source
        self.main_queue = main_queue or MainQueue()
        self.cache = cache if cache is not None else AssetCache()
        self.prefetcher = prefetcher or Prefetcher(self.cache, self.main_queue)
        self.event_bus = event_bus or FeedEventBus()
        self.window_size = window_size
        self.cleanup_interval = cleanup_interval
        self.page_size = page_size
        self.load_more_threshold = load_more_threshold
        self.item_height = item_height
        self.clock = clock

        self._owned_executors: List[Executor] = []
        self._fetch_executor = fetch_executor or self._own(
            ThreadPoolExecutor(max_workers=1, thread_name_prefix='reelfeed-fetch')
        )
        self._background_executor = background_executor or self._own(
            ThreadPoolExecutor(max_workers=1, thread_name_prefix='reelfeed-prune')
        )

        self.items: List[VideoItem] = []
        self.current_index: Optional[int] = None
        self.state = ScrollState.IDLE
        self.cells: Dict[int, VideoCell] = {}
        self.loading_window: Optional[LoadingWindow] = None
        self.has_more = True
        self.is_loading_more = False
        self._cursor: Optional[str] = None
        self._last_cleanup = clock()

    def _own(self, executor: Executor) -> Executor:
        self._owned_executors.append(executor)
        return executor

    @classmethod
    def from_context(cls, source: FeedSource, ctx: Optional[FeedContext] = None) -> "FeedController":
        """
        Build a controller with cache and prefetcher wired from a FeedContext.

        Args:
            source: Feed source providing pages.
            ctx: Context to use (the current one by default).

        Returns:
            A new FeedController.
        """
        ctx = ctx or get_context()
        main_queue = MainQueue()
        cache = AssetCache(
            cache_dir=ctx.cache_dir,
            count_limit=ctx.count_limit,
            cost_limit=ctx.cost_limit,
            disk_limit=ctx.disk_limit,
        )
        prefetcher = Prefetcher(
            cache,
            main_queue,
            max_workers=ctx.prefetch_workers,
            prefetch_bytes=ctx.prefetch_bytes,
        )
        return cls(
            source,
            cache=cache,
            prefetcher=prefetcher,
            main_queue=main_queue,
            window_size=ctx.window_size,
            cleanup_interval=ctx.cleanup_interval,
            page_size=ctx.page_size,
            load_more_threshold=ctx.load_more_threshold,
        )

    # -- pagination -----------------------------------------------------

    @property
    def content_height(self) -> float:
        """Total height of the realized list."""
        return len(self.items) * self.item_height

    def fetch_videos(self, initial: bool = True) -> Optional[Future]:
        """
        Request a page of videos in the background.

        An initial fetch restarts the feed from the newest video. A
        follow-up fetch continues after the last document received.

        Args:
            initial: True to restart the feed, False to load the next page.

        Returns:
            The Future of the fetch, or None if no fetch was started.
        """
        if self.is_loading_more or not (initial or self.has_more):
            return None

        self.is_loading_more = True
        if initial:
            self._reset_feed()
        cursor = None if initial else self._cursor
        logger.info(f"Fetching videos (initial={initial}, cursor={cursor})")

        future = self._fetch_executor.submit(self.source.fetch_page, cursor, self.page_size)
        future.add_done_callback(
            lambda f: self.main_queue.call_soon(self._handle_page, f, initial)
        )
        return future

    def _reset_feed(self) -> None:
        for cell in self.cells.values():
            cell.prepare_for_reuse()
        self.cells.clear()
        self.items = []
        self._cursor = None
        self.has_more = True
        self.current_index = None
        self.loading_window = None

    def _handle_page(self, future: Future, initial: bool) -> None:
        """Runs on the main queue."""
        self.is_loading_more = False
        try:
            page = future.result()
        except FeedError as e:
            logger.error(f"Error fetching videos: {e}")
            return

        if page.document_count == 0:
            logger.info("No more videos found")
            self.has_more = False
            return

        self._cursor = page.cursor
        added = self.append_items(page.items)
        logger.info(f"Fetched {added} new videos, total {len(self.items)}")

    def append_items(self, items: Iterable[VideoItem]) -> int:
        """
        Append videos not already present, keyed by id.

        Args:
            items: Videos in feed order.

        Returns:
            Number of videos appended.
        """
        existing: Set[str] = {item.id for item in self.items}
        added = 0
        for item in items:
            if item.id in existing:
                continue
            existing.add(item.id)
            self.items.append(item)
            added += 1
        return added

    # -- scrolling ------------------------------------------------------

    def begin_scrolling(self) -> None:
        """The user started dragging the feed."""
        self.state = ScrollState.SCROLLING

    def did_scroll(self, content_offset: float, viewport_height: Optional[float] = None) -> Optional[Future]:
        """
        Load the next page when the viewport nears the end of the list.

        Args:
            content_offset: Vertical offset of the viewport.
            viewport_height: Viewport height (one item by default).

        Returns:
            The Future of the fetch, if one was started.
        """
        viewport = self.item_height if viewport_height is None else viewport_height
        distance = self.content_height - (content_offset + viewport)
        if distance < self.load_more_threshold and not self.is_loading_more and self.has_more:
            return self.fetch_videos(initial=False)
        return None

    def did_end_decelerating(self, content_offset: float) -> Optional[int]:
        """
        Settle on the item under the viewport.

        Returns:
            The settled index, or None for an empty feed.
        """
        if not self.items:
            self.state = ScrollState.IDLE
            return None
        index = min(max(int(round(content_offset / self.item_height)), 0), len(self.items) - 1)
        self.settle(index)
        return index

    def settle(self, index: int) -> None:
        """
        Make index the playing item.

        Pauses the previous item, restarts the new one, moves the window,
        evicts what left it if the cooldown elapsed and prefetches the
        neighbors.

        Args:
            index: Index of the item now on screen.

        Raises:
            IndexError: If index is outside the feed.
        """
        if not 0 <= index < len(self.items):
            raise IndexError(f"Index {index} outside feed of {len(self.items)} videos")

        self.state = ScrollState.SETTLED
        previous = self.cells.get(self.current_index) if self.current_index is not None else None
        if previous is not None and self.current_index != index:
            previous.pause()

        cell = self.cell_for_index(index)
        logger.debug(f"Playing video at index {index}")
        cell.restart()
        self._load_for_playback(cell)
        self.current_index = index

        self.loading_window = LoadingWindow(index, self.window_size)
        now = self.clock()
        if now - self._last_cleanup >= self.cleanup_interval:
            self.deload_distant_videos()
            self._last_cleanup = now

        self.prefetch_adjacent(index)
        self.state = ScrollState.IDLE

    def _load_for_playback(self, cell: VideoCell) -> None:
        if cell.asset is None:
            return
        in_flight = self.prefetcher.pending_load(cell.asset.url)
        if in_flight is not None:
            # The prefetcher's completion is queued first and inserts the asset
            item = cell.item
            in_flight.add_done_callback(
                lambda f: self.main_queue.call_soon(self._adopt_prefetched, cell, item)
            )
            return
        self.prefetcher.load_for_playback(cell.asset, lambda result: self._on_playback_loaded(cell, result))

    def _adopt_prefetched(self, cell: VideoCell, item: VideoItem) -> None:
        """Runs on the main queue once a prefetch the cell waited on is applied."""
        if cell.item is not item or cell.asset is None:
            return
        asset = self.cache.peek(cell.asset.url)
        if asset is not None and asset is not cell.asset and asset.status is AssetStatus.READY:
            logger.debug(f"Cell #{cell.cell_id} took the prefetched asset of video {item.id}")
            cell.adopt_asset(asset)
            return
        self._load_for_playback(cell)

    def _on_playback_loaded(self, cell: VideoCell, result: LoadResult) -> None:
        """Runs on the main queue."""
        cell.refresh_status()
        if not result.ready:
            logger.warning(f"Playback load failed in cell #{cell.cell_id}: {result.error}")

    def cell_for_index(self, index: int) -> VideoCell:
        """
        Return the realized cell for index, configuring it on first use.

        Args:
            index: Feed index.

        Returns:
            The cell showing items[index].
        """
        item = self.items[index]
        cell = self.cells.get(index)
        if cell is None:
            cell = VideoCell(self.event_bus)
            self.cells[index] = cell
        if cell.item is None or cell.item.id != item.id:
            cell.configure(item, self.cache)
        return cell

    # -- residency ------------------------------------------------------

    def _window_urls(self) -> Set[str]:
        if self.loading_window is None:
            return set()
        return {
            url for url in (self.items[i].media_url for i in self.loading_window.indices(len(self.items)))
            if url is not None
        }

    def deload_distant_videos(self) -> int:
        """
        Drop cache entries and cells of videos outside the window.

        Cache entries whose URL belongs to no video inside the window are
        removed, including URLs of videos no longer in the feed.

        Returns:
            Number of cache entries removed.
        """
        if self.loading_window is None:
            return 0

        keep = self._window_urls()
        removed = 0
        for key in self.cache.keys():
            if key not in keep and self.cache.remove(key):
                removed += 1
                logger.debug(f"Deloaded video asset: {key}")

        total = len(self.items)
        for index in list(self.cells):
            if not self.loading_window.should_keep_loaded(index, total):
                self.cells.pop(index).prepare_for_reuse()
                logger.debug(f"Cleaned up distant cell at index {index}")
        return removed

    def prefetch_adjacent(self, index: int) -> List[Future]:
        """
        Prefetch the items right before and after index.

        Returns:
            Futures of the loads started.
        """
        futures = []
        for neighbor in (index - 1, index + 1):
            if 0 <= neighbor < len(self.items):
                future = self.prefetcher.prefetch(self.items[neighbor])
                if future is not None:
                    futures.append(future)
        return futures

    def prefetch_items_at(self, indices: Iterable[int]) -> List[Future]:
        """
        Prefetch the given indices that fall inside the window.

        Returns:
            Futures of the loads started.
        """
        total = len(self.items)
        window = self.loading_window or LoadingWindow(self.current_index or 0, self.window_size)
        futures = []
        for index in indices:
            if not 0 <= index < total or not window.should_keep_loaded(index, total):
                continue
            future = self.prefetcher.prefetch(self.items[index])
            if future is not None:
                futures.append(future)
        return futures

    def cancel_prefetching(self, indices: Iterable[int]) -> int:
        """
        Cancel loads of the given indices that have not started.

        Returns:
            Number of loads cancelled.
        """
        total = len(self.items)
        return sum(
            1 for index in indices
            if 0 <= index < total and self.prefetcher.cancel(self.items[index])
        )

    # -- resource pressure ----------------------------------------------

    def did_receive_memory_warning(self) -> None:
        """Drop every cached asset."""
        logger.warning("Memory warning received, clearing video cache")
        self.cache.evict_all()

    def check_memory_usage(self, resident_bytes: int) -> bool:
        """
        Clean up aggressively when resident memory passes the threshold.

        Args:
            resident_bytes: Resident memory of the process.

        Returns:
            True if a cleanup ran.
        """
        logger.debug(f"Memory usage: {resident_bytes / (1024 * 1024):.2f}MB")
        if resident_bytes <= MEMORY_THRESHOLD_BYTES:
            return False
        logger.warning("Memory usage exceeded threshold, forcing cleanup")
        self.perform_aggressive_cleanup()
        return True

    def perform_aggressive_cleanup(self) -> Optional[Future]:
        """
        Deload everything outside the window and prune the disk cache.

        Returns:
            Future of the background prune, or None without a current item.
        """
        if self.current_index is None:
            return None
        self.loading_window = LoadingWindow(self.current_index, self.window_size)
        removed = self.deload_distant_videos()
        logger.info(f"Cleaned up {removed} distant assets")
        return self._background_executor.submit(self.cache.prune_disk_cache)

    # -- lifecycle ------------------------------------------------------

    @property
    def current_cell(self) -> Optional[VideoCell]:
        if self.current_index is None:
            return None
        return self.cells.get(self.current_index)

    def view_will_disappear(self) -> None:
        """Pause playback when the feed leaves the screen."""
        cell = self.current_cell
        if cell is not None:
            cell.pause()

    def close(self) -> None:
        """Stop playback and the executors created here."""
        self.view_will_disappear()
        self.prefetcher.shutdown(wait=False)
        for executor in self._owned_executors:
            executor.shutdown(wait=False, cancel_futures=True)
