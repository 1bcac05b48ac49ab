"""Full-screen video cell of the feed."""

import itertools
from enum import Enum
from typing import Optional

from loguru import logger

from reelfeed.cache.asset import AssetStatus, MediaAsset
from reelfeed.cache.asset_cache import AssetCache
from reelfeed.models.events import FeedAction, FeedEvent, FeedEventBus
from reelfeed.models.video import VideoItem

_cell_ids = itertools.count(1)


class PlayerState(Enum):
    """Playback state shown by a cell."""

    EMPTY = 'empty'
    LOADING = 'loading'
    READY = 'ready'
    PLAYING = 'playing'
    PAUSED = 'paused'
    FAILED = 'failed'


class VideoCell:
    """
    Reusable cell that plays one video of the feed.

    The cell takes its asset from the cache and never retries a failed
    load: a failed asset leaves it in the FAILED state until reuse.
    User actions are forwarded to the event bus.
    """

    def __init__(self, event_bus: Optional[FeedEventBus] = None) -> None:
        self.cell_id = next(_cell_ids)
        self.event_bus = event_bus
        self.item: Optional[VideoItem] = None
        self.asset: Optional[MediaAsset] = None
        self.state = PlayerState.EMPTY
        self.error: Optional[str] = None
        self.play_count = 0

    def __repr__(self) -> str:
        video = self.item.id if self.item else None
        return f"VideoCell(#{self.cell_id}, video={video}, state={self.state.value})"

    @property
    def is_playing(self) -> bool:
        return self.state is PlayerState.PLAYING

    def configure(self, item: VideoItem, cache: AssetCache) -> None:
        """
        Bind the cell to a video and take its asset from the cache.

        Args:
            item: Video to display.
            cache: Cache providing the asset handle.
        """
        if self.item is not None:
            self.prepare_for_reuse()

        self.item = item
        url = item.media_url
        if url is None:
            logger.error(f"Invalid video URL for video: {item.id}")
            self.state = PlayerState.FAILED
            self.error = 'invalid media URL'
            return

        logger.debug(f"Configuring cell #{self.cell_id} with video {item.id}")
        self.asset = cache.get_or_create(url)
        self.state = PlayerState.LOADING
        self.refresh_status()

    def adopt_asset(self, asset: MediaAsset) -> PlayerState:
        """Swap in another handle for the same URL, keeping the player state."""
        self.asset = asset
        return self.refresh_status()

    def refresh_status(self) -> PlayerState:
        """
        Align the player state with the asset status.

        Returns:
            The updated state.
        """
        if self.asset is None:
            return self.state
        if self.asset.status is AssetStatus.FAILED:
            if self.state is not PlayerState.FAILED:
                logger.error(f"Player failed in cell #{self.cell_id}: {self.asset.error}")
            self.state = PlayerState.FAILED
            self.error = self.asset.error
        elif self.asset.status is AssetStatus.READY and self.state is PlayerState.LOADING:
            self.state = PlayerState.READY
        return self.state

    def play(self) -> None:
        """Start or resume playback."""
        if self.asset is None or self.refresh_status() is PlayerState.FAILED:
            return
        self.state = PlayerState.PLAYING

    def pause(self) -> None:
        """Pause playback."""
        if self.state is PlayerState.PLAYING:
            self.state = PlayerState.PAUSED

    def restart(self) -> None:
        """Play from the beginning (also used to loop at the end)."""
        if self.asset is None:
            return
        self.play_count += 1
        self.play()

    def prepare_for_reuse(self) -> None:
        """Release the video so the cell can show another one."""
        self.pause()
        self.item = None
        self.asset = None
        self.error = None
        self.play_count = 0
        self.state = PlayerState.EMPTY

    def tap(self, action: FeedAction) -> bool:
        """
        Signal a user action on the displayed video.

        Returns:
            True if the event was emitted.
        """
        if self.item is None or self.event_bus is None:
            return False
        self.event_bus.emit(FeedEvent(action, self.item))
        return True
