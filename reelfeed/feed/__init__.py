"""Feed playback: main queue, prefetching, cells and the scroll controller."""

from reelfeed.feed.dispatcher import MainQueue
from reelfeed.feed.prefetcher import Prefetcher
from reelfeed.feed.cell import PlayerState, VideoCell
from reelfeed.feed.controller import FeedController, FeedSource, ScrollState

__all__ = [
    "MainQueue",
    "Prefetcher",
    "PlayerState",
    "VideoCell",
    "FeedController",
    "FeedSource",
    "ScrollState",
]
