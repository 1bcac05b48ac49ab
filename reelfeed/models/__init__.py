"""Data models for the video feed."""

from reelfeed.models.video import VideoItem, format_count
from reelfeed.models.events import FeedAction, FeedEvent, FeedEventBus

__all__ = ["VideoItem", "format_count", "FeedAction", "FeedEvent", "FeedEventBus"]
