"""Feed sources for the video document store."""

from reelfeed.api.exceptions import (
    FeedError,
    FeedConfigurationError,
    FeedConnectionError,
    FeedResponseError,
)
from reelfeed.api.feed_client import FeedPage, FeedClient, StaticFeedSource, page_from_documents

__all__ = [
    "FeedError",
    "FeedConfigurationError",
    "FeedConnectionError",
    "FeedResponseError",
    "FeedPage",
    "FeedClient",
    "StaticFeedSource",
    "page_from_documents",
]
