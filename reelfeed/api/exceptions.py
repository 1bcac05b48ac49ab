"""Errors raised by feed sources."""


class FeedError(Exception):
    """Base class for all feed source errors."""

    pass


class FeedConfigurationError(FeedError):
    """Feed source misconfigured (missing base URL, unreadable file, etc.)."""

    pass


class FeedConnectionError(FeedError):
    """Could not reach the feed backend (network, timeout, etc.)."""

    pass


class FeedResponseError(FeedError):
    """Backend answered with an error status or an unexpected payload."""

    pass
