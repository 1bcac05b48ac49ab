"""Configuration and CLI handling."""

from reelfeed.config.settings import (
    WINDOW_SIZE,
    MEMORY_COUNT_LIMIT,
    MEMORY_COST_LIMIT,
    DISK_CACHE_LIMIT,
    DEFAULT_CACHE_DIR,
    CLEANUP_INTERVAL_SECONDS,
    PAGE_SIZE,
    LOAD_MORE_THRESHOLD,
    MEMORY_THRESHOLD_BYTES,
    REQUEST_TIMEOUT_SECONDS,
)
from reelfeed.config.context import (
    FeedContext,
    get_context,
    set_context,
    feed_context,
)
from reelfeed.config.cli import (
    CLIArgs,
    create_parser,
    parse_arguments,
    args_to_cli_args,
)

__all__ = [
    "WINDOW_SIZE",
    "MEMORY_COUNT_LIMIT",
    "MEMORY_COST_LIMIT",
    "DISK_CACHE_LIMIT",
    "DEFAULT_CACHE_DIR",
    "CLEANUP_INTERVAL_SECONDS",
    "PAGE_SIZE",
    "LOAD_MORE_THRESHOLD",
    "MEMORY_THRESHOLD_BYTES",
    "REQUEST_TIMEOUT_SECONDS",
    "FeedContext",
    "get_context",
    "set_context",
    "feed_context",
    "CLIArgs",
    "create_parser",
    "parse_arguments",
    "args_to_cli_args",
]
