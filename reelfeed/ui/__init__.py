"""Console output for the feed tools."""

from reelfeed.ui.console import ConsoleUI, console
from reelfeed.ui.display import (
    format_bytes,
    build_feed_table,
    display_feed_state,
    display_cache_summary,
)

__all__ = [
    "ConsoleUI",
    "console",
    "format_bytes",
    "build_feed_table",
    "display_feed_state",
    "display_cache_summary",
]
