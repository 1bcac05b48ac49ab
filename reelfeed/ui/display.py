"""Display functions for feed and cache state."""

from typing import TYPE_CHECKING, Optional

from rich.table import Table

from reelfeed.models.video import format_count
from reelfeed.ui.console import ConsoleUI, console

if TYPE_CHECKING:
    from reelfeed.cache.asset_cache import AssetCache
    from reelfeed.feed.controller import FeedController

_STATE_STYLES = {
    'playing': 'green',
    'paused': 'yellow',
    'failed': 'red',
    'loading': 'cyan',
}


def format_bytes(size: int) -> str:
    """
    Format a byte count with a binary unit.

    Args:
        size: Number of bytes.

    Returns:
        String like "512 B", "1.5 KB" or "250.0 MB".
    """
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024 or unit == "GB":
            break
    return f"{value:.1f} {unit}"


def build_feed_table(controller: "FeedController", ui: ConsoleUI = console) -> Table:
    """
    Build a table of the videos around the playing index.

    Rows cover the loading window; the playing row is marked with an arrow.

    Args:
        controller: Controller to describe.
        ui: Console used to create the table.

    Returns:
        Rich Table with one row per video of the window.
    """
    table = ui.create_table("Feed window", ["", "Index", "Video", "Creator", "Likes", "Cached", "Player"])
    window = controller.loading_window
    if window is None:
        return table

    for index in sorted(window.indices(len(controller.items))):
        item = controller.items[index]
        url = item.media_url
        cached = "yes" if url is not None and url in controller.cache else "no"
        cell = controller.cells.get(index)
        state = cell.state.value if cell is not None else "-"
        style = _STATE_STYLES.get(state)
        table.add_row(
            "▶" if index == controller.current_index else "",
            str(index),
            item.title or item.id,
            f"@{item.creator_username}" if item.creator_username else item.creator_id,
            format_count(item.likes_count),
            cached,
            f"[{style}]{state}[/{style}]" if style else state,
        )
    return table


def display_feed_state(controller: "FeedController", ui: ConsoleUI = console) -> None:
    """
    Display the window around the playing video and the cache totals.

    Args:
        controller: Controller to describe.
        ui: Console to print on.
    """
    if not controller.items:
        ui.print_warning("No videos in the feed.")
        return

    ui.print_table(build_feed_table(controller, ui))
    ui.print_counters([
        ("Videos", len(controller.items)),
        ("Cached", len(controller.cache)),
        ("Cells", len(controller.cells)),
        ("More", 'yes' if controller.has_more else 'no'),
    ])


def display_cache_summary(cache: "AssetCache", ui: ConsoleUI = console, title: Optional[str] = None) -> None:
    """
    Display memory and disk usage of a cache.

    Args:
        cache: Cache to describe.
        ui: Console to print on.
        title: Optional rule title.
    """
    ui.rule(f"[bold blue]{title or 'Video cache'}[/bold blue]")
    table = ui.create_table("Usage", ["Tier", "Entries", "Size", "Limit"])
    table.add_row(
        "Memory",
        f"{len(cache)}/{cache.count_limit}",
        format_bytes(cache.total_cost),
        format_bytes(cache.cost_limit),
    )
    table.add_row(
        "Disk",
        str(len(cache.disk_files())),
        format_bytes(cache.disk_usage()),
        format_bytes(cache.disk_limit),
    )
    ui.print_table(table)
    stats = cache.stats
    ui.print_counters([
        ("Hits", stats.hits),
        ("Misses", stats.misses),
        ("Evictions", stats.evictions),
        ("Hit ratio", f"{stats.hit_ratio:.0%}"),
    ])
