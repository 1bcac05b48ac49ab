"""Entry point for the reelfeed package.

Run with: python -m reelfeed <command>
"""

import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from tqdm import tqdm

from reelfeed.api import FeedClient, FeedError, StaticFeedSource
from reelfeed.cache import AssetCache
from reelfeed.config import (
    CLIArgs,
    FeedContext,
    REQUEST_TIMEOUT_SECONDS,
    args_to_cli_args,
    feed_context,
    parse_arguments,
)
from reelfeed.feed import FeedController, FeedSource
from reelfeed.ui import ConsoleUI, display_cache_summary, display_feed_state, format_bytes


def setup_logging(debug: bool = False) -> None:
    """
    Configure loguru logging.

    Args:
        debug: If True, enable debug-level logging.
    """
    logger.remove()
    level = "DEBUG" if debug else "INFO"
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
    logger.add(
        "reelfeed.log",
        rotation="10 MB",
        retention="7 days",
        level="DEBUG",
    )


def build_source(cli_args: CLIArgs) -> FeedSource:
    """
    Create the feed source named on the command line.

    Args:
        cli_args: Parsed CLI arguments.

    Returns:
        FeedClient for an http(s) source, StaticFeedSource for a JSON file.

    Raises:
        FeedConfigurationError: If the JSON file cannot be loaded.
    """
    if cli_args.source_is_url:
        return FeedClient(cli_args.source, api_key=os.getenv("REELFEED_API_KEY"))
    return StaticFeedSource.from_json_file(Path(cli_args.source).expanduser())


def build_cache(ctx: FeedContext, prune_on_init: bool = True) -> AssetCache:
    """Create the asset cache described by ctx."""
    return AssetCache(
        cache_dir=ctx.cache_dir,
        count_limit=ctx.count_limit,
        cost_limit=ctx.cost_limit,
        disk_limit=ctx.disk_limit,
        prune_on_init=prune_on_init,
    )


def _wait_for_page(controller: FeedController) -> None:
    """Drain the main queue until the pending page fetch has been applied."""
    while controller.is_loading_more:
        if controller.main_queue.drain(timeout=REQUEST_TIMEOUT_SECONDS) == 0:
            logger.warning("Timed out waiting for the feed page")
            return


def run_simulation(cli_args: CLIArgs, ctx: FeedContext, console: ConsoleUI) -> int:
    """
    Scroll through the feed one video at a time and show the window state.

    Returns:
        Exit code.
    """
    source = build_source(cli_args)
    controller = FeedController.from_context(source, ctx)
    try:
        controller.fetch_videos(initial=True)
        _wait_for_page(controller)
        if not controller.items:
            console.print_warning("The feed is empty")
            return 0

        index = max(cli_args.start_index, 0)
        for _ in range(cli_args.steps):
            if index >= len(controller.items):
                if not controller.has_more:
                    break
                controller.fetch_videos(initial=False)
                _wait_for_page(controller)
                if index >= len(controller.items):
                    break

            controller.begin_scrolling()
            offset = index * controller.item_height
            controller.did_scroll(offset)
            controller.did_end_decelerating(offset)
            controller.main_queue.drain(timeout=0.5)

            console.video_header(index, len(controller.items))
            display_feed_state(controller, console)
            index += 1

        display_cache_summary(controller.cache, console)
    finally:
        controller.close()
    return 0


def run_warm(cli_args: CLIArgs, ctx: FeedContext, console: ConsoleUI) -> int:
    """
    Load every video of the first page into the cache.

    Returns:
        Exit code.
    """
    source = build_source(cli_args)
    page = source.fetch_page(None, ctx.page_size)
    cache = build_cache(ctx)

    loaded = 0
    failed = 0
    with tqdm(page.items, desc="Warming video cache", unit="video") as pbar:
        for item in pbar:
            url = item.media_url
            if url is None:
                logger.warning(f"Invalid URL for video {item.id}, skipped")
                failed += 1
                continue
            asset = cache.asset_factory(url)
            result = asset.load()
            if not result.ready:
                logger.warning(f"Failed to load video {item.id}: {result.error}")
                failed += 1
                continue
            cache.insert(asset, url)
            if ctx.prefetch_bytes > 0 and cache.cached_file(url) is None:
                cache.write_file(url, asset.iter_bytes(ctx.prefetch_bytes))
            loaded += 1

    console.print_success(f"Loaded {loaded} videos ({failed} failed)")
    display_cache_summary(cache, console)
    return 0 if failed == 0 else 1


def run_prune(ctx: FeedContext, console: ConsoleUI) -> int:
    """Prune the disk cache and show what is left."""
    cache = build_cache(ctx, prune_on_init=False)
    removed = cache.prune_disk_cache()
    console.print_success(
        f"Removed {len(removed)} cache files, {format_bytes(cache.disk_usage())} left"
    )
    display_cache_summary(cache, console)
    return 0


def run_clear(ctx: FeedContext, console: ConsoleUI) -> int:
    """Drop every cached asset."""
    cache = build_cache(ctx, prune_on_init=False)
    cache.evict_all()
    console.print_success(f"Cleared video cache at {cache.cache_dir}")
    return 0


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the feed tools.

    Args:
        argv: Argument list (None for sys.argv).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    load_dotenv()
    namespace = parse_arguments(argv)
    cli_args = args_to_cli_args(namespace)

    setup_logging(cli_args.debug)
    console = ConsoleUI()

    try:
        ctx = FeedContext.from_env(
            cache_dir=cli_args.cache_dir,
            prefetch_bytes=cli_args.prefetch_bytes,
            debug=cli_args.debug or None,
        )
    except ValueError as e:
        console.print_error(f"Invalid configuration: {e}")
        return 1

    with feed_context(ctx):
        logger.info(f"Running {cli_args.command} with cache at {ctx.cache_dir}")
        try:
            if cli_args.command == 'simulate':
                return run_simulation(cli_args, ctx, console)
            if cli_args.command == 'warm':
                return run_warm(cli_args, ctx, console)
            if cli_args.command == 'prune':
                return run_prune(ctx, console)
            return run_clear(ctx, console)
        except FeedError as e:
            logger.error(f"Feed error: {e}")
            console.print_error(str(e))
            return 1


if __name__ == "__main__":
    sys.exit(main())
