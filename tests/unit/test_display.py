"""Tests for display functions."""

from io import StringIO

import pytest
from rich.console import Console

from reelfeed.api.feed_client import StaticFeedSource
from reelfeed.feed.controller import FeedController
from reelfeed.ui.console import ConsoleUI
from reelfeed.ui.display import (
    build_feed_table,
    display_cache_summary,
    display_feed_state,
    format_bytes,
)

from conftest import drain_all, items_of


@pytest.fixture
def recording_ui():
    """ConsoleUI writing to a buffer."""
    return ConsoleUI(Console(file=StringIO(), width=120, color_system=None))


def _output(ui: ConsoleUI) -> str:
    return ui.console.file.getvalue()


@pytest.fixture
def settled_controller(asset_cache, prefetcher, main_queue, inline_executor, feed_documents):
    ctrl = FeedController(
        StaticFeedSource(feed_documents),
        cache=asset_cache,
        prefetcher=prefetcher,
        main_queue=main_queue,
        fetch_executor=inline_executor,
        background_executor=inline_executor,
    )
    ctrl.append_items(items_of(feed_documents))
    ctrl.settle(4)
    drain_all(main_queue)
    return ctrl


class TestFormatBytes:
    """Tests for format_bytes."""

    @pytest.mark.parametrize("size,expected", [
        (0, "0 B"),
        (512, "512 B"),
        (1536, "1.5 KB"),
        (250 * 1024 * 1024, "250.0 MB"),
        (3 * 1024 ** 3, "3.0 GB"),
    ])
    def test_format(self, size, expected):
        assert format_bytes(size) == expected


class TestBuildFeedTable:
    """Tests for build_feed_table."""

    def test_rows_cover_window(self, settled_controller, recording_ui):
        """One row per video of the window."""
        table = build_feed_table(settled_controller, recording_ui)
        assert table.row_count == 5

    def test_empty_without_window(self, asset_cache, recording_ui):
        ctrl = FeedController(StaticFeedSource([]), cache=asset_cache)
        try:
            assert build_feed_table(ctrl, recording_ui).row_count == 0
        finally:
            ctrl.close()


class TestDisplayFeedState:
    """Tests for display_feed_state."""

    def test_shows_window_and_totals(self, settled_controller, recording_ui):
        display_feed_state(settled_controller, recording_ui)
        output = _output(recording_ui)
        assert "Feed window" in output
        assert "playing" in output
        assert "Videos: 10" in output

    def test_empty_feed_warning(self, asset_cache, recording_ui):
        ctrl = FeedController(StaticFeedSource([]), cache=asset_cache)
        try:
            display_feed_state(ctrl, recording_ui)
        finally:
            ctrl.close()
        assert "No videos" in _output(recording_ui)


class TestDisplayCacheSummary:
    """Tests for display_cache_summary."""

    def test_shows_usage(self, settled_controller, recording_ui):
        display_cache_summary(settled_controller.cache, recording_ui)
        output = _output(recording_ui)
        assert "Memory" in output
        assert "3/10" in output
        assert "Disk" in output
