"""Loading window: which feed indices should stay resident."""

from dataclasses import dataclass
from typing import Set

from reelfeed.config.settings import WINDOW_SIZE


@dataclass(frozen=True)
class LoadingWindow:
    """
    Contiguous range of indices kept loaded around the playing video.

    Both eviction and prefetch ask this object, so the distance rule
    lives in one place.

    Attributes:
        center_index: Index of the video being watched.
        window_size: Odd number of indices in a full window.
    """

    center_index: int
    window_size: int = WINDOW_SIZE

    def __post_init__(self) -> None:
        if self.window_size <= 0 or self.window_size % 2 == 0:
            raise ValueError(f"window_size must be a positive odd number, got {self.window_size}")

    @property
    def radius(self) -> int:
        """Number of indices kept on each side of the center."""
        return self.window_size // 2

    def index_range(self, total_count: int) -> range:
        """
        Indices of the window clipped to [0, total_count).

        Args:
            total_count: Number of items in the feed.

        Returns:
            A (possibly empty) range.
        """
        start = max(0, self.center_index - self.radius)
        stop = min(total_count, self.center_index + self.radius + 1)
        return range(start, max(start, stop))

    def indices(self, total_count: int) -> Set[int]:
        """Set form of index_range()."""
        return set(self.index_range(total_count))

    def should_keep_loaded(self, index: int, total_count: int) -> bool:
        """
        Check whether the video at index belongs to the window.

        Args:
            index: Feed index to test.
            total_count: Number of items in the feed.

        Returns:
            True if the index is valid and close enough to the center.
        """
        if index < 0 or index >= total_count:
            return False
        return abs(index - self.center_index) <= self.radius


def window(center_index: int, total_count: int, window_size: int = WINDOW_SIZE) -> Set[int]:
    """Indices to keep resident around center_index."""
    return LoadingWindow(center_index, window_size).indices(total_count)


def should_keep_loaded(
    index: int,
    center_index: int,
    total_count: int,
    window_size: int = WINDOW_SIZE
) -> bool:
    """Membership test equivalent to ``index in window(center_index, total_count)``."""
    return LoadingWindow(center_index, window_size).should_keep_loaded(index, total_count)
