"""User actions raised by feed cells."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set, Tuple

from loguru import logger

from reelfeed.models.video import VideoItem


class FeedAction(Enum):
    """Actions a viewer can take on a video."""

    LIKE = 'like'
    COMMENT = 'comment'
    BOOKMARK = 'bookmark'
    SHARE = 'share'
    OPEN_PROFILE = 'open_profile'


@dataclass(frozen=True)
class FeedEvent:
    """A user action on a given video."""

    action: FeedAction
    item: VideoItem


Subscriber = Callable[[FeedEvent], None]


class FeedEventBus:
    """
    Delivers feed events to subscribers.

    The feed core only signals actions; handling them (writing likes,
    opening a comment sheet, sharing) is left to subscribers.
    """

    def __init__(self) -> None:
        """Initialize with no subscribers."""
        self._subscribers: List[Tuple[Subscriber, Optional[Set[FeedAction]]]] = []

    def subscribe(
        self,
        callback: Subscriber,
        actions: Optional[Iterable[FeedAction]] = None
    ) -> Callable[[], None]:
        """
        Register a callback.

        Args:
            callback: Called with each matching FeedEvent.
            actions: Actions to receive. None means all actions.

        Returns:
            A function that removes the subscription.
        """
        entry = (callback, set(actions) if actions is not None else None)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def emit(self, event: FeedEvent) -> int:
        """
        Deliver an event to matching subscribers.

        A subscriber that raises is logged and skipped.

        Returns:
            Number of subscribers that handled the event.
        """
        delivered = 0
        for callback, actions in list(self._subscribers):
            if actions is not None and event.action not in actions:
                continue
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber failed on {event.action.value} for video {event.item.id}: {e}")
        return delivered

    def __len__(self) -> int:
        """Return the number of subscriptions."""
        return len(self._subscribers)
