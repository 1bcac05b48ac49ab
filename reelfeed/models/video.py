"""Video data model for the reelfeed package."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from loguru import logger

MEDIA_URL_SCHEMES = {'http', 'https', 'file'}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert a document timestamp to an aware datetime.

    Accepts datetime objects, ISO-8601 strings and epoch seconds.
    Returns None for anything else.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _as_count(value: Any) -> int:
    """Read a counter field, defaulting to 0 for missing or bad values."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    return 0


def format_count(count: int) -> str:
    """
    Format a counter for display.

    Args:
        count: Counter value.

    Returns:
        '999', '1.2K' or '3.4M' style string.
    """
    if count < 1000:
        return str(count)
    if count < 1_000_000:
        return f"{count / 1000:.1f}K"
    return f"{count / 1_000_000:.1f}M"


@dataclass
class VideoItem:
    """
    One video of the feed with its counters and viewer state.

    Identity and media location never change after creation. Counters are
    updated optimistically on user actions and reconciled later with the
    counts reported by the backend.
    """

    # Identity
    id: str
    creator_id: str
    storage_path: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Content
    caption: Optional[str] = None
    title: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    # Counters
    views_count: int = 0
    likes_count: int = 0
    comments_count: int = 0
    bookmarks_count: int = 0

    # Viewer state
    creator_username: str = ''
    creator_avatar_url: Optional[str] = None
    is_liked_by_current_user: bool = False
    is_bookmarked_by_current_user: bool = False

    @classmethod
    def from_document(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> Optional["VideoItem"]:
        """
        Build a VideoItem from a document store record.

        Args:
            doc_id: Document identifier.
            data: Document fields.

        Returns:
            The VideoItem, or None if required fields are missing or invalid.
        """
        if not doc_id or not isinstance(data, dict):
            logger.warning(f"Invalid document data for id: {doc_id}")
            return None

        creator_id = data.get('creator_id')
        storage_path = data.get('storage_path')
        created_at = parse_timestamp(data.get('created_at'))
        if not isinstance(creator_id, str) or not isinstance(storage_path, str) or created_at is None:
            logger.warning(f"Invalid document data for id: {doc_id}")
            return None

        tags = data.get('tags')
        return cls(
            id=str(doc_id),
            creator_id=creator_id,
            storage_path=storage_path,
            created_at=created_at,
            updated_at=parse_timestamp(data.get('updated_at')) or datetime.now(timezone.utc),
            caption=data.get('caption'),
            title=data.get('title'),
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
            views_count=_as_count(data.get('views_count')),
            likes_count=_as_count(data.get('likes_count')),
            comments_count=_as_count(data.get('comments_count')),
            bookmarks_count=_as_count(data.get('bookmarks_count')),
        )

    def to_document(self) -> Dict[str, Any]:
        """
        Serialize to document store fields.

        Returns:
            Dict with timestamps as ISO strings; optional fields only if set.
        """
        data: Dict[str, Any] = {
            'creator_id': self.creator_id,
            'storage_path': self.storage_path,
            'views_count': self.views_count,
            'likes_count': self.likes_count,
            'comments_count': self.comments_count,
            'bookmarks_count': self.bookmarks_count,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }
        if self.caption is not None:
            data['caption'] = self.caption
        if self.title is not None:
            data['title'] = self.title
        if self.tags:
            data['tags'] = list(self.tags)
        return data

    @property
    def media_url(self) -> Optional[str]:
        """Return the storage path if it is a usable media URL, else None."""
        parsed = urlparse(self.storage_path or '')
        if parsed.scheme not in MEDIA_URL_SCHEMES:
            return None
        if parsed.scheme == 'file':
            return self.storage_path if parsed.path else None
        return self.storage_path if parsed.netloc else None

    @property
    def hashtags(self) -> str:
        """Tags rendered as '#tag #other'."""
        return ' '.join(f"#{tag}" for tag in self.tags)

    def update_metadata(
        self,
        creator_username: Optional[str] = None,
        creator_avatar_url: Optional[str] = None,
        is_liked: Optional[bool] = None,
        is_bookmarked: Optional[bool] = None,
    ) -> None:
        """Apply creator info and viewer interaction flags fetched separately."""
        if creator_username is not None:
            self.creator_username = creator_username
        if creator_avatar_url is not None:
            self.creator_avatar_url = creator_avatar_url
        if is_liked is not None:
            self.is_liked_by_current_user = is_liked
        if is_bookmarked is not None:
            self.is_bookmarked_by_current_user = is_bookmarked

    def update_like_status(self, is_liked: bool) -> None:
        """
        Optimistically toggle the like state and adjust the counter.

        Args:
            is_liked: New like state for the current viewer.
        """
        if is_liked == self.is_liked_by_current_user:
            return
        self.is_liked_by_current_user = is_liked
        self.likes_count = max(0, self.likes_count + (1 if is_liked else -1))

    def update_bookmark_status(self, is_bookmarked: bool) -> None:
        """
        Optimistically toggle the bookmark state and adjust the counter.

        Args:
            is_bookmarked: New bookmark state for the current viewer.
        """
        if is_bookmarked == self.is_bookmarked_by_current_user:
            return
        self.is_bookmarked_by_current_user = is_bookmarked
        self.bookmarks_count = max(0, self.bookmarks_count + (1 if is_bookmarked else -1))

    def update_comment_count(self, delta: int) -> None:
        """Adjust the comment counter after a comment is added or deleted."""
        self.comments_count = max(0, self.comments_count + delta)

    def reconcile_counts(
        self,
        likes: Optional[int] = None,
        comments: Optional[int] = None,
        bookmarks: Optional[int] = None,
        views: Optional[int] = None,
    ) -> bool:
        """
        Overwrite counters with the values reported by the backend.

        Returns:
            True if any counter changed.
        """
        changed = False
        for name, value in (
            ('likes_count', likes),
            ('comments_count', comments),
            ('bookmarks_count', bookmarks),
            ('views_count', views),
        ):
            if value is None:
                continue
            value = max(0, value)
            if getattr(self, name) != value:
                setattr(self, name, value)
                changed = True
        if changed:
            self.updated_at = datetime.now(timezone.utc)
        return changed
