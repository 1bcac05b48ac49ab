"""Paginated video feed sources."""

import json
import urllib.parse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from reelfeed.api.exceptions import (
    FeedConfigurationError,
    FeedConnectionError,
    FeedResponseError,
)
from reelfeed.config.settings import PAGE_SIZE, REQUEST_TIMEOUT_SECONDS
from reelfeed.models.video import VideoItem, parse_timestamp


@dataclass
class FeedPage:
    """
    One page of the feed.

    Attributes:
        items: Valid videos of the page, newest first.
        cursor: Id of the last document of the page, to start the next one after.
        document_count: Number of documents returned, valid or not.
    """

    items: List[VideoItem] = field(default_factory=list)
    cursor: Optional[str] = None
    document_count: int = 0

    @property
    def has_more(self) -> bool:
        """An empty page marks the end of the feed."""
        return self.document_count > 0


def _split_document(document: Dict[str, Any]) -> tuple:
    """Return (id, fields) for {'id', 'data'} or flat documents."""
    doc_id = document.get('id')
    if isinstance(document.get('data'), dict):
        return doc_id, document['data']
    return doc_id, {k: v for k, v in document.items() if k != 'id'}


def page_from_documents(documents: List[Dict[str, Any]]) -> FeedPage:
    """
    Convert raw documents into a FeedPage, skipping invalid ones.

    Args:
        documents: Documents in feed order.

    Returns:
        FeedPage whose cursor is the id of the last raw document.
    """
    items = []
    last_id = None
    for document in documents:
        if not isinstance(document, dict):
            logger.warning(f"Skipping malformed document: {document!r}")
            continue
        doc_id, data = _split_document(document)
        last_id = doc_id if doc_id is not None else last_id
        item = VideoItem.from_document(doc_id, data)
        if item is not None:
            items.append(item)
    return FeedPage(items=items, cursor=last_id, document_count=len(documents))


class StaticFeedSource:
    """
    In-memory document collection queried like the feed backend.

    Documents are ordered by created_at descending; documents without a
    valid created_at are not part of the ordered query.
    """

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None) -> None:
        """
        Initialize with a list of documents.

        Args:
            documents: Documents as {'id', 'data'} or flat dicts with an 'id'.
        """
        self._documents: List[Dict[str, Any]] = list(documents or [])

    @classmethod
    def from_json_file(cls, path: Path) -> "StaticFeedSource":
        """
        Load documents from a JSON file.

        The file holds a list of documents or {"documents": [...]}.

        Raises:
            FeedConfigurationError: If the file cannot be read or parsed.
        """
        try:
            payload = json.loads(Path(path).read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            raise FeedConfigurationError(f"Cannot load feed file {path}: {e}") from e
        if isinstance(payload, dict):
            payload = payload.get('documents', [])
        if not isinstance(payload, list):
            raise FeedConfigurationError(f"Feed file {path} must contain a list of documents")
        return cls(payload)

    def add_document(self, document: Dict[str, Any]) -> None:
        """Add a document, as a real-time insert would."""
        self._documents.append(document)

    def _ordered(self) -> List[Dict[str, Any]]:
        dated = []
        for document in self._documents:
            _, data = _split_document(document)
            created_at = parse_timestamp(data.get('created_at')) if isinstance(data, dict) else None
            if created_at is not None:
                dated.append((created_at, document))
        dated.sort(key=lambda pair: pair[0], reverse=True)
        return [document for _, document in dated]

    def fetch_page(self, cursor: Optional[str] = None, limit: int = PAGE_SIZE) -> FeedPage:
        """
        Return the next page after cursor.

        Args:
            cursor: Id of the last document already seen (None for the first page).
            limit: Maximum number of documents.

        Returns:
            FeedPage (empty if the cursor is unknown or the feed is exhausted).
        """
        ordered = self._ordered()
        start = 0
        if cursor is not None:
            ids = [_split_document(document)[0] for document in ordered]
            if cursor not in ids:
                logger.warning(f"Unknown feed cursor: {cursor}")
                return FeedPage()
            start = ids.index(cursor) + 1
        return page_from_documents(ordered[start:start + limit])


class FeedClient:
    """
    HTTP client for the document store's video collection.

    Attributes:
        base_url: Base URL of the feed API.
        api_key: Bearer token sent with each request.
        timeout: Request timeout in seconds.
    """

    VIDEOS_ENDPOINT = '/videos'
    ORDER_FIELD = 'created_at'

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS
    ) -> None:
        """
        Initialize the feed client.

        Args:
            base_url: Base URL of the feed API.
            api_key: Optional bearer token.
            timeout: Request timeout in seconds.
        """
        self.base_url = (base_url or '').rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

    def build_url(self, cursor: Optional[str] = None, limit: int = PAGE_SIZE) -> str:
        """
        Build the URL of a page query.

        Args:
            cursor: Id of the document to start after.
            limit: Page size.

        Returns:
            Full URL for the request.
        """
        params = {
            'order_by': self.ORDER_FIELD,
            'direction': 'desc',
            'limit': limit,
        }
        if cursor is not None:
            params['start_after'] = cursor
        return f'{self.base_url}{self.VIDEOS_ENDPOINT}?{urllib.parse.urlencode(params)}'

    def fetch_page(self, cursor: Optional[str] = None, limit: int = PAGE_SIZE) -> FeedPage:
        """
        Fetch one page of videos, newest first.

        Args:
            cursor: Id of the last document already seen (None for the first page).
            limit: Maximum number of documents.

        Returns:
            FeedPage with the valid videos of the page.

        Raises:
            FeedConfigurationError: If no base URL is configured.
            FeedConnectionError: On network errors.
            FeedResponseError: On HTTP errors or an unexpected payload.
        """
        if not self.base_url:
            raise FeedConfigurationError("Feed API base URL missing")

        url = self.build_url(cursor, limit)
        headers = {'Accept': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'

        try:
            response = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise FeedConnectionError(f"Request error: {e}") from e

        if response.status_code != 200:
            raise FeedResponseError(f"Feed request error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise FeedResponseError(f"Invalid JSON in feed response: {e}") from e

        documents = payload.get('documents') if isinstance(payload, dict) else None
        if not isinstance(documents, list):
            raise FeedResponseError("Feed response has no 'documents' list")

        page = page_from_documents(documents)
        logger.debug(f"Fetched {len(page.items)}/{page.document_count} videos after cursor {cursor}")
        return page
