"""Lazy media asset handles."""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Optional
from urllib.parse import unquote, urlparse

import requests
from loguru import logger

from reelfeed.config.settings import (
    ASSET_REQUEST_HEADERS,
    REQUEST_TIMEOUT_SECONDS,
    STREAM_CHUNK_SIZE,
)


class AssetStatus(Enum):
    """Load state of a media asset."""

    PENDING = 'pending'
    LOADING = 'loading'
    READY = 'ready'
    FAILED = 'failed'


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading an asset: ready, or failed with a reason."""

    status: AssetStatus
    error: Optional[str] = None

    @property
    def ready(self) -> bool:
        """True if the asset is playable."""
        return self.status is AssetStatus.READY


class MediaAsset:
    """
    Lazy, streamable handle on a video URL.

    Creating a handle never touches the network or the disk. load()
    resolves whether the media is playable and how many bytes it has;
    failures are recorded on the handle instead of being raised.

    Attributes:
        url: Media URL (http, https or file).
        headers: Extra request headers sent when loading.
        status: Current AssetStatus.
        error: Reason of the last failure, if any.
        content_length: Byte length once known.
        content_type: MIME type reported by the server.
    """

    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None) -> None:
        """
        Create the handle without loading anything.

        Args:
            url: Media URL.
            headers: Extra request headers (defaults to Accept: video/mp4).
        """
        self.url = url
        self.headers = dict(ASSET_REQUEST_HEADERS if headers is None else headers)
        self.status = AssetStatus.PENDING
        self.error: Optional[str] = None
        self.content_length: Optional[int] = None
        self.content_type: Optional[str] = None
        self.created_at = time.time()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"MediaAsset({self.url!r}, status={self.status.value})"

    @property
    def cost(self) -> int:
        """Byte cost used by the cache (0 until the length is known)."""
        return self.content_length or 0

    @property
    def is_local(self) -> bool:
        """True for file:// URLs."""
        return urlparse(self.url).scheme == 'file'

    @property
    def local_path(self) -> Optional[Path]:
        """Filesystem path for file:// URLs."""
        if not self.is_local:
            return None
        return Path(unquote(urlparse(self.url).path))

    def load(self, timeout: float = REQUEST_TIMEOUT_SECONDS) -> LoadResult:
        """
        Resolve playability and byte length.

        Safe to call from several threads; a READY asset is not reloaded.

        Args:
            timeout: Network timeout in seconds.

        Returns:
            LoadResult with READY or FAILED status.
        """
        with self._lock:
            if self.status is AssetStatus.READY:
                return LoadResult(AssetStatus.READY)

            self.status = AssetStatus.LOADING
            self.error = None
            if self.is_local:
                self._load_local()
            else:
                self._load_remote(timeout)

            if self.status is AssetStatus.READY:
                logger.debug(f"Asset ready: {self.url} ({self.cost} bytes)")
            else:
                logger.warning(f"Asset failed: {self.url}: {self.error}")
            return LoadResult(self.status, self.error)

    def _load_local(self) -> None:
        """Resolve a file:// asset from the filesystem."""
        path = self.local_path
        try:
            stat = path.stat()
        except OSError as e:
            self._fail(f"File not readable: {e}")
            return
        if not path.is_file():
            self._fail(f"Not a file: {path}")
            return
        self.content_length = stat.st_size
        self.status = AssetStatus.READY

    def _load_remote(self, timeout: float) -> None:
        """Resolve an HTTP(S) asset with HEAD, falling back to a ranged GET."""
        try:
            response = requests.head(
                self.url,
                headers=self.headers,
                timeout=timeout,
                allow_redirects=True
            )
            if response.status_code in (405, 501):
                response = requests.get(
                    self.url,
                    headers={**self.headers, 'Range': 'bytes=0-0'},
                    timeout=timeout,
                    stream=True
                )
                response.close()
        except requests.RequestException as e:
            self._fail(f"Request error: {e}")
            return

        if response.status_code not in (200, 206):
            self._fail(f"HTTP {response.status_code}")
            return

        self.content_type = response.headers.get('Content-Type')
        self.content_length = _content_length(response.headers)
        self.status = AssetStatus.READY

    def _fail(self, reason: str) -> None:
        self.status = AssetStatus.FAILED
        self.error = reason

    def iter_bytes(
        self,
        limit: Optional[int] = None,
        chunk_size: int = STREAM_CHUNK_SIZE,
        timeout: float = REQUEST_TIMEOUT_SECONDS
    ) -> Iterator[bytes]:
        """
        Stream the media bytes from the start.

        Args:
            limit: Stop after this many bytes (None for the whole file).
            chunk_size: Size of each read.
            timeout: Network timeout in seconds.

        Yields:
            Chunks of at most chunk_size bytes.

        Raises:
            OSError: If a local file cannot be read.
            requests.RequestException: On network or HTTP errors.
        """
        remaining = limit
        if self.is_local:
            with open(self.local_path, 'rb') as f:
                while remaining is None or remaining > 0:
                    size = chunk_size if remaining is None else min(chunk_size, remaining)
                    chunk = f.read(size)
                    if not chunk:
                        return
                    if remaining is not None:
                        remaining -= len(chunk)
                    yield chunk
            return

        headers = dict(self.headers)
        if limit is not None:
            headers['Range'] = f'bytes=0-{max(0, limit - 1)}'
        with requests.get(self.url, headers=headers, timeout=timeout, stream=True) as response:
            response.raise_for_status()
            for chunk in response.iter_content(chunk_size=chunk_size):
                if not chunk:
                    continue
                if remaining is not None:
                    chunk = chunk[:remaining]
                    remaining -= len(chunk)
                yield chunk
                if remaining is not None and remaining <= 0:
                    return


def _content_length(headers) -> Optional[int]:
    """Total length from Content-Range (ranged GET) or Content-Length."""
    content_range = headers.get('Content-Range', '')
    if '/' in content_range:
        total = content_range.rsplit('/', 1)[1]
        if total.isdigit():
            return int(total)
    length = headers.get('Content-Length')
    if length and str(length).isdigit():
        return int(length)
    return None
