"""Pytest configuration and fixtures."""

from concurrent.futures import Executor, Future
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

import pytest

from reelfeed.cache.asset import AssetStatus, LoadResult, MediaAsset
from reelfeed.cache.asset_cache import AssetCache
from reelfeed.feed.dispatcher import MainQueue
from reelfeed.feed.prefetcher import Prefetcher
from reelfeed.models.video import VideoItem

BASE_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class InlineExecutor(Executor):
    """Runs every submitted call immediately on the calling thread."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class DeferredExecutor(Executor):
    """Queues submitted calls until run_all() is called."""

    def __init__(self) -> None:
        self.queued: List[tuple] = []

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        self.queued.append((future, fn, args, kwargs))
        return future

    def run_all(self) -> int:
        ran = 0
        queued, self.queued = self.queued, []
        for future, fn, args, kwargs in queued:
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)
            ran += 1
        return ran


class StubAsset(MediaAsset):
    """MediaAsset resolving without I/O; URLs containing 'broken' fail."""

    size = 1000

    def load(self, timeout: float = 0) -> LoadResult:
        if 'broken' in self.url:
            self.status = AssetStatus.FAILED
            self.error = 'HTTP 404'
        else:
            self.status = AssetStatus.READY
            self.content_length = self.size
        return LoadResult(self.status, self.error)

    def iter_bytes(self, limit: Optional[int] = None, chunk_size: int = 10, timeout: float = 0):
        total = self.size if limit is None else min(limit, self.size)
        for start in range(0, total, chunk_size):
            yield b'x' * min(chunk_size, total - start)


class FakeClock:
    """Settable monotonic clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_document(
    doc_id: str,
    minutes_ago: int = 0,
    storage_path: Optional[str] = None,
    **fields
) -> dict:
    """Build a feed document as served by the document store."""
    data = {
        'creator_id': 'creator-1',
        'storage_path': storage_path or f'https://cdn.example.com/videos/{doc_id}.mp4',
        'created_at': (BASE_TIME - timedelta(minutes=minutes_ago)).isoformat(),
        'likes_count': 0,
    }
    data.update(fields)
    return {'id': doc_id, 'data': data}


def make_item(item_id: str, storage_path: Optional[str] = None, **kwargs) -> VideoItem:
    """Build a VideoItem with a valid media URL."""
    return VideoItem(
        id=item_id,
        creator_id=kwargs.pop('creator_id', 'creator-1'),
        storage_path=storage_path or f'https://cdn.example.com/videos/{item_id}.mp4',
        created_at=kwargs.pop('created_at', BASE_TIME),
        **kwargs
    )


@pytest.fixture
def document_factory() -> Callable[..., dict]:
    """Factory for feed documents."""
    return make_document


@pytest.fixture
def item_factory() -> Callable[..., VideoItem]:
    """Factory for VideoItems."""
    return make_item


@pytest.fixture
def feed_documents() -> List[dict]:
    """Ten documents, v0 newest."""
    return [make_document(f'v{i}', minutes_ago=i) for i in range(10)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def main_queue() -> MainQueue:
    return MainQueue()


@pytest.fixture
def inline_executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture
def deferred_executor() -> DeferredExecutor:
    return DeferredExecutor()


@pytest.fixture
def cache_dir(tmp_path):
    """Empty disk cache directory."""
    return tmp_path / 'VideoCache'


@pytest.fixture
def asset_cache(cache_dir) -> AssetCache:
    """AssetCache with stub assets and default limits."""
    return AssetCache(cache_dir=cache_dir, asset_factory=StubAsset)


@pytest.fixture
def prefetcher(asset_cache, main_queue, inline_executor) -> Prefetcher:
    """Prefetcher running loads inline."""
    return Prefetcher(asset_cache, main_queue, executor=inline_executor)


def drain_all(queue: MainQueue) -> int:
    """Drain until no callback is left."""
    total = 0
    while True:
        ran = queue.drain()
        if ran == 0:
            return total
        total += ran


def items_of(documents: Iterable[dict]) -> List[VideoItem]:
    return [VideoItem.from_document(d['id'], d['data']) for d in documents]
