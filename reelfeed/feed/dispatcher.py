"""Main-thread callback queue."""

import queue
import threading
from typing import Any, Callable, Optional

from loguru import logger


class MainQueue:
    """
    Callbacks posted from worker threads and run on the owning thread.

    Feed state (items, cells, the playing index) is only touched by the
    thread that created the queue. Background work posts its completion
    here with call_soon(); the owner applies it when it calls drain().
    """

    def __init__(self) -> None:
        """Bind the queue to the calling thread."""
        self._queue: "queue.SimpleQueue" = queue.SimpleQueue()
        self._owner = threading.get_ident()

    def call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        """Schedule fn(*args) on the owning thread. Safe from any thread."""
        self._queue.put((fn, args))

    def is_owner_thread(self) -> bool:
        """True when called from the thread that owns the queue."""
        return threading.get_ident() == self._owner

    def pending(self) -> int:
        """Approximate number of callbacks waiting."""
        return self._queue.qsize()

    def drain(self, timeout: Optional[float] = None) -> int:
        """
        Run every pending callback.

        Args:
            timeout: If set, wait up to this many seconds for the first
                callback when none is pending.

        Returns:
            Number of callbacks run.
        """
        if not self.is_owner_thread():
            raise RuntimeError("MainQueue.drain() called from a foreign thread")

        count = 0
        if timeout is not None and self._queue.empty():
            try:
                fn, args = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            self._run(fn, args)
            count += 1

        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            self._run(fn, args)
            count += 1

    @staticmethod
    def _run(fn: Callable[..., Any], args: tuple) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.error(f"Main queue callback {getattr(fn, '__name__', fn)} failed: {e}")
