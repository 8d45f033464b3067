"""Closeable bounded queue connecting the pipeline stages."""

from __future__ import annotations

import queue
from threading import Event, Lock
from typing import Generic, Iterator, TypeVar

from ..errors import CycleCancelled, QueueClosed

T = TypeVar("T")

# Granularity at which blocked puts/gets notice cancellation
POLL_INTERVAL = 0.05


class WorkQueue(Generic[T]):
    """Bounded FIFO with explicit close, modelled after a Go channel.

    ``put`` blocks while the queue is full, which is what propagates
    backpressure from consumers to producers. ``close`` may only be called
    once every producer has finished; after that ``put`` raises
    :class:`QueueClosed` and consumers drain the remaining items before
    their iteration ends. Both operations raise :class:`CycleCancelled`
    once ``cancel`` is set.
    """

    def __init__(self, maxsize: int = 1, name: str = "queue") -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self.name = name
        self._queue: queue.Queue[T] = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._lock = Lock()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def close(self) -> None:
        with self._lock:
            if self._closed:
                raise QueueClosed(f"{self.name} already closed")
            self._closed = True

    def put(self, item: T, cancel: Event | None = None) -> None:
        while True:
            if self.closed:
                raise QueueClosed(f"put on closed {self.name}")
            if cancel is not None and cancel.is_set():
                raise CycleCancelled(f"put on {self.name} cancelled")
            try:
                self._queue.put(item, timeout=POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def get(self, cancel: Event | None = None) -> tuple[T | None, bool]:
        """Return ``(item, True)`` or ``(None, False)`` once closed and drained."""

        while True:
            if cancel is not None and cancel.is_set():
                raise CycleCancelled(f"get on {self.name} cancelled")
            try:
                return self._queue.get(timeout=POLL_INTERVAL), True
            except queue.Empty:
                # close() happens after the last put returned, so closed+empty is final
                if self.closed and self._queue.empty():
                    return None, False

    def iter(self, cancel: Event | None = None) -> Iterator[T]:
        while True:
            item, ok = self.get(cancel)
            if not ok:
                return
            yield item  # type: ignore[misc]

    def qsize(self) -> int:
        return self._queue.qsize()


__all__ = ["POLL_INTERVAL", "WorkQueue"]
