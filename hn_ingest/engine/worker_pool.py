"""Fixed-size worker pool draining a :class:`WorkQueue`."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from threading import Event, Lock
from typing import Callable, Generic, TypeVar

import structlog

from ..errors import CycleCancelled
from .channel import WorkQueue

T = TypeVar("T")


class WorkerPool(Generic[T]):
    """Run ``size`` long-lived workers, each looping over the same queue.

    The pool never grows or shrinks; one thread per worker is reserved in a
    dedicated executor. ``join`` is the fan-in barrier: it returns only after
    every worker has left its loop.
    """

    def __init__(self, name: str, size: int, logger: structlog.BoundLogger | None = None) -> None:
        if size < 1:
            raise ValueError("size must be >= 1")
        self.name = name
        self.size = size
        self.logger = logger or structlog.get_logger("hn_ingest").bind(component=f"{name}_pool")
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future[int]] = []
        self._lock = Lock()

    def start(self, source: WorkQueue[T], handler: Callable[[T], None], cancel: Event) -> None:
        with self._lock:
            if self._executor is not None:
                raise RuntimeError(f"{self.name} pool already started")
            self._executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix=self.name)
            self._futures = [
                self._executor.submit(self._run_worker, index, source, handler, cancel)
                for index in range(self.size)
            ]
        self.logger.debug("pool_started", workers=self.size)

    def _run_worker(
        self, index: int, source: WorkQueue[T], handler: Callable[[T], None], cancel: Event
    ) -> int:
        handled = 0
        try:
            for item in source.iter(cancel):
                try:
                    handler(item)
                except CycleCancelled:
                    raise
                except Exception as exc:  # noqa: BLE001
                    self.logger.error("worker_item_failed", worker=index, item=item, error=str(exc))
                handled += 1
        except CycleCancelled:
            self.logger.debug("worker_cancelled", worker=index, handled=handled)
        return handled

    def join(self, timeout: float | None = None) -> bool:
        """Block until every worker has exited; ``False`` on timeout."""

        with self._lock:
            futures = list(self._futures)
        if not futures:
            return True
        _, pending = wait_futures(futures, timeout=timeout)
        return not pending

    @property
    def running(self) -> int:
        with self._lock:
            return sum(1 for future in self._futures if not future.done())

    def handled(self) -> int:
        """Total items taken off the queue by workers that have finished."""

        with self._lock:
            return sum(f.result() for f in self._futures if f.done() and f.exception() is None)

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            executor = self._executor
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=True)


__all__ = ["WorkerPool"]
