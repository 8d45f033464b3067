"""Fetch-cycle orchestrator wiring search, the two worker pools and publishing."""

from __future__ import annotations

import time
from pathlib import Path
from threading import Event, Thread

import structlog

from .config import ConfigLocator, IngestionConfig, WorkerConfig
from .engine import (
    CommentProcessor,
    JobSourceClient,
    JsonLinesPublisher,
    Publisher,
    SQLitePublisher,
    StoryProcessor,
    WorkerPool,
    WorkQueue,
)
from .engine.channel import POLL_INTERVAL
from .errors import CycleCancelled, IngestionError, InternalError
from .infra import Cache, MemoryCache, SQLiteCache
from .logging_conf import get_logger
from .models import ProcessingStats


class FetchCycle:
    """One polling iteration: search → story pool → comment pool → summary.

    Ordering contract: the story queue is closed by the feeder once every
    candidate id was handed out; the comment queue is closed by the barrier
    thread only after every story worker has exited, so no story worker can
    ever put into a closed comment queue.
    """

    def __init__(
        self,
        client: JobSourceClient,
        publisher: Publisher,
        workers: WorkerConfig | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.publisher = publisher
        self.workers = workers or WorkerConfig()
        self.logger = logger or get_logger("fetch_cycle")

    def run(self, cancel: Event | None = None) -> ProcessingStats:
        cancel = cancel or Event()
        started = time.monotonic()
        self.logger.info("cycle_started")
        try:
            stories = self.client.search_hiring_threads()
        except IngestionError as exc:
            raise InternalError("failed to search hiring threads", exc) from exc
        self.logger.info("found_hiring_threads", count=len(stories))

        stats = ProcessingStats()
        story_queue: WorkQueue[int] = WorkQueue(self.workers.queue_size, name="story_queue")
        comment_queue: WorkQueue[int] = WorkQueue(self.workers.queue_size, name="comment_queue")
        comment_pool: WorkerPool[int] = WorkerPool("comment", self.workers.comment_workers)
        story_pool: WorkerPool[int] = WorkerPool("story", self.workers.story_workers)
        done = Event()

        comment_pool.start(
            comment_queue, CommentProcessor(self.client, self.publisher, stats), cancel
        )
        story_pool.start(
            story_queue, StoryProcessor(self.client, stats, comment_queue, cancel), cancel
        )
        feeder = Thread(
            target=self._feed_stories,
            args=(stories, story_queue, cancel),
            name="story-feeder",
            daemon=True,
        )
        barrier = Thread(
            target=self._close_when_drained,
            args=(story_pool, comment_queue, comment_pool, done),
            name="cycle-barrier",
            daemon=True,
        )
        feeder.start()
        barrier.start()

        try:
            self._wait_for_completion(done, cancel)
        except CycleCancelled:
            self.logger.warning("cycle_cancelled", **stats.as_dict())
            raise
        finally:
            # Abandon rather than drain; workers exit at their next queue operation
            story_pool.shutdown(wait=False)
            comment_pool.shutdown(wait=False)

        self.publisher.flush()
        self.logger.info(
            "cycle_completed",
            elapsed_seconds=round(time.monotonic() - started, 3),
            **stats.as_dict(),
        )
        return stats

    def _feed_stories(self, stories: list[int], story_queue: WorkQueue[int], cancel: Event) -> None:
        try:
            for story_id in stories:
                story_queue.put(story_id, cancel)
        except CycleCancelled:
            self.logger.debug("feeder_cancelled")
            return
        story_queue.close()

    @staticmethod
    def _close_when_drained(
        story_pool: WorkerPool[int],
        comment_queue: WorkQueue[int],
        comment_pool: WorkerPool[int],
        done: Event,
    ) -> None:
        story_pool.join()
        comment_queue.close()
        comment_pool.join()
        done.set()

    @staticmethod
    def _wait_for_completion(done: Event, cancel: Event) -> None:
        while not done.wait(POLL_INTERVAL):
            if cancel.is_set():
                break
        # cancelled workers also drain the pools, so done alone proves nothing
        if cancel.is_set():
            raise CycleCancelled("fetch cycle cancelled")


def create_cache(config: IngestionConfig, locator: ConfigLocator) -> Cache:
    if config.cache.backend == "memory":
        return MemoryCache(default_ttl=config.cache.ttl)
    return SQLiteCache(locator.resolve(config.cache.path), default_ttl=config.cache.ttl)


def create_publisher(config: IngestionConfig, locator: ConfigLocator) -> Publisher:
    outputs_dir = locator.resolve(Path(config.publisher.outputs_dir))
    if config.publisher.backend == "jsonl":
        return JsonLinesPublisher(outputs_dir, config.publisher.name)
    if config.publisher.backend == "sqlite":
        return SQLitePublisher(outputs_dir / f"{config.publisher.name}.db")
    raise ValueError(f"Unsupported publisher backend: {config.publisher.backend}")


__all__ = ["FetchCycle", "create_cache", "create_publisher"]
