"""Per-item bodies of the story and comment workers."""

from __future__ import annotations

from threading import Event

import structlog

from ..errors import CycleCancelled, IngestionError
from ..models import ProcessingStats, SourcePost
from .channel import WorkQueue
from .publisher import Publisher
from .source_client import JobSourceClient

HIRING_TITLE_MARKER = "who is hiring?"
HIRING_AUTHOR = "whoishiring"


def is_hiring_thread(post: SourcePost) -> bool:
    """Monthly thread heuristic: title marker plus the exact bot account."""

    return HIRING_TITLE_MARKER in post.title.lower() and post.by == HIRING_AUTHOR


class StoryProcessor:
    """Fetch a candidate story and fan its comments into the comment queue."""

    def __init__(
        self,
        client: JobSourceClient,
        stats: ProcessingStats,
        comments: WorkQueue[int],
        cancel: Event,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.stats = stats
        self.comments = comments
        self.cancel = cancel
        self.logger = logger or structlog.get_logger("hn_ingest").bind(component="story_worker")

    def __call__(self, story_id: int) -> None:
        self.process(story_id)

    def process(self, story_id: int) -> bool:
        """Return ``True`` when the story was a hiring thread."""

        try:
            post = self.client.get_item(story_id)
        except IngestionError as exc:
            self.logger.error("story_fetch_failed", id=story_id, error=str(exc))
            return False
        if not is_hiring_thread(post):
            self.logger.debug("story_not_hiring_thread", id=story_id, title=post.title, author=post.by)
            return False

        self.stats.record_hiring_thread()
        self.logger.info(
            "found_hiring_thread",
            id=post.id,
            title=post.title,
            author=post.by,
            time=post.time,
            comments_count=len(post.kids),
        )
        # Blocking put: a saturated comment pool stalls this worker
        for comment_id in post.kids:
            self.comments.put(comment_id, self.cancel)
        return True


class CommentProcessor:
    """Fetch a comment, normalise it and hand it to the publisher."""

    def __init__(
        self,
        client: JobSourceClient,
        publisher: Publisher,
        stats: ProcessingStats,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.publisher = publisher
        self.stats = stats
        self.logger = logger or structlog.get_logger("hn_ingest").bind(component="comment_worker")

    def __call__(self, comment_id: int) -> None:
        self.process(comment_id)

    def process(self, comment_id: int) -> bool:
        try:
            comment = self.client.get_item(comment_id)
        except IngestionError as exc:
            self.logger.error("comment_fetch_failed", comment_id=comment_id, error=str(exc))
            return False

        posting = comment.to_job_posting()
        self.logger.debug("processing_job_posting", comment_id=posting.id, posted_at=posting.posted_at.isoformat())
        try:
            self.publisher.publish(posting)
        except CycleCancelled:
            raise
        except Exception as exc:  # noqa: BLE001
            self.logger.error("comment_publish_failed", comment_id=comment_id, error=str(exc))
            return False
        self.stats.record_comment()
        return True


__all__ = ["CommentProcessor", "HIRING_AUTHOR", "StoryProcessor", "is_hiring_thread"]
