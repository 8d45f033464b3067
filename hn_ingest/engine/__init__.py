"""Engine components orchestrating search → story fan-out → comment fan-out → publish."""

from .channel import WorkQueue
from .publisher import JsonLinesPublisher, Publisher, SQLitePublisher
from .source_client import CachingSourceClient, JobSourceClient
from .story_processor import CommentProcessor, StoryProcessor, is_hiring_thread
from .worker_pool import WorkerPool

__all__ = [
    "CachingSourceClient",
    "CommentProcessor",
    "JobSourceClient",
    "JsonLinesPublisher",
    "Publisher",
    "SQLitePublisher",
    "StoryProcessor",
    "WorkQueue",
    "WorkerPool",
    "is_hiring_thread",
]
