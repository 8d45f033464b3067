"""Publisher SPI and implementations."""

from .base import Publisher
from .jsonl_publisher import JsonLinesPublisher
from .sqlite_publisher import SQLitePublisher

__all__ = ["JsonLinesPublisher", "Publisher", "SQLitePublisher"]
