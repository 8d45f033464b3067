"""Domain models for upstream items and normalised job postings."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourcePost(BaseModel):
    """Raw Hacker News item as returned by ``/item/{id}.json``.

    Deleted or dead items omit most fields and leaf comments carry no ``kids``,
    so everything except ``id`` falls back to an empty value.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    text: str = ""
    by: str = ""
    time: int = 0
    kids: list[int] = Field(default_factory=list)
    parent: int = 0
    type: str = ""
    url: str = ""
    score: int = 0
    dead: bool = False
    deleted: bool = False
    descendants: int = 0

    @field_validator("title", "text", "by", "type", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("time", "parent", "score", "descendants", mode="before")
    @classmethod
    def _none_to_zero(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("kids", mode="before")
    @classmethod
    def _none_to_list(cls, value: object) -> object:
        return [] if value is None else value

    def to_job_posting(self) -> "JobPosting":
        return JobPosting(
            id=str(self.id),
            title=self.title,
            description=self.text,
            posted_at=datetime.fromtimestamp(self.time, tz=timezone.utc),
            raw_text=self.text,
            parent_id=self.parent,
        )


class JobPosting(BaseModel):
    """Normalised record handed to publishers, one per comment."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    description: str = ""
    posted_at: datetime
    raw_text: str = ""
    parent_id: int = 0

    def to_event(self) -> dict[str, object]:
        return self.model_dump(mode="json")


class ProcessingStats:
    """Per-cycle counters; increments are serialised by a lock."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._hiring_threads_found = 0
        self._comments_processed = 0

    @property
    def hiring_threads_found(self) -> int:
        with self._lock:
            return self._hiring_threads_found

    @property
    def comments_processed(self) -> int:
        with self._lock:
            return self._comments_processed

    def record_hiring_thread(self) -> None:
        with self._lock:
            self._hiring_threads_found += 1

    def record_comment(self) -> None:
        with self._lock:
            self._comments_processed += 1

    def as_dict(self) -> dict[str, int]:
        with self._lock:
            return {
                "hiring_threads_found": self._hiring_threads_found,
                "comments_processed": self._comments_processed,
            }


__all__ = ["JobPosting", "ProcessingStats", "SourcePost"]
