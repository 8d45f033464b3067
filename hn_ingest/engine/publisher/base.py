"""Publisher Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ...models import JobPosting


class Publisher(ABC):
    """Fire-and-forget sink for normalised job postings.

    Implementations must be safe to call from every comment worker at once
    and raise :class:`~hn_ingest.errors.InternalError` when delivery fails.
    """

    @abstractmethod
    def publish(self, posting: JobPosting) -> None:
        """Deliver a single posting."""

    def publish_many(self, postings: Iterable[JobPosting]) -> None:
        for posting in postings:
            self.publish(posting)

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["Publisher"]
