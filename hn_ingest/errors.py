"""Error taxonomy shared by the ingestion pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    """Coarse classification attached to every ingestion error."""

    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"
    CANCELLED = "CANCELLED"


class IngestionError(Exception):
    """Base error carrying a type, a message and an optional cause."""

    error_type: ErrorType = ErrorType.INTERNAL

    def __init__(self, message: str, cause: BaseException | None = None, **context: object) -> None:
        self.message = message
        self.cause = cause
        self.context = context
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        text = f"{self.error_type.value}: {self.message}"
        if self.context:
            details = ", ".join(f"{key}={value}" for key, value in self.context.items())
            text = f"{text} ({details})"
        if self.cause is not None:
            text = f"{text}: {self.cause}"
        return text


class NotFoundError(IngestionError):
    """The requested item does not exist upstream."""

    error_type = ErrorType.NOT_FOUND


class InternalError(IngestionError):
    """Transport, decode or unexpected status failure."""

    error_type = ErrorType.INTERNAL


class CycleCancelled(IngestionError):
    """Raised when the caller's cancellation event fires."""

    error_type = ErrorType.CANCELLED

    def __init__(self, message: str = "cancelled", cause: BaseException | None = None) -> None:
        super().__init__(message, cause)


class CacheError(Exception):
    """Any failure of the cache backend other than a missing key."""


class QueueClosed(Exception):
    """Put attempted on a queue that has already been closed."""


__all__ = [
    "CacheError",
    "CycleCancelled",
    "ErrorType",
    "IngestionError",
    "InternalError",
    "NotFoundError",
    "QueueClosed",
]
