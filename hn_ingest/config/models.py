"""Pydantic models used across the ingestion configuration flow."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

_DURATION_PATTERN = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ms|s|m|h|d)", re.IGNORECASE)
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, "d": 86400.0}


def parse_duration(value: Any) -> float:
    """Return seconds for numbers or duration strings such as ``15m`` or ``1h30m``."""

    if isinstance(value, bool):
        raise ValueError("Duration cannot be a boolean")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported duration value: {value!r}")
    spec = value.strip().lower()
    if not spec:
        raise ValueError("Duration cannot be empty")
    try:
        return float(spec)
    except ValueError:
        pass
    total = 0.0
    index = 0
    for match in _DURATION_PATTERN.finditer(spec):
        if match.start() != index:
            raise ValueError(f"Unsupported duration format: {value}")
        total += float(match.group("value")) * _UNIT_SECONDS[match.group("unit").lower()]
        index = match.end()
    if index != len(spec):
        raise ValueError(f"Unsupported duration format: {value}")
    return total


class SourceApiConfig(BaseModel):
    """Upstream Hacker News endpoints and request limits."""

    base_url: str = "https://hacker-news.firebaseio.com/v0"
    search_base_url: str = "https://hn.algolia.com/api/v1"
    timeout: float = 10.0
    search_window_days: int = 182

    @field_validator("base_url", "search_base_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("Base URL cannot be empty")
        return value

    @field_validator("timeout", mode="before")
    @classmethod
    def _coerce_timeout(cls, value: Any) -> float:
        seconds = parse_duration(value)
        if seconds <= 0:
            raise ValueError("timeout must be > 0")
        return seconds

    @field_validator("search_window_days")
    @classmethod
    def _positive_window(cls, value: int) -> int:
        if value < 1:
            raise ValueError("search_window_days must be >= 1")
        return value


class WorkerConfig(BaseModel):
    """Fixed pool sizes for the two processing stages."""

    story_workers: int = 5
    comment_workers: int = 10
    queue_size: int = 1

    @model_validator(mode="after")
    def _validate_sizes(self) -> "WorkerConfig":
        if self.story_workers < 1:
            raise ValueError("story_workers must be >= 1")
        if self.comment_workers < 1:
            raise ValueError("comment_workers must be >= 1")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        return self


class CacheConfig(BaseModel):
    """Cache-aside backend settings."""

    backend: Literal["memory", "sqlite"] = "sqlite"
    ttl: float = 24 * 3600.0
    path: Path = Field(default=Path("data/cache/ingest_cache.db"))

    @field_validator("ttl", mode="before")
    @classmethod
    def _coerce_ttl(cls, value: Any) -> float:
        seconds = parse_duration(value)
        if seconds < 0:
            raise ValueError("ttl must be >= 0")
        return seconds

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)


class PublisherConfig(BaseModel):
    """Where normalised job postings are delivered."""

    backend: Literal["jsonl", "sqlite"] = "jsonl"
    outputs_dir: Path = Field(default=Path("data/outputs"))
    name: str = "job_postings"

    @field_validator("outputs_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)


class RetryConfig(BaseModel):
    """Retry knobs kept for compatibility; the pipeline does not retry."""

    max_retries: int = 3
    retry_delay: float = 30.0

    @field_validator("retry_delay", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> float:
        return parse_duration(value)


class IngestionConfig(BaseModel):
    """Top-level configuration for the ingestion service."""

    source_api: SourceApiConfig = Field(default_factory=SourceApiConfig)
    polling_interval: float = 15 * 60.0
    workers: WorkerConfig = Field(default_factory=WorkerConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    publisher: PublisherConfig = Field(default_factory=PublisherConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("polling_interval", mode="before")
    @classmethod
    def _coerce_interval(cls, value: Any) -> float:
        seconds = parse_duration(value)
        if seconds <= 0:
            raise ValueError("polling_interval must be > 0")
        return seconds


__all__ = [
    "CacheConfig",
    "IngestionConfig",
    "PublisherConfig",
    "RetryConfig",
    "SourceApiConfig",
    "WorkerConfig",
    "parse_duration",
]
