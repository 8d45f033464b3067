"""Pytest configuration providing shared fakes and fixtures."""

from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable

import httpx
import pytest

from hn_ingest.config import ConfigLocator, ConfigRepository, IngestionConfig
from hn_ingest.engine import JobSourceClient, Publisher
from hn_ingest.errors import CacheError, InternalError, NotFoundError
from hn_ingest.infra import Cache, MemoryCache
from hn_ingest.models import JobPosting, SourcePost


def pytest_configure(config: pytest.Config) -> None:  # pragma: no cover
    # keep log files written by configure_logging out of the source tree
    os.environ.setdefault("HN_INGEST_HOME", tempfile.mkdtemp(prefix="hn-ingest-tests-"))


HIRING_STORY = {
    "id": 1,
    "title": "Ask HN: Who is hiring? (March 2024)",
    "by": "whoishiring",
    "time": 1709301600,
    "kids": [10, 11, 12],
    "type": "story",
}


def comment_payload(comment_id: int, parent: int = 1, text: str | None = None) -> dict[str, Any]:
    return {
        "id": comment_id,
        "by": f"user{comment_id}",
        "text": text or f"Acme Corp | Engineer #{comment_id} | REMOTE",
        "time": 1709305200 + comment_id,
        "parent": parent,
        "type": "comment",
    }


class FakeSourceClient(JobSourceClient):
    """In-memory source; ids missing from ``items`` raise NotFoundError."""

    def __init__(
        self,
        items: Iterable[dict[str, Any]] = (),
        threads: Iterable[int] = (),
        delays: dict[int, float] | None = None,
        failures: Iterable[int] = (),
    ) -> None:
        self.items = {payload["id"]: SourcePost.model_validate(payload) for payload in items}
        self.threads = list(threads)
        self.delays = delays or {}
        self.failures = set(failures)
        self.calls: list[int] = []
        self._lock = Lock()

    def get_item(self, item_id: int) -> SourcePost:
        with self._lock:
            self.calls.append(item_id)
        delay = self.delays.get(item_id)
        if delay:
            time.sleep(delay)
        if item_id in self.failures:
            raise InternalError("unexpected status code: 500", id=item_id)
        try:
            return self.items[item_id]
        except KeyError:
            raise NotFoundError("item not found", id=item_id) from None

    def get_top_stories(self) -> list[int]:
        return sorted(self.items)

    def search_hiring_threads(self) -> list[int]:
        return list(self.threads)


class RecordingPublisher(Publisher):
    def __init__(self, fail_ids: Iterable[str] = ()) -> None:
        self.postings: list[JobPosting] = []
        self.fail_ids = set(fail_ids)
        self.flushed = 0
        self.closed = False
        self._lock = Lock()

    def publish(self, posting: JobPosting) -> None:
        if posting.id in self.fail_ids:
            raise InternalError("publishing job posting", id=posting.id)
        with self._lock:
            self.postings.append(posting)

    def flush(self) -> None:
        self.flushed += 1

    def close(self) -> None:
        self.closed = True

    @property
    def ids(self) -> list[str]:
        with self._lock:
            return [posting.id for posting in self.postings]


class BrokenCache(Cache):
    """Cache whose every operation fails."""

    def __init__(self) -> None:
        self.calls = 0

    def get(self, key: str) -> bytes | None:
        self.calls += 1
        raise CacheError(f"get {key}: connection refused")

    def set(self, key: str, value: bytes, ttl: float = 0) -> None:
        self.calls += 1
        raise CacheError(f"set {key}: connection refused")

    def delete(self, key: str) -> None:
        raise CacheError("delete: connection refused")

    def clear(self) -> None:
        raise CacheError("clear: connection refused")


class HNApi:
    """Programmable ``httpx.MockTransport`` handler for the HN endpoints."""

    def __init__(self) -> None:
        self.items: dict[int, Any] = {}
        self.statuses: dict[int, int] = {}
        self.top_stories: list[Any] = []
        self.search_hits: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/topstories.json"):
            return httpx.Response(200, json=self.top_stories)
        if path.endswith("/search"):
            return httpx.Response(
                200, json={"hits": self.search_hits, "nbHits": len(self.search_hits)}
            )
        if "/item/" in path:
            item_id = int(path.rsplit("/", 1)[-1].removesuffix(".json"))
            status = self.statuses.get(item_id)
            if status is not None:
                return httpx.Response(status, text="error")
            if item_id not in self.items:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, content=json.dumps(self.items[item_id]).encode("utf-8"))
        return httpx.Response(404)

    def item_requests(self) -> list[int]:
        return [
            int(r.url.path.rsplit("/", 1)[-1].removesuffix(".json"))
            for r in self.requests
            if "/item/" in r.url.path
        ]


@pytest.fixture
def ingest_config() -> IngestionConfig:
    return IngestionConfig.model_validate(
        {
            "source_api": {
                "base_url": "https://hn.test/v0",
                "search_base_url": "https://search.test/api/v1",
                "timeout": 2,
            },
            "workers": {"story_workers": 3, "comment_workers": 4},
            "cache": {"backend": "memory", "ttl": 60},
        }
    )


@pytest.fixture
def hn_api() -> HNApi:
    return HNApi()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache(default_ttl=60)


@pytest.fixture
def make_client(ingest_config: IngestionConfig, hn_api: HNApi) -> Iterable[Callable[..., Any]]:
    from hn_ingest.engine import CachingSourceClient

    created: list[CachingSourceClient] = []

    def _builder(cache: Cache, **kwargs: Any) -> CachingSourceClient:
        client = CachingSourceClient(
            ingest_config, cache, transport=httpx.MockTransport(hn_api), **kwargs
        )
        created.append(client)
        return client

    yield _builder
    for client in created:
        client.close()


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("HN_INGEST_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    yield ConfigRepository(locator)


@pytest.fixture
def hiring_story() -> dict[str, Any]:
    return dict(HIRING_STORY)


@pytest.fixture
def make_comment() -> Callable[..., dict[str, Any]]:
    return comment_payload


@pytest.fixture
def broken_cache() -> BrokenCache:
    return BrokenCache()


@pytest.fixture
def fake_source() -> type[FakeSourceClient]:
    return FakeSourceClient


@pytest.fixture
def recording_publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def publisher_factory() -> type[RecordingPublisher]:
    return RecordingPublisher
